"""Shared fixtures for ctxbudget tests."""

import json
from pathlib import Path

import pytest

from ctxbudget.config import Config


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch):
    """Keep the user's real ~/.claude and config out of every test."""
    global_dir = tmp_path / "global-claude"
    monkeypatch.setenv("CLAUDE_CONFIG_DIR", str(global_dir))
    monkeypatch.setenv("CTXBUDGET_CONFIG", str(tmp_path / "config" / "config.yaml"))
    return global_dir


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(tmp_path / "config" / "config.yaml")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root containing an empty .claude directory."""
    root = tmp_path / "myproject"
    (root / ".claude").mkdir(parents=True)
    return root


def write_settings(claude_dir: Path, servers, name: str = "settings.local.json"):
    claude_dir.mkdir(parents=True, exist_ok=True)
    (claude_dir / name).write_text(json.dumps({"enabledMcpjsonServers": servers}))


def write_agents(claude_dir: Path, agents: dict):
    agents_dir = claude_dir / "agents"
    agents_dir.mkdir(parents=True, exist_ok=True)
    for name, content in agents.items():
        (agents_dir / name).write_text(content)
