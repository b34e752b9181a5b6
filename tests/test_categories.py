"""Tests for the per-category analyzers."""

import asyncio
import math
import os
from pathlib import Path

import pytest

from ctxbudget.cache import FileCache
from ctxbudget.categories import CATEGORIES, CategoryAnalyzers, run_blocking
from ctxbudget.config import Config
from ctxbudget.registry import load_table

from conftest import write_agents, write_settings


@pytest.fixture
def analyzers(project: Path, config: Config) -> CategoryAnalyzers:
    return CategoryAnalyzers(project / ".claude", config, load_table(config), FileCache())


class TestSystemCategories:
    """Test cases for the fixed categories."""

    def test_constants(self, analyzers):
        assert asyncio.run(analyzers.system_prompt()).tokens == 8500
        assert asyncio.run(analyzers.system_tools()).tokens == 15200


class TestMcpTools:
    """Test cases for MCP server totals."""

    def test_known_servers_are_summed(self, analyzers, project):
        write_settings(project / ".claude", ["fetch", "sequential-thinking"])
        result = asyncio.run(analyzers.mcp_tools())
        assert result.tokens == 1943
        assert result.breakdown["servers"] == {"fetch": 643, "sequential-thinking": 1300}

    def test_unknown_server_uses_default_estimate(self, analyzers, project):
        write_settings(project / ".claude", ["fetch", "homegrown"])
        result = asyncio.run(analyzers.mcp_tools())
        assert result.tokens == 643 + 2000
        tools = result.breakdown["tools"]["homegrown"]
        assert [(t.name, t.tokens) for t in tools] == [("mcp__homegrown__unknown", 2000)]

    def test_duplicate_server_counted_once(self, analyzers, project):
        write_settings(project / ".claude", ["fetch", "fetch"])
        assert asyncio.run(analyzers.mcp_tools()).tokens == 643

    def test_missing_key_means_no_servers(self, analyzers, project):
        (project / ".claude" / "settings.local.json").write_text('{"permissions": {}}')
        assert asyncio.run(analyzers.mcp_tools()).tokens == 0

    def test_falls_back_to_global_settings(self, analyzers, isolated_home):
        write_settings(isolated_home, ["sequential-thinking"])
        assert asyncio.run(analyzers.mcp_tools()).tokens == 1300

    def test_malformed_local_settings_fall_through_to_global(self, analyzers, project, isolated_home):
        (project / ".claude" / "settings.local.json").write_text("{not json")
        write_settings(isolated_home, ["fetch"])
        assert asyncio.run(analyzers.mcp_tools()).tokens == 643

    def test_no_settings_anywhere_raises(self, analyzers):
        with pytest.raises(OSError):
            asyncio.run(analyzers.mcp_tools())

    def test_non_list_servers_is_malformed(self, analyzers, project):
        (project / ".claude" / "settings.local.json").write_text('{"enabledMcpjsonServers": "fetch"}')
        with pytest.raises(ValueError):
            asyncio.run(analyzers.mcp_tools())


class TestCustomAgents:
    """Test cases for agent file estimation."""

    def test_missing_directory_is_zero(self, analyzers):
        result = asyncio.run(analyzers.custom_agents())
        assert result.tokens == 0
        assert result.breakdown == {}

    def test_only_markdown_files_count(self, analyzers, project):
        write_agents(project / ".claude", {
            "reviewer.md": "r" * 400,
            "planner.md": "p" * 41,
            "notes.txt": "ignored" * 100,
        })
        result = asyncio.run(analyzers.custom_agents())
        assert result.breakdown == {"planner.md": 11, "reviewer.md": 100}
        assert result.tokens == 111

    def test_many_files_processed_in_batches(self, analyzers, project):
        agents = {f"agent{i:02d}.md": "a" * (4 * i) for i in range(12)}
        write_agents(project / ".claude", agents)
        result = asyncio.run(analyzers.custom_agents())
        assert len(result.breakdown) == 12
        assert result.tokens == sum(range(12))

    def test_unreadable_file_gets_per_file_fallback(self, analyzers, project):
        write_agents(project / ".claude", {"good.md": "g" * 8})
        (project / ".claude" / "agents" / "broken.md").mkdir()

        result = asyncio.run(analyzers.custom_agents())

        assert result.breakdown == {"broken.md": 1000, "good.md": 2}
        assert result.tokens == 1002

    def test_slow_read_times_out_to_fallback(self, analyzers, project, config, monkeypatch):
        write_agents(project / ".claude", {"slow.md": "s" * 40, "fast.md": "f" * 40})
        config.set("timeouts.agent_file", 0.05)

        import ctxbudget.categories as categories
        real_read = categories._read_text

        def read(path, max_bytes):
            if path.name == "slow.md":
                import time
                time.sleep(0.3)
            return real_read(path, max_bytes)

        monkeypatch.setattr(categories, "_read_text", read)
        result = asyncio.run(analyzers.custom_agents())
        assert result.breakdown == {"fast.md": 10, "slow.md": 1000}

    def test_results_are_served_from_file_cache(self, analyzers, project):
        write_agents(project / ".claude", {"a.md": "a" * 40})
        asyncio.run(analyzers.custom_agents())
        (project / ".claude" / "agents" / "a.md").write_text("a" * 400)
        assert asyncio.run(analyzers.custom_agents()).tokens == 10

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs a non-root posix user")
    def test_unlistable_directory_raises(self, analyzers, project):
        agents_dir = project / ".claude" / "agents"
        agents_dir.mkdir()
        agents_dir.chmod(0o000)
        try:
            with pytest.raises(PermissionError):
                asyncio.run(analyzers.custom_agents())
        finally:
            agents_dir.chmod(0o755)


class TestMemoryFile:
    """Test cases for the memory file."""

    def test_reads_memory_file(self, analyzers, project):
        text = "# Project rules\n" * 20
        (project / ".claude" / "CLAUDE.md").write_text(text)
        result = asyncio.run(analyzers.memory_file())
        assert result.tokens == math.ceil(len(text) / 4)
        assert result.breakdown["path"].endswith("CLAUDE.md")

    def test_missing_memory_file_raises(self, analyzers):
        with pytest.raises(OSError):
            asyncio.run(analyzers.memory_file())

    def test_oversized_file_is_refused(self, analyzers, project, config):
        config.set("max_file_bytes", 10)
        (project / ".claude" / "CLAUDE.md").write_text("x" * 11)
        with pytest.raises(ValueError):
            asyncio.run(analyzers.memory_file())


class TestFallbacks:
    """Test cases for documented fallback values."""

    @pytest.mark.parametrize("name,tokens", [
        ("system_prompt", 8500),
        ("system_tools", 15200),
        ("mcp_tools", 120000),
        ("custom_agents", 8900),
        ("memory_file", 2700),
    ])
    def test_fallback_constants(self, analyzers, name, tokens):
        assert analyzers.fallback(name).tokens == tokens

    def test_jobs_cover_every_category(self, analyzers):
        assert tuple(analyzers.jobs()) == CATEGORIES


class TestRunBlocking:
    """Test cases for daemon-thread blocking calls."""

    def test_returns_value(self):
        async def call():
            return await run_blocking(lambda a, b: a + b, 2, 3)

        assert asyncio.run(call()) == 5

    def test_propagates_exception(self):
        def fail():
            raise PermissionError("denied")

        async def call():
            return await run_blocking(fail)

        with pytest.raises(PermissionError):
            asyncio.run(call())
