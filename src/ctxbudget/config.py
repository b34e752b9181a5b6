"""Configuration management for ctxbudget."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

# Default paths
CONFIG_DIR = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "ctxbudget"
CONFIG_ENV = "CTXBUDGET_CONFIG"
GLOBAL_CLAUDE_ENV = "CLAUDE_CONFIG_DIR"

# Default configuration
DEFAULT_CONFIG = {
    "marker_dir": ".claude",
    "max_search_depth": 50,
    "context_window": 200000,
    "model_label": "claude-sonnet-4",
    "max_file_bytes": 10 * 1024 * 1024,
    "system": {
        "prompt_tokens": 8500,
        "tools_tokens": 15200,
    },
    "mcp": {
        "settings_file": "settings.local.json",
        "servers_key": "enabledMcpjsonServers",
        "unknown_server_tokens": 2000,
        "table": None,
    },
    "agents": {
        "dir": "agents",
        "extensions": [".md"],
        "batch_size": 5,
        "batch_pause": 0.01,
    },
    "memory": {
        "file": "CLAUDE.md",
    },
    "timeouts": {
        "analysis": 3.0,
        "grace": 0.5,
        "agent_file": 5.0,
        "memory_file": 3.0,
    },
    "cache": {
        "snapshot_ttl": 300,
        "file_ttl": 600,
        "max_file_entries": 100,
    },
    # Substituted when a category cannot be measured
    "fallbacks": {
        "system_prompt": 8500,
        "system_tools": 15200,
        "mcp_tools": 120000,
        "custom_agents": 8900,
        "agent_file": 1000,
        "memory_file": 2700,
    },
}


def default_config_path() -> Path:
    """Config file location, honouring CTXBUDGET_CONFIG."""
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return CONFIG_DIR / "config.yaml"


class Config:
    """Configuration for ctxbudget."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else default_config_path()
        self._config: Dict[str, Any] = {}
        self._load()

    def _load(self):
        """Load configuration from file, falling back to defaults."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path.exists():
            try:
                with open(self.config_path) as f:
                    user_config = yaml.safe_load(f) or {}
                if not isinstance(user_config, dict):
                    raise ValueError("top level must be a mapping")
                self._merge(self._config, user_config)
            except (OSError, yaml.YAMLError, ValueError) as e:
                logger.warning(f"Ignoring config file {self.config_path}: {e}")

    def _merge(self, base: dict, override: dict):
        """Recursively merge override into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge(base[key], value)
            else:
                base[key] = value

    def save(self):
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(self._config, f, default_flow_style=False)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        parts = key.split(".")
        value = self._config
        for part in parts:
            if isinstance(value, dict):
                value = value.get(part)
            else:
                return default
        return value if value is not None else default

    def set(self, key: str, value: Any):
        """Set a configuration value."""
        parts = key.split(".")
        config = self._config
        for part in parts[:-1]:
            config = config.setdefault(part, {})
        config[parts[-1]] = value

    @property
    def marker_dir(self) -> str:
        return self.get("marker_dir", ".claude")

    @property
    def max_search_depth(self) -> int:
        return int(self.get("max_search_depth", 50))

    @property
    def context_window(self) -> int:
        return int(self.get("context_window", 200000))

    @property
    def model_label(self) -> str:
        return self.get("model_label", "claude-sonnet-4")

    @property
    def max_file_bytes(self) -> int:
        return int(self.get("max_file_bytes", 10 * 1024 * 1024))

    @property
    def agent_extensions(self) -> List[str]:
        return list(self.get("agents.extensions", [".md"]))

    @property
    def global_claude_dir(self) -> Path:
        """Fallback base directory for settings when the project has none."""
        override = os.environ.get(GLOBAL_CLAUDE_ENV)
        if override:
            return Path(override).expanduser()
        return Path.home() / ".claude"

    @property
    def mcp_table_path(self) -> Path:
        """User overlay for the MCP token table."""
        table = self.get("mcp.table")
        if table:
            return Path(table).expanduser()
        return self.config_path.parent / "mcp_servers.yaml"

    def timeout(self, name: str) -> float:
        return float(self.get(f"timeouts.{name}"))

    def fallback(self, name: str) -> int:
        return int(self.get(f"fallbacks.{name}"))


# Singleton config
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
