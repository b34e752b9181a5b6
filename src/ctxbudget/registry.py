"""Token cost table for MCP servers.

The table is plain data: a bundled YAML file, optionally overlaid by a
user file. Nothing outside this module knows any server by name.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import yaml

from .models import ToolTokens

logger = logging.getLogger(__name__)

BUILTIN_TABLE = Path(__file__).parent / "data" / "mcp_servers.yaml"
UNKNOWN_SERVER_TOKENS = 2000


@dataclass
class ServerCost:
    """Token cost of one MCP server and its tools."""
    name: str
    total: int
    tools: List[ToolTokens] = field(default_factory=list)

    @classmethod
    def from_dict(cls, name: str, data: dict) -> "ServerCost":
        tools = [
            ToolTokens(name=str(t["name"]), tokens=int(t["tokens"]))
            for t in data.get("tools") or []
        ]
        total = data.get("total")
        if total is None:
            total = sum(t.tokens for t in tools)
        return cls(name=name, total=int(total), tools=tools)


class McpTokenTable:
    """Lookup of server name -> token cost."""

    def __init__(
        self,
        servers: Optional[Dict[str, ServerCost]] = None,
        unknown_tokens: int = UNKNOWN_SERVER_TOKENS,
    ):
        self.servers: Dict[str, ServerCost] = dict(servers or {})
        self.unknown_tokens = unknown_tokens

    def __contains__(self, name: str) -> bool:
        return name in self.servers

    def __len__(self) -> int:
        return len(self.servers)

    def __iter__(self) -> Iterator[str]:
        return iter(self.servers)

    @classmethod
    def from_yaml(cls, path: Path, unknown_tokens: int = UNKNOWN_SERVER_TOKENS) -> "McpTokenTable":
        """Load a table file. Raises OSError, yaml.YAMLError or ValueError."""
        table = cls(unknown_tokens=unknown_tokens)
        table.update_from_yaml(path)
        return table

    def update_from_yaml(self, path: Path):
        """Add or replace servers from a table file."""
        data = yaml.safe_load(Path(path).read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping of server names")
        for name, info in data.items():
            if not isinstance(info, dict):
                raise ValueError(f"{path}: entry for {name!r} is not a mapping")
            self.servers[str(name)] = ServerCost.from_dict(str(name), info)

    def lookup(self, name: str) -> ServerCost:
        """Cost of a server, with a single synthetic tool for unknown names."""
        known = self.servers.get(name)
        if known:
            return known
        return ServerCost(
            name=name,
            total=self.unknown_tokens,
            tools=[ToolTokens(name=f"mcp__{name}__unknown", tokens=self.unknown_tokens)],
        )


def load_table(config) -> McpTokenTable:
    """Load the bundled table and apply the user's overlay, if any."""
    unknown = int(config.get("mcp.unknown_server_tokens", UNKNOWN_SERVER_TOKENS))
    table = McpTokenTable.from_yaml(BUILTIN_TABLE, unknown_tokens=unknown)

    overlay = config.mcp_table_path
    if overlay.exists():
        try:
            table.update_from_yaml(overlay)
            logger.debug(f"Loaded MCP token overlay from {overlay}")
        except (OSError, yaml.YAMLError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring MCP token overlay {overlay}: {e}")

    return table
