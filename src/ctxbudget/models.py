"""Data types shared by the analyzer, cache and formatter."""

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from .recommendations import Recommendation


@dataclass
class ToolTokens:
    """Token cost of a single MCP tool."""
    name: str
    tokens: int


@dataclass
class CategoryResult:
    """Measurement of one budget category.

    ``breakdown`` is category specific: server totals and tool lists for
    MCP, file name -> tokens for agents, {"path": ...} for the memory file.
    """
    tokens: int
    breakdown: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Breakdown:
    """Per-item detail used only for rendering."""
    mcp_servers: Dict[str, int] = field(default_factory=dict)
    mcp_tools: Dict[str, List[ToolTokens]] = field(default_factory=dict)
    agents: Dict[str, int] = field(default_factory=dict)
    memory_file: Optional[str] = None


@dataclass
class AnalysisResult:
    """Token budget of one project.

    The total is always derived from the five category fields.
    """
    project_path: Path
    claude_dir: Path
    system_prompt_tokens: int = 0
    system_tools_tokens: int = 0
    mcp_tools_tokens: int = 0
    custom_agents_tokens: int = 0
    memory_file_tokens: int = 0
    breakdown: Breakdown = field(default_factory=Breakdown)
    optimizations: List[Recommendation] = field(default_factory=list)
    degraded: List[str] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)
    elapsed_ms: float = 0.0

    @property
    def total_tokens(self) -> int:
        return (
            self.system_prompt_tokens
            + self.system_tools_tokens
            + self.mcp_tools_tokens
            + self.custom_agents_tokens
            + self.memory_file_tokens
        )

    @property
    def server_count(self) -> int:
        return len(self.breakdown.mcp_servers)

    @property
    def project_name(self) -> str:
        return self.project_path.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_path": str(self.project_path),
            "claude_dir": str(self.claude_dir),
            "system_prompt_tokens": self.system_prompt_tokens,
            "system_tools_tokens": self.system_tools_tokens,
            "mcp_tools_tokens": self.mcp_tools_tokens,
            "custom_agents_tokens": self.custom_agents_tokens,
            "memory_file_tokens": self.memory_file_tokens,
            "total_tokens": self.total_tokens,
            "breakdown": {
                "mcp_servers": dict(self.breakdown.mcp_servers),
                "mcp_tools": {
                    server: [asdict(t) for t in tools]
                    for server, tools in self.breakdown.mcp_tools.items()
                },
                "agents": dict(self.breakdown.agents),
                "memory_file": self.breakdown.memory_file,
            },
            "optimizations": [r.to_dict() for r in self.optimizations],
            "degraded": list(self.degraded),
            "timings": dict(self.timings),
            "elapsed_ms": round(self.elapsed_ms, 1),
        }
