"""Static optimization suggestions derived from budget totals."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

MCP_TOKENS_THRESHOLD = 100000
AGENT_TOKENS_THRESHOLD = 10000
SERVER_COUNT_THRESHOLD = 15


class Impact(Enum):
    """Expected impact of a recommendation."""
    HIGH = "high"
    MEDIUM = "medium"


@dataclass(frozen=True)
class Recommendation:
    """A single optimization suggestion."""
    impact: Impact
    title: str
    description: str
    savings: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "impact": self.impact.value,
            "title": self.title,
            "description": self.description,
            "savings": self.savings,
        }


def recommend(mcp_tokens: int, agent_tokens: int, server_count: int) -> List[Recommendation]:
    """Build recommendations for the given totals.

    Args:
        mcp_tokens: Tokens used by enabled MCP servers
        agent_tokens: Tokens used by custom agent files
        server_count: Number of enabled MCP servers

    Returns:
        High impact suggestions first, then medium. Empty when no
        threshold is crossed.
    """
    recommendations = []

    if mcp_tokens > MCP_TOKENS_THRESHOLD:
        recommendations.append(Recommendation(
            impact=Impact.HIGH,
            title="Consolidate MCP Servers",
            description="Consider disabling unused MCP servers or merging similar functionality",
            savings="20-40k tokens",
        ))

    if agent_tokens > AGENT_TOKENS_THRESHOLD:
        recommendations.append(Recommendation(
            impact=Impact.HIGH,
            title="Optimize Agent Architecture",
            description="Combine overlapping agent responsibilities to reduce redundancy",
            savings="3-6k tokens",
        ))

    if server_count > SERVER_COUNT_THRESHOLD:
        recommendations.append(Recommendation(
            impact=Impact.MEDIUM,
            title="Selective MCP Loading",
            description="Implement on-demand loading for MCP servers",
            savings="5-15k tokens",
        ))

    return recommendations
