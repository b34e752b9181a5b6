"""Output formatting for context budget reports."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .estimator import format_tokens
from .models import AnalysisResult
from .recommendations import Impact

MODES = ("compact", "summary", "standard", "detailed")

FULL = "⛁"
PARTIAL = "⛀"
EMPTY = "⛶"

GRID_SIZE = 10
INDENT = "     "

# ANSI colors
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "orange": "\033[38;5;208m",
    "red": "\033[31m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
    "magenta": "\033[35m",
}

# (label, result attribute, color)
CATEGORY_ROWS = [
    ("System prompt", "system_prompt_tokens", "dim"),
    ("System tools", "system_tools_tokens", "blue"),
    ("MCP tools", "mcp_tools_tokens", "cyan"),
    ("Custom agents", "custom_agents_tokens", "magenta"),
    ("Memory files", "memory_file_tokens", "orange"),
]


def get_usage_color(percentage: float) -> str:
    """Get color based on usage percentage."""
    if percentage < 50:
        return COLORS["green"]
    elif percentage < 70:
        return COLORS["yellow"]
    elif percentage < 85:
        return COLORS["orange"]
    else:
        return COLORS["red"]


def percent_of(value: int, total: int) -> float:
    return (value / total * 100) if total > 0 else 0.0


def format_bar(percentage: float, width: int = 20) -> str:
    """Create a progress bar of exactly width glyphs."""
    clamped = max(0.0, min(100.0, percentage or 0.0))
    filled = round(clamped / 100 * width)
    return FULL * filled + EMPTY * (width - filled)


def build_grid(result: AnalysisResult, window: int, palette: Dict[str, str]) -> List[str]:
    """Render usage as a 10x10 grid, one cell per percent of the window."""
    boundaries = []
    used = 0.0
    for _, attr, color in CATEGORY_ROWS:
        used += percent_of(getattr(result, attr), window)
        boundaries.append((used, color))

    cells = []
    for i in range(GRID_SIZE * GRID_SIZE):
        fill = min(1.0, max(0.0, used - i))
        if fill <= 0:
            cells.append(f"{palette['dim']}{EMPTY}{palette['reset']}")
            continue
        # Colour by the category owning the start of the cell
        color = next((c for bound, c in boundaries if bound > i), boundaries[-1][1])
        glyph = FULL if fill >= 1.0 else PARTIAL
        cells.append(f"{palette[color]}{glyph}{palette['reset']}")

    return [
        " ".join(cells[row * GRID_SIZE:(row + 1) * GRID_SIZE])
        for row in range(GRID_SIZE)
    ]


def format_header(
    result: AnalysisResult,
    window: int,
    model_label: str,
    palette: Dict[str, str],
) -> List[str]:
    """Grid with the usage legend alongside."""
    total = result.total_tokens
    usage = percent_of(total, window)
    free = window - total
    usage_color = get_usage_color(usage) if palette["reset"] else ""

    legend = [
        "",
        f"{palette['bold']}Context Usage{palette['reset']}",
        f"{model_label} • {usage_color}{format_tokens(total)}/{format_tokens(window)} tokens "
        f"({usage:.0f}%){palette['reset']}",
        "",
    ]
    for label, attr, color in CATEGORY_ROWS:
        value = getattr(result, attr)
        legend.append(
            f"{palette[color]}{FULL}{palette['reset']} {label}: "
            f"{format_tokens(value)} tokens ({percent_of(value, total):.1f}%)"
        )
    legend.append(f"{EMPTY} Free space: {format_tokens(free)} ({percent_of(free, window):.1f}%)")

    lines = []
    for i, row in enumerate(build_grid(result, window, palette)):
        prefix = "  ⎿  " if i == 0 else INDENT
        text = f"   {legend[i]}" if legend[i] else " "
        lines.append(f"{prefix}{row}{text}")
    return lines


def _sorted_items(items: Dict[str, int]) -> List[Tuple[str, int]]:
    return sorted(items.items(), key=lambda x: x[1], reverse=True)


def _agent_name(file_name: str) -> str:
    return Path(file_name).stem


def format_mcp(result: AnalysisResult, max_servers: Optional[int], max_tools: Optional[int]) -> List[str]:
    """MCP servers by cost, each with its most expensive tools."""
    servers = _sorted_items(result.breakdown.mcp_servers)
    if not servers:
        return []

    lines = [f"{INDENT}MCP tools · /mcp"]
    for name, total in servers[:max_servers]:
        lines.append(f"{INDENT}└ {name} server: {format_tokens(total)} total tokens")
        tools = sorted(result.breakdown.mcp_tools.get(name, []), key=lambda t: t.tokens, reverse=True)
        for tool in tools[:max_tools]:
            lines.append(f"{INDENT}  └ {tool.name}: {format_tokens(tool.tokens)} tokens")
    if max_servers is not None and len(servers) > max_servers:
        lines.append(f"{INDENT}  ... and {len(servers) - max_servers} more servers")
    lines.append("")
    return lines


def format_agents(result: AnalysisResult, limit: Optional[int]) -> List[str]:
    agents = _sorted_items(result.breakdown.agents)
    if not agents:
        return []

    lines = [f"{INDENT}Custom agents · /agents"]
    for file_name, tokens in agents[:limit]:
        lines.append(f"{INDENT}└ {_agent_name(file_name)} (Project): {format_tokens(tokens):>6} tokens")
    if limit is not None and len(agents) > limit:
        lines.append(f"{INDENT}  ... and {len(agents) - limit} more agents")
    lines.append("")
    return lines


def format_memory(result: AnalysisResult) -> List[str]:
    return [
        f"{INDENT}Memory files · /memory",
        f"{INDENT}└ Project ({result.breakdown.memory_file}): {format_tokens(result.memory_file_tokens)} tokens",
        "",
    ]


def format_recommendations(result: AnalysisResult, palette: Dict[str, str]) -> List[str]:
    """Optimization suggestions grouped by impact."""
    if not result.optimizations:
        return []

    lines = [f"{palette['bold']}Optimization Recommendations:{palette['reset']}", ""]
    groups = [
        (Impact.HIGH, "High Impact (>10% token reduction):"),
        (Impact.MEDIUM, "Medium Impact (3-10% token reduction):"),
    ]
    for impact, heading in groups:
        recs = [r for r in result.optimizations if r.impact == impact]
        if not recs:
            continue
        lines.append(heading)
        for rec in recs:
            lines.append(f"- **{rec.title}**: {rec.description} ({rec.savings})")
        lines.append("")
    return lines


def format_degraded(result: AnalysisResult, palette: Dict[str, str]) -> List[str]:
    if not result.degraded:
        return []
    names = ", ".join(result.degraded)
    return [f"{INDENT}{palette['yellow']}⚠  Fallback estimates used for: {names}{palette['reset']}", ""]


def format_category_bars(result: AnalysisResult, palette: Dict[str, str]) -> List[str]:
    """One 20-glyph bar per category, scaled to the total."""
    total = result.total_tokens
    lines = [f"{INDENT}Breakdown"]
    for label, attr, color in CATEGORY_ROWS:
        value = getattr(result, attr)
        pct = percent_of(value, total)
        bar = format_bar(pct)
        lines.append(
            f"{INDENT}{label:<14} {palette[color]}{bar}{palette['reset']} "
            f"{format_tokens(value):>7} ({pct:4.1f}%)"
        )
    lines.append("")
    return lines


def format_timings(result: AnalysisResult) -> List[str]:
    if not result.timings:
        return []
    parts = ", ".join(f"{name} {ms:.0f}ms" for name, ms in result.timings.items())
    return [f"{INDENT}Analyzed in {result.elapsed_ms:.0f}ms ({parts})", ""]


def format_summary(result: AnalysisResult) -> str:
    total = result.total_tokens
    system = result.system_prompt_tokens + result.system_tools_tokens
    return "\n".join([
        f"Claude Code Context: {format_tokens(total)} total tokens",
        f"Project: {result.project_name}",
        f"MCP Tools: {percent_of(result.mcp_tools_tokens, total):.1f}% | "
        f"Agents: {percent_of(result.custom_agents_tokens, total):.1f}% | "
        f"System: {percent_of(system, total):.1f}%",
    ]) + "\n"


def format_compact(result: AnalysisResult, window: int, model_label: str, palette: Dict[str, str]) -> str:
    lines = format_header(result, window, model_label, palette)
    lines.append("")

    servers = _sorted_items(result.breakdown.mcp_servers)[:3]
    if servers:
        lines.append(f"{INDENT}Top MCP servers:")
        for name, total in servers:
            lines.append(f"{INDENT}└ {name}: {format_tokens(total)} tokens")
        lines.append("")

    agents = _sorted_items(result.breakdown.agents)[:3]
    if agents:
        top = ", ".join(f"{_agent_name(f)} ({format_tokens(t)})" for f, t in agents)
        lines.append(f"{INDENT}Top agents: {top}")
        lines.append("")

    lines.append(f"{INDENT}Memory: {format_tokens(result.memory_file_tokens)} tokens from "
                 f"{Path(result.breakdown.memory_file or 'CLAUDE.md').name}")
    lines.append("")
    lines.append(f"{INDENT}{palette['dim']}Use 'standard' or 'detailed' for more info{palette['reset']}")
    return "\n".join(lines) + "\n"


def format_result(
    result: AnalysisResult,
    mode: str = "standard",
    use_color: bool = True,
    context_window: int = 200000,
    model_label: str = "claude-sonnet-4",
) -> str:
    """Render an analysis in one of the display modes."""
    c = COLORS if use_color else {k: "" for k in COLORS}
    mode = mode.lower()
    if mode not in MODES:
        raise ValueError(f"Invalid mode: {mode}")

    if mode == "summary":
        return format_summary(result)
    if mode == "compact":
        return format_compact(result, context_window, model_label, c)

    detailed = mode == "detailed"
    lines = format_header(result, context_window, model_label, c)
    lines.append("")
    if detailed:
        lines.extend(format_category_bars(result, c))
    lines.extend(format_mcp(result, None if detailed else 5, None if detailed else 3))
    lines.extend(format_agents(result, None if detailed else 5))
    lines.extend(format_memory(result))
    lines.extend(format_degraded(result, c))
    if detailed:
        lines.extend(format_timings(result))
    lines.extend(format_recommendations(result, c))
    return "\n".join(lines).rstrip("\n") + "\n"
