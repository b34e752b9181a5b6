"""Context budget analysis for Claude Code projects."""

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional, Union

from .cache import ResultCache
from .categories import CategoryAnalyzers
from .config import Config, get_config
from .estimator import TokenEstimator
from .locator import find_claude_dir
from .models import AnalysisResult, Breakdown
from .recommendations import recommend
from .registry import McpTokenTable, load_table
from .supervisor import run_with_deadline

logger = logging.getLogger(__name__)


class ProjectNotFoundError(Exception):
    """No marker directory between the start path and the filesystem root."""


class ContextAnalyzer:
    """Estimate the token budget a Claude Code session starts with."""

    def __init__(
        self,
        claude_dir: Optional[Union[str, Path]] = None,
        start_path: Optional[Union[str, Path]] = None,
        config: Optional[Config] = None,
        cache: Optional[ResultCache] = None,
        table: Optional[McpTokenTable] = None,
    ):
        """Initialize analyzer.

        Args:
            claude_dir: The project's .claude directory, located if None
            start_path: Where to start looking when claude_dir is None
            config: Settings, the user's config if None
            cache: Process-wide cache, a private one if None
            table: MCP token table, the bundled one if None
        """
        self.config = config or get_config()
        self.cache = cache or ResultCache.from_config(self.config)
        self.table = table or load_table(self.config)
        self.estimator = TokenEstimator()
        self.claude_dir = Path(claude_dir).resolve() if claude_dir else None
        self.start_path = start_path

    @property
    def project_root(self) -> Optional[Path]:
        return self.claude_dir.parent if self.claude_dir else None

    def locate(self) -> Path:
        """Resolve the .claude directory, searching upwards if needed."""
        if self.claude_dir is None:
            found = find_claude_dir(
                self.start_path,
                marker=self.config.marker_dir,
                max_hops=self.config.max_search_depth,
            )
            if found is None:
                raise ProjectNotFoundError(
                    f"No {self.config.marker_dir} directory found in current path or "
                    f"parent directories. Run this command from within a Claude Code project."
                )
            self.claude_dir = found
        return self.claude_dir

    async def analyze_async(self) -> AnalysisResult:
        """Run all category analyzers and aggregate their results.

        Only raises ProjectNotFoundError. Categories that fail or miss the
        deadline contribute their fallback values, and the result is cached
        either way.
        """
        start = time.monotonic()
        self.cache.prune()
        claude_dir = self.locate()

        analyzers = CategoryAnalyzers(
            claude_dir, self.config, self.table, self.cache.files, self.estimator
        )
        outcomes = await run_with_deadline(
            analyzers.jobs(),
            timeout=self.config.timeout("analysis"),
            grace=self.config.timeout("grace"),
        )

        mcp = outcomes["mcp_tools"].value
        agents = outcomes["custom_agents"].value
        memory = outcomes["memory_file"].value

        result = AnalysisResult(
            project_path=claude_dir.parent,
            claude_dir=claude_dir,
            system_prompt_tokens=outcomes["system_prompt"].value.tokens,
            system_tools_tokens=outcomes["system_tools"].value.tokens,
            mcp_tools_tokens=mcp.tokens,
            custom_agents_tokens=agents.tokens,
            memory_file_tokens=memory.tokens,
            breakdown=Breakdown(
                mcp_servers=dict(mcp.breakdown.get("servers", {})),
                mcp_tools=dict(mcp.breakdown.get("tools", {})),
                agents=dict(agents.breakdown),
                memory_file=memory.breakdown.get("path", str(claude_dir / self.config.get("memory.file"))),
            ),
            degraded=[name for name, outcome in outcomes.items() if outcome.fallback],
            timings={name: round(outcome.elapsed_ms, 1) for name, outcome in outcomes.items()},
        )
        result.optimizations = recommend(
            result.mcp_tools_tokens, result.custom_agents_tokens, result.server_count
        )
        result.elapsed_ms = (time.monotonic() - start) * 1000

        self.cache.snapshots.put(result.project_path, result)

        for name in result.degraded:
            logger.warning(f"{name}: using fallback estimate ({outcomes[name].error})")
        logger.debug(
            "Timings: " + ", ".join(f"{name}={ms}ms" for name, ms in result.timings.items())
        )
        if result.elapsed_ms > 1000:
            logger.info(f"Analysis completed in {result.elapsed_ms:.0f}ms")

        return result

    def analyze(self) -> AnalysisResult:
        """Synchronous wrapper around analyze_async."""
        return asyncio.run(self.analyze_async())
