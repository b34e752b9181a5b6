"""Report command with snapshot reuse and a canned fallback."""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from .analyzer import ContextAnalyzer, ProjectNotFoundError
from .cache import ResultCache
from .config import Config, get_config
from .registry import McpTokenTable, load_table
from .visualizer import format_result

logger = logging.getLogger(__name__)

# Shown when no project is found or the analysis itself blows up
FALLBACK_REPORT = """\
  ⎿  ⛁ ⛁ ⛁ ⛁ ⛀ ⛁ ⛁ ⛁ ⛁ ⛁
     ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁   Context Usage
     ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁   claude-sonnet-4 • 177k/200k tokens (89%)
     ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁
     ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁   ⛁ System prompt: 9.3k tokens (4.7%)
     ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁   ⛁ System tools: 17.6k tokens (8.8%)
     ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁   ⛁ MCP tools: 132.7k tokens (66.3%)
     ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛁   ⛁ Custom agents: 4.5k tokens (2.2%)
     ⛁ ⛁ ⛁ ⛁ ⛁ ⛁ ⛀ ⛶ ⛶ ⛶   ⛁ Memory files: 13.2k tokens (6.6%)
     ⛶ ⛶ ⛶ ⛶ ⛶ ⛶ ⛶ ⛶ ⛶ ⛶   ⛶ Free space: 22.8k (11.4%)
"""


class ContextCommand:
    """Produce the context report for the project around a path.

    Holds the process-wide cache, so repeated calls for the same project
    within the snapshot TTL reuse the previous analysis.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        cache: Optional[ResultCache] = None,
        table: Optional[McpTokenTable] = None,
    ):
        self.config = config or get_config()
        self.cache = cache or ResultCache.from_config(self.config)
        self.table = table or load_table(self.config)

    def execute(
        self,
        mode: str = "standard",
        start_path: Optional[Union[str, Path]] = None,
        use_cache: bool = True,
        as_json: bool = False,
        use_color: bool = True,
    ) -> str:
        """Analyze the project (or reuse a snapshot) and render it."""
        analyzer = ContextAnalyzer(
            start_path=start_path,
            config=self.config,
            cache=self.cache,
            table=self.table,
        )

        try:
            claude_dir = analyzer.locate()
        except ProjectNotFoundError as e:
            logger.error(str(e))
            return self.fallback(as_json, reason="no project detected")

        project = claude_dir.parent
        result = self.cache.snapshots.get(project) if use_cache else None
        if result is not None:
            age = self.cache.snapshots.age(project) or 0
            logger.info(f"Using cached analysis ({age:.0f}s ago)")
        else:
            try:
                result = analyzer.analyze()
            except Exception as e:
                logger.error(f"Context analysis failed: {e}")
                return self.fallback(as_json, reason=str(e))

        if as_json:
            return json.dumps(result.to_dict(), indent=2)

        return format_result(
            result,
            mode=mode,
            use_color=use_color,
            context_window=self.config.context_window,
            model_label=self.config.model_label,
        )

    def fallback(self, as_json: bool = False, reason: str = "") -> str:
        """Canned report used when no real analysis is available."""
        if as_json:
            return json.dumps({"error": reason or "analysis unavailable", "fallback": True}, indent=2)
        return FALLBACK_REPORT
