"""Per-category token estimation.

Each analyzer measures one slice of the session budget and returns a
CategoryResult. Analyzers raise on whole-category failure; the aggregator
runs them supervised and substitutes ``fallback(name)``. Failures of single
agent files are absorbed here with a per-file fallback.
"""

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .cache import FileCache
from .config import Config
from .estimator import TokenEstimator
from .models import CategoryResult
from .registry import McpTokenTable

logger = logging.getLogger(__name__)

CATEGORIES = ("system_prompt", "system_tools", "mcp_tools", "custom_agents", "memory_file")


class CategoryAnalyzers:
    """Token analyzers for one project's .claude directory."""

    def __init__(
        self,
        claude_dir: Path,
        config: Config,
        table: McpTokenTable,
        file_cache: FileCache,
        estimator: Optional[TokenEstimator] = None,
    ):
        self.claude_dir = Path(claude_dir)
        self.config = config
        self.table = table
        self.file_cache = file_cache
        self.estimator = estimator or TokenEstimator()

    def fallback(self, name: str) -> CategoryResult:
        """Documented substitute for a category that could not be measured."""
        return CategoryResult(tokens=self.config.fallback(name))

    async def system_prompt(self) -> CategoryResult:
        # Typical Claude Code system prompt
        return CategoryResult(tokens=int(self.config.get("system.prompt_tokens")))

    async def system_tools(self) -> CategoryResult:
        # Built-in tools (Read, Write, Edit, ...)
        return CategoryResult(tokens=int(self.config.get("system.tools_tokens")))

    async def mcp_tools(self) -> CategoryResult:
        """Sum the cost of every enabled MCP server.

        breakdown: {"servers": name -> total, "tools": name -> [ToolTokens]}
        """
        # A server listed twice is still loaded once
        servers = list(dict.fromkeys(await self._enabled_servers()))

        totals = {}
        tools = {}
        for name in servers:
            cost = self.table.lookup(name)
            totals[name] = cost.total
            tools[name] = list(cost.tools)

        return CategoryResult(
            tokens=sum(totals.values()),
            breakdown={"servers": totals, "tools": tools},
        )

    async def custom_agents(self) -> CategoryResult:
        """Estimate agent definition files in batches.

        breakdown: file name -> tokens
        """
        agents_dir = self.claude_dir / self.config.get("agents.dir", "agents")
        if not agents_dir.exists():
            return CategoryResult(tokens=0)

        files = await run_blocking(self._list_agent_files, agents_dir)

        batch_size = max(1, int(self.config.get("agents.batch_size", 5)))
        pause = float(self.config.get("agents.batch_pause", 0.01))

        breakdown: Dict[str, int] = {}
        for i in range(0, len(files), batch_size):
            batch = files[i:i + batch_size]
            results = await asyncio.gather(*(self._agent_tokens(path) for path in batch))
            for path, tokens in zip(batch, results):
                breakdown[path.name] = tokens

            # Small delay between batches to avoid flooding the filesystem
            if i + batch_size < len(files):
                await asyncio.sleep(pause)

        return CategoryResult(tokens=sum(breakdown.values()), breakdown=breakdown)

    async def memory_file(self) -> CategoryResult:
        """Estimate the project memory file.

        breakdown: {"path": str}
        """
        path = self.claude_dir / self.config.get("memory.file", "CLAUDE.md")
        tokens = await self._file_tokens(path, self.config.timeout("memory_file"))
        return CategoryResult(tokens=tokens, breakdown={"path": str(path)})

    async def _enabled_servers(self) -> List[str]:
        """Read enabled server names, project settings first, then global."""
        settings_file = self.config.get("mcp.settings_file", "settings.local.json")
        key = self.config.get("mcp.servers_key", "enabledMcpjsonServers")
        candidates = [
            self.claude_dir / settings_file,
            self.config.global_claude_dir / settings_file,
        ]

        last_error = None
        for path in candidates:
            try:
                settings = await run_blocking(_read_json, path)
            except (OSError, ValueError) as e:
                logger.debug(f"Settings unavailable at {path}: {e}")
                last_error = e
                continue

            if not isinstance(settings, dict):
                raise ValueError(f"{path}: settings must be a JSON object")
            servers = settings.get(key) or []
            if not isinstance(servers, list) or not all(isinstance(s, str) for s in servers):
                raise ValueError(f"{path}: {key} must be a list of server names")
            logger.debug(f"{len(servers)} MCP servers enabled in {path}")
            return servers

        raise last_error

    def _list_agent_files(self, agents_dir: Path) -> List[Path]:
        extensions = tuple(self.config.agent_extensions)
        return sorted(
            p for p in agents_dir.iterdir()
            if p.name.endswith(extensions)
        )

    async def _agent_tokens(self, path: Path) -> int:
        try:
            return await self._file_tokens(path, self.config.timeout("agent_file"))
        except (OSError, ValueError, asyncio.TimeoutError) as e:
            logger.warning(f"Could not read agent file {path.name}: {str(e) or type(e).__name__}")
            return self.config.fallback("agent_file")

    async def _file_tokens(self, path: Path, timeout: float) -> int:
        """Token count of a file, served from the file cache when fresh."""
        cached = self.file_cache.get(path)
        if cached is not None:
            return cached

        content = await asyncio.wait_for(
            run_blocking(_read_text, path, self.config.max_file_bytes),
            timeout=timeout,
        )
        tokens = self.estimator.count(content)
        self.file_cache.put(path, tokens)
        return tokens

    def jobs(self) -> Dict[str, Tuple]:
        """name -> (coroutine factory, fallback) for every category."""
        return {name: (getattr(self, name), self.fallback(name)) for name in CATEGORIES}


def run_blocking(func: Callable, *args) -> "asyncio.Future":
    """Run a blocking call on a daemon thread and await its result.

    Unlike ``asyncio.to_thread`` the thread is not joined when the event
    loop shuts down, so a read stalled on a slow filesystem cannot hold
    the caller past its timeout. A result arriving after the awaiting
    side gave up is dropped.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def settle(value, error):
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(value)

    def worker():
        try:
            value, error = func(*args), None
        except Exception as e:
            value, error = None, e
        try:
            loop.call_soon_threadsafe(settle, value, error)
        except RuntimeError:
            # Loop already closed
            logger.debug(f"Discarding late result of {getattr(func, '__name__', func)}")

    threading.Thread(target=worker, name="ctxbudget-read", daemon=True).start()
    return future


def _read_text(path: Path, max_bytes: int) -> str:
    """Read a regular, reasonably sized text file."""
    stat = path.stat()
    if not path.is_file():
        raise ValueError(f"{path} is not a regular file")
    if stat.st_size > max_bytes:
        raise ValueError(f"{path} is too large ({stat.st_size} bytes)")
    return path.read_text(encoding="utf-8")


def _read_json(path: Path):
    # JSONDecodeError is a ValueError
    return json.loads(path.read_text(encoding="utf-8"))
