"""Locate the Claude Code project a command runs in."""

import logging
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("ctxbudget.security")

MARKER_DIR = ".claude"
MAX_HOPS = 50


def find_claude_dir(
    start_path: Optional[Union[str, Path]] = None,
    marker: str = MARKER_DIR,
    max_hops: int = MAX_HOPS,
) -> Optional[Path]:
    """Find the nearest marker directory by walking up the directory tree.

    Args:
        start_path: Where to start, defaults to the current directory
        marker: Name of the directory that marks a project root
        max_hops: Upper bound on parent directories visited

    Returns:
        Path to the marker directory, or None if there is none below the
        filesystem root or the hop limit was reached. The root directory
        itself is never searched.
    """
    current = Path(start_path if start_path is not None else Path.cwd()).resolve()
    hops = 0

    while current != current.parent:
        if hops >= max_hops:
            security_logger.warning(
                f"security event: max_search_depth_exceeded (limit={max_hops})"
            )
            return None

        candidate = current / marker
        try:
            if candidate.is_dir():
                logger.debug(f"Found {marker} at {candidate}")
                return candidate
        except OSError as e:
            # Unreadable directory on the way up, keep climbing
            logger.debug(f"Cannot stat {candidate}: {e}")

        current = current.parent
        hops += 1

    return None


def validate_path(path: str) -> str:
    """Reject path arguments that cannot name a real directory."""
    if "\0" in path or "%00" in path:
        raise ValueError("Path contains null bytes")
    return path
