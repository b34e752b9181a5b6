"""Context budget estimation for Claude Code projects."""

__version__ = "1.0.0"

from .analyzer import ContextAnalyzer, ProjectNotFoundError
from .cache import ResultCache
from .command import ContextCommand
from .estimator import TokenEstimator, estimate_tokens
from .locator import find_claude_dir
from .visualizer import format_result

__all__ = [
    "ContextAnalyzer",
    "ContextCommand",
    "ProjectNotFoundError",
    "ResultCache",
    "TokenEstimator",
    "estimate_tokens",
    "find_claude_dir",
    "format_result",
    "__version__",
]
