"""Token estimation for context budgeting.

Counts here are a character heuristic (about four characters per token for
English text). They are not produced by a real tokenizer and will not match
any model's actual token boundaries.
"""

import math

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate tokens as ceil(len(text) / 4)."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class TokenEstimator:
    """Estimate token counts for text content."""

    def count(self, text: str) -> int:
        """Count tokens in text."""
        return estimate_tokens(text)


def format_tokens(count: int) -> str:
    """Format token count for display, e.g. 1234 -> 1.2k."""
    if count >= 1000:
        return f"{count / 1000:.1f}k"
    return str(count)
