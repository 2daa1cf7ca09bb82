"""Token counting and usage classification for the active session."""

import logging
import math

from context_continue.config import DEFAULT_MAX_TOKENS, DEFAULT_WARNING_THRESHOLD
from context_continue.context.models import BreakSuggestion, TokenUsage

logger = logging.getLogger(__name__)

WARN_PERCENT = 60
BREAK_PERCENT = 80


def estimate_tokens(text: str) -> int:
    """Rough count at ~4 characters per token. Always >= 1 for non-empty text."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


class TokenCounter:
    """Counts tokens with tiktoken and classifies session usage.

    If the encoding cannot be loaded (tiktoken downloads it on first use) or
    encoding a text fails, counts fall back to ``estimate_tokens``.
    """

    def __init__(
        self,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        warning_threshold: int = DEFAULT_WARNING_THRESHOLD,
    ):
        self.max_tokens = max_tokens
        self.warning_threshold = warning_threshold
        try:
            import tiktoken

            self._encoding = tiktoken.encoding_for_model("gpt-4")
        except Exception as e:
            logger.warning("tiktoken unavailable, using character-based estimation: %s", e)
            self._encoding = None

    def count_tokens(self, text: str) -> int:
        if not text:
            return 0
        if self._encoding is None:
            return estimate_tokens(text)
        try:
            return len(self._encoding.encode(text))
        except Exception as e:
            logger.debug("Token encoding failed, estimating instead: %s", e)
            return estimate_tokens(text)

    def get_usage(self, current_tokens: int, limit: int | None = None) -> TokenUsage:
        """Classify usage as continue (<60%), warn (60-80%) or break (>=80%).

        Bands are decided on the exact ratio; the reported percentage is rounded.
        """
        limit = limit or self.max_tokens
        ratio = current_tokens / limit * 100

        if ratio < WARN_PERCENT:
            suggestion = "continue"
        elif ratio < BREAK_PERCENT:
            suggestion = "warn"
        else:
            suggestion = "break"

        return TokenUsage(
            current=current_tokens,
            limit=limit,
            percentage=round(ratio),
            suggestion=suggestion,
        )

    def should_suggest_break(self, current_tokens: int) -> BreakSuggestion | None:
        usage = self.get_usage(current_tokens)

        if usage.suggestion == "break":
            return BreakSuggestion(
                reason=f"Approaching token limit ({usage.percentage}% used)",
                current_tokens=current_tokens,
                suggested_action="end_session",
                summary="Consider ending this session to maintain context quality",
            )
        if usage.suggestion == "warn":
            return BreakSuggestion(
                reason=f"High token usage ({usage.percentage}% used)",
                current_tokens=current_tokens,
                suggested_action="create_checkpoint",
                summary="Consider creating a checkpoint or preparing to end session",
            )
        return None
