"""Default token estimators for the turn engine."""

from __future__ import annotations

import math
from collections.abc import Sequence

from yips.core.types import ChatMessage

CHARS_PER_TOKEN = 4


def estimate_text_tokens(text: str) -> int:
    if not text:
        return 0
    return max(1, math.ceil(len(text) / CHARS_PER_TOKEN))


def estimate_conversation_tokens(messages: Sequence[ChatMessage]) -> int:
    return sum(estimate_text_tokens(message.content) for message in messages)


def compute_tokens_per_second(tokens: int, duration_ms: float) -> float | None:
    if tokens <= 0 or duration_ms <= 0:
        return None
    return tokens / (duration_ms / 1000)
