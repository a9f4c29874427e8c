"""Fast heuristic token estimation for single texts and chat conversations.

Not a tokenizer: the numbers are only good enough to decide which model can
safely hold a request.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass

from src.chat.models import ChatTurn
from src.tokens.classifier import ContentShape, classify_content

# Structural tokens charged per message for role and formatting
MESSAGE_OVERHEAD = 4

# Context blocks open with a line such as "--- Video Transcript (812 words) ---"
_SECTION_START = re.compile(r"^(?=--- .+ ---$)", re.MULTILINE)

TOKENS_PER_WORD: dict[ContentShape, float] = {
    ContentShape.NATURAL: 1.33,
    ContentShape.TIMESTAMPED_NOISY: 6.0,
    ContentShape.STRUCTURED_OR_LONGWORD: 3.0,
    ContentShape.VERY_LONG: 2.0,
    ContentShape.DEFAULT: 1.33,
}


@dataclass(frozen=True)
class TokenEstimate:
    """Estimated token count with the word/character counts it came from."""

    estimated_tokens: int = 0
    word_count: int = 0
    character_count: int = 0

    def __add__(self, other: TokenEstimate) -> TokenEstimate:
        return TokenEstimate(
            estimated_tokens=self.estimated_tokens + other.estimated_tokens,
            word_count=self.word_count + other.word_count,
            character_count=self.character_count + other.character_count,
        )


def multiplier_for(shape: ContentShape) -> float:
    return TOKENS_PER_WORD.get(shape, TOKENS_PER_WORD[ContentShape.DEFAULT])


def estimate_tokens(text: str | None) -> TokenEstimate:
    """Estimate the token cost of *text*.

    Absent or empty text is zero-cost and skips classification.
    """
    if not text:
        return TokenEstimate()

    word_count = len(text.split())
    if word_count == 0:
        return TokenEstimate(character_count=len(text))

    shape = classify_content(text, word_count=word_count)
    # round() strips float noise such as 133.00000000000003 before the ceiling
    estimated = math.ceil(round(word_count * multiplier_for(shape), 6))
    return TokenEstimate(
        estimated_tokens=estimated,
        word_count=word_count,
        character_count=len(text),
    )


def estimate_sectioned_tokens(text: str | None) -> TokenEstimate:
    """Estimate *text* one ``--- Section ---`` block at a time.

    Each block is classified on its own, so a transcript deep inside a long
    context still gets the caption multiplier.
    """
    if not text:
        return TokenEstimate()
    total = TokenEstimate()
    for section in _SECTION_START.split(text):
        total = total + estimate_tokens(section)
    return total


def estimate_message_tokens(
    turns: Iterable[ChatTurn], split_sections: bool = False
) -> TokenEstimate:
    """Estimate a whole conversation, including per-message overhead.

    Turns without content still pay ``MESSAGE_OVERHEAD``. With
    *split_sections*, each turn goes through :func:`estimate_sectioned_tokens`.
    """
    estimate_one = estimate_sectioned_tokens if split_sections else estimate_tokens
    total = TokenEstimate()
    for turn in turns:
        estimate = estimate_one(turn.content)
        total = total + TokenEstimate(
            estimated_tokens=estimate.estimated_tokens + MESSAGE_OVERHEAD,
            word_count=estimate.word_count,
            character_count=estimate.character_count,
        )
    return total


def format_token_count(tokens: int) -> str:
    """Format a token count for display (``850 tokens`` / ``12.3K tokens``)."""
    if tokens < 1000:
        return f"{tokens} tokens"
    return f"{tokens / 1000:.1f}K tokens"
