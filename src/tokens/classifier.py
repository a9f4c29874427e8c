"""Content shape classification used to pick a token-estimation multiplier."""

from __future__ import annotations

import re
from enum import StrEnum

# Shape checks only look at a prefix; the word total still covers the whole text.
SAMPLE_CHARS = 1000
BRACKET_DENSITY_THRESHOLD = 0.01
LONG_WORD_THRESHOLD = 8.0
VERY_LONG_WORD_COUNT = 10_000


class ContentShape(StrEnum):
    """Coarse shape of a text sample."""

    NATURAL = "natural"
    TIMESTAMPED_NOISY = "timestamped_noisy"
    STRUCTURED_OR_LONGWORD = "structured_or_longword"
    VERY_LONG = "very_long"
    DEFAULT = "default"


_TIMESTAMP_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\[\d{1,2}:\d{2}(?::\d{2})?\]"),
    # Bare H:MM / H:MM:SS, but not the clock part of an ISO timestamp or UTC offset
    re.compile(r"(?<![\w:+\-.])\d{1,2}:\d{2}(?::\d{2})?(?![\d:])"),
]

# Annotations speech-to-text engines and caption tracks insert between words
_NOISE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        r"[\[(](?:music|applause|laughter|laughs|inaudible|crosstalk|silence|noise|cheering)[\])]",
        re.IGNORECASE,
    ),
]

_BRACKET_CHARS = frozenset("[]{}()<>")


def _is_transcript_shaped(sample: str) -> bool:
    if any(p.search(sample) for p in _TIMESTAMP_PATTERNS):
        return True
    return any(p.search(sample) for p in _NOISE_PATTERNS)


def _is_structured(sample_words: list[str], sample: str) -> bool:
    brackets = sum(1 for ch in sample if ch in _BRACKET_CHARS)
    if brackets / len(sample_words) > BRACKET_DENSITY_THRESHOLD:
        return True
    avg_len = sum(len(w) for w in sample_words) / len(sample_words)
    return avg_len > LONG_WORD_THRESHOLD


def classify_content(text: str, word_count: int | None = None) -> ContentShape:
    """Classify *text* by shape.

    Checks run in priority order and the first match wins: transcript-shaped
    text is penalised even when it is also very long, because caption text
    tokenizes far worse than prose.

    Args:
        text: The text to inspect. Only the first ``SAMPLE_CHARS`` characters
            are used for the pattern and density checks.
        word_count: Precomputed whitespace word count of the full text. Computed
            here when omitted.

    Returns:
        The detected :class:`ContentShape`.
    """
    sample = text[:SAMPLE_CHARS]
    sample_words = sample.split()
    if not sample_words:
        return ContentShape.DEFAULT

    if _is_transcript_shaped(sample):
        return ContentShape.TIMESTAMPED_NOISY

    if _is_structured(sample_words, sample):
        return ContentShape.STRUCTURED_OR_LONGWORD

    total_words = word_count if word_count is not None else len(text.split())
    if total_words > VERY_LONG_WORD_COUNT:
        return ContentShape.VERY_LONG

    return ContentShape.NATURAL
