"""Normalize provider transcript payloads and render them as text or subtitles.

Provider responses arrive in several shapes:

Nested segments::

    {"transcript": {"segments": [{"startMs": 0, "endMs": 1800, "text": "..."}]}}

Segment arrays (bare list, ``segments`` key, or the search provider's
``transcript`` list)::

    [{"start_ms": 0, "end_ms": 1800, "snippet": "..."}]
    {"segments": [...], "full_text": "..."}
    {"transcript": [{"start_ms": 0, "end_ms": 1800, "snippet": "..."}]}

Flat text::

    {"text": "..."}  /  {"transcript": "..."}

Each shape has its own parser; :func:`normalize` tries them in order and the
first that recognises the payload wins.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from src.transcripts.models import Platform, Transcript, TranscriptSegment

# Subtitle duration used when a segment has no end time
DEFAULT_CUE_MS = 2000


class MalformedPayloadError(ValueError):
    """Raised when no parser recognises a provider payload."""


def _first(entry: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if entry.get(key) is not None:
            return entry[key]
    return None


def _to_ms(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return None


def _parse_segment(entry: Any) -> TranscriptSegment | None:
    if not isinstance(entry, dict):
        return None
    text = _first(entry, "text", "snippet")
    if not isinstance(text, str):
        return None
    start = _to_ms(_first(entry, "startMs", "start_ms")) or 0
    end = _to_ms(_first(entry, "endMs", "end_ms"))
    if end is not None and end < start:
        end = None
    return TranscriptSegment(start_ms=start, end_ms=end, text=text)


def _build(
    entries: list[Any],
    full_text: Any,
    platform: Platform,
    language: str | None,
) -> Transcript:
    segments = [seg for seg in (_parse_segment(e) for e in entries) if seg is not None]
    if not isinstance(full_text, str) or not full_text:
        full_text = " ".join(s.text.strip() for s in segments if s.text.strip())
    return Transcript(
        full_text=full_text,
        segments=tuple(segments) or None,
        language=language,
        platform=platform,
    )


def _language_of(payload: Any) -> str | None:
    if isinstance(payload, dict):
        lang = _first(payload, "language", "language_code")
        if isinstance(lang, str) and lang:
            return lang
    return None


def _platform_of(payload: Any) -> Platform:
    if isinstance(payload, dict):
        value = payload.get("platform")
        if value in {p.value for p in Platform}:
            return Platform(value)
    return Platform.YOUTUBE


def _flat_text_of(payload: dict[str, Any]) -> Any:
    return _first(payload, "full_text", "fullText", "text")


Parser = Callable[[Any, Platform, str | None], Transcript | None]


def parse_nested_segments(
    payload: Any, platform: Platform, language: str | None
) -> Transcript | None:
    """``{"transcript": {"segments": [...]}}``."""
    if not isinstance(payload, dict):
        return None
    inner = payload.get("transcript")
    if not isinstance(inner, dict) or not isinstance(inner.get("segments"), list):
        return None
    full_text = _flat_text_of(inner) or _flat_text_of(payload)
    return _build(inner["segments"], full_text, platform, language or _language_of(inner))


def parse_segment_array(
    payload: Any, platform: Platform, language: str | None
) -> Transcript | None:
    """Bare list, top-level ``segments`` list, or a ``transcript`` list."""
    if isinstance(payload, list):
        return _build(payload, None, platform, language)
    if not isinstance(payload, dict):
        return None
    for key in ("segments", "transcript"):
        entries = payload.get(key)
        if isinstance(entries, list):
            return _build(entries, _flat_text_of(payload), platform, language)
    return None


def parse_flat_text(
    payload: Any, platform: Platform, language: str | None
) -> Transcript | None:
    """``{"text": "..."}``, ``{"full_text": "..."}`` or ``{"transcript": "..."}``."""
    if isinstance(payload, str):
        return Transcript(full_text=payload, platform=platform, language=language)
    if not isinstance(payload, dict):
        return None
    text = _first(payload, "full_text", "fullText", "text", "transcript")
    if not isinstance(text, str):
        return None
    return Transcript(full_text=text, platform=platform, language=language)


PARSERS: list[Parser] = [
    parse_nested_segments,
    parse_segment_array,
    parse_flat_text,
]


def normalize(
    raw: Any,
    platform: Platform | None = None,
    language: str | None = None,
) -> Transcript:
    """Map a provider payload to a canonical :class:`Transcript`.

    Segments keep provider order; they are never re-sorted.

    Args:
        raw: Decoded provider JSON, a plain string, or an existing Transcript.
        platform: Source platform to stamp on the result. When omitted, a
            valid ``platform`` field in the payload is used, else YouTube.
        language: Language code; a ``language``/``language_code`` field in
            the payload is used when this is omitted.

    Returns:
        The normalized transcript.

    Raises:
        MalformedPayloadError: If no parser recognises *raw*.
    """
    if isinstance(raw, Transcript):
        return Transcript(
            full_text=raw.full_text,
            segments=raw.segments or None,
            language=raw.language,
            platform=raw.platform,
        )

    platform = platform or _platform_of(raw)
    language = language or _language_of(raw)
    for parser in PARSERS:
        transcript = parser(raw, platform, language)
        if transcript is not None:
            return transcript

    keys = list(raw.keys()) if isinstance(raw, dict) else type(raw).__name__
    msg = f"Unrecognized transcript payload. Keys: {keys}"
    raise MalformedPayloadError(msg)


def _single_line(text: str) -> str:
    return " ".join(text.split())


def format_clock(ms: int) -> str:
    """``MM:SS`` (minutes are not wrapped into hours)."""
    total_seconds = ms // 1000
    return f"{total_seconds // 60:02d}:{total_seconds % 60:02d}"


def format_srt_timestamp(ms: int) -> str:
    """``HH:MM:SS,mmm``."""
    hours, rem = divmod(ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def to_timestamped_text(transcript: Transcript) -> str:
    """Render one ``[MM:SS] text`` line per segment, or the full text."""
    if not transcript.segments:
        return transcript.full_text
    return "\n".join(
        f"[{format_clock(s.start_ms)}] {_single_line(s.text)}" for s in transcript.segments
    )


def _srt_block(index: int, start_ms: int, end_ms: int | None, text: str) -> str:
    end = end_ms if end_ms is not None else start_ms + DEFAULT_CUE_MS
    return (
        f"{index}\n"
        f"{format_srt_timestamp(start_ms)} --> {format_srt_timestamp(end)}\n"
        f"{text}\n"
    )


def to_subtitle_format(transcript: Transcript) -> str:
    """Render as SubRip (SRT) cues separated by blank lines."""
    if transcript.segments:
        blocks = [
            _srt_block(i, s.start_ms, s.end_ms, _single_line(s.text))
            for i, s in enumerate(transcript.segments, 1)
        ]
        return "\n".join(blocks)
    if not transcript.full_text:
        return ""
    return _srt_block(1, 0, None, transcript.full_text)
