"""Data models for transcript acquisition."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Platform(StrEnum):
    """Where a transcript's media lives."""

    YOUTUBE = "youtube"
    X = "x"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    REDDIT = "reddit"
    PODCAST = "podcast"


@dataclass(frozen=True)
class TranscriptSegment:
    """A timed fragment of a transcript. Times are in milliseconds."""

    start_ms: int
    text: str
    end_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"start_ms": self.start_ms, "end_ms": self.end_ms, "text": self.text}


@dataclass(frozen=True)
class Transcript:
    """Canonical transcript: full text plus optional ordered segments."""

    full_text: str
    platform: Platform
    segments: tuple[TranscriptSegment, ...] | None = None
    language: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.full_text.strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "full_text": self.full_text,
            "segments": [s.to_dict() for s in self.segments] if self.segments else None,
            "language": self.language,
            "platform": self.platform.value,
        }


class FetchState(StrEnum):
    """Progress of one acquisition through the fallback chain."""

    NOT_STARTED = "not_started"
    TRYING_PRIMARY_LINK = "trying_primary_link"
    TRYING_FALLBACK_A = "trying_fallback_a"
    TRYING_FALLBACK_B = "trying_fallback_b"
    TRYING_FALLBACK_C = "trying_fallback_c"
    TRYING_FALLBACK_D = "trying_fallback_d"
    TRYING_ALTERNATIVE = "trying_alternative"
    SUCCEEDED = "succeeded"
    EXHAUSTED_FAILURE = "exhausted_failure"


class FailureKind(StrEnum):
    """Why an acquisition produced no transcript."""

    NOT_CONFIGURED = "not_configured"
    METADATA_FAILED = "metadata_failed"
    EXHAUSTED = "exhausted"
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    INVALID_REFERENCE = "invalid_reference"


@dataclass(frozen=True)
class FetchAttempt:
    """One strategy try within a single acquisition call."""

    strategy_id: str
    succeeded: bool
    error_reason: str | None = None


@dataclass
class TranscriptResult:
    """Final outcome of an acquisition: a transcript or one typed failure."""

    transcript: Transcript | None = None
    failure: FailureKind | None = None
    reason: str | None = None
    state: FetchState = FetchState.NOT_STARTED
    attempts: list[FetchAttempt] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.transcript is not None

    @classmethod
    def success(
        cls, transcript: Transcript, attempts: list[FetchAttempt]
    ) -> TranscriptResult:
        return cls(transcript=transcript, state=FetchState.SUCCEEDED, attempts=attempts)

    @classmethod
    def failed(
        cls,
        failure: FailureKind,
        reason: str,
        attempts: list[FetchAttempt] | None = None,
    ) -> TranscriptResult:
        return cls(
            failure=failure,
            reason=reason,
            state=FetchState.EXHAUSTED_FAILURE,
            attempts=attempts or [],
        )
