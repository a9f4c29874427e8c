"""Platform dispatch for transcript acquisition."""

from __future__ import annotations

import logging
import re
from urllib.parse import parse_qs, urlsplit

from src.config import settings
from src.transcripts.models import FailureKind, FetchAttempt, Platform, TranscriptResult
from src.transcripts.provider import SerpApiClient
from src.transcripts.strategies import (
    NativeYouTubeStrategy,
    SerpApiTranscriptStrategy,
    SpeechToTextStrategy,
    TranscriptStrategy,
)

logger = logging.getLogger(__name__)

_VIDEO_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")

_YOUTUBE_URL_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"youtube\.com/watch\?(?:.*&)?v=([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtu\.be/([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/embed/([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/v/([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/shorts/([a-zA-Z0-9_-]{11})"),
]

# Platforms whose media is transcribed from audio rather than fetched as captions
SPEECH_PLATFORMS = frozenset(
    {Platform.X, Platform.TIKTOK, Platform.INSTAGRAM, Platform.REDDIT, Platform.PODCAST}
)


def extract_youtube_video_id(url_or_id: str) -> str | None:
    """Return the 11-character video id from a YouTube URL (or a bare id)."""
    candidate = url_or_id.strip().split("#")[0]
    if _VIDEO_ID_RE.match(candidate):
        return candidate

    for pattern in _YOUTUBE_URL_PATTERNS:
        match = pattern.search(candidate)
        if match:
            return match.group(1)

    v = parse_qs(urlsplit(candidate).query).get("v", [""])[0]
    return v if _VIDEO_ID_RE.match(v) else None


class TranscriptService:
    """Choose the strategy list for a platform and run it in order.

    YouTube goes through the configured caption sources (SerpAPI chain and/or
    native extraction); audio-only platforms go to speech-to-text.
    """

    def __init__(
        self,
        serpapi: SerpApiClient | None = None,
        youtube_strategies: dict[str, TranscriptStrategy] | None = None,
        speech: SpeechToTextStrategy | None = None,
        youtube_sources: list[str] | None = None,
    ) -> None:
        if youtube_strategies is None:
            youtube_strategies = {
                "serpapi": SerpApiTranscriptStrategy(serpapi),
                "native": NativeYouTubeStrategy(),
            }
        self._youtube = youtube_strategies
        self._speech = speech or SpeechToTextStrategy()
        self.youtube_sources = youtube_sources or list(settings.youtube_transcript_sources)

    async def acquire(self, platform: Platform, reference: str) -> TranscriptResult:
        """Acquire a transcript for *reference* (URL or id) on *platform*."""
        if platform is Platform.YOUTUBE:
            return await self._acquire_youtube(reference)
        if platform in SPEECH_PLATFORMS:
            return await self._speech.acquire(reference, platform)
        return TranscriptResult.failed(
            FailureKind.UNSUPPORTED_PLATFORM, f"transcripts are not supported for {platform}"
        )

    async def _acquire_youtube(self, reference: str) -> TranscriptResult:
        video_id = extract_youtube_video_id(reference)
        if video_id is None:
            return TranscriptResult.failed(
                FailureKind.INVALID_REFERENCE, f"no YouTube video id in {reference!r}"
            )

        attempts: list[FetchAttempt] = []
        last: TranscriptResult | None = None
        for name in self.youtube_sources:
            strategy = self._youtube.get(name)
            if strategy is None:
                logger.warning("Unknown YouTube transcript source %r skipped", name)
                continue

            result = await strategy.acquire(video_id)
            attempts.extend(result.attempts)
            if result.ok:
                result.attempts = attempts
                return result
            if result.failure is not FailureKind.NOT_CONFIGURED:
                last = result
            logger.info("YouTube source %s failed for %s: %s", name, video_id, result.reason)

        if last is None:
            return TranscriptResult.failed(
                FailureKind.NOT_CONFIGURED, "no YouTube transcript source is configured", attempts
            )
        return TranscriptResult.failed(last.failure or FailureKind.EXHAUSTED, last.reason or "", attempts)
