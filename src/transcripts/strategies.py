"""Transcript fetch strategies and the first-success runner they share.

The SerpAPI chain is a fixed, linear list of steps. Each step runs at most
once and the next step starts only after the previous one has failed, so a
single acquisition costs at most seven provider calls (metadata, direct link,
four transcript-search variants, one alternative).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any, Protocol

from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

from src.config import settings
from src.transcripts.models import (
    FailureKind,
    FetchAttempt,
    FetchState,
    Platform,
    Transcript,
    TranscriptResult,
)
from src.transcripts.normalizer import MalformedPayloadError, normalize
from src.transcripts.provider import ProviderError, SerpApiClient

logger = logging.getLogger(__name__)

EXHAUSTED_REASON = "no transcript found for a suitable language or type"


class TranscriptStrategy(Protocol):
    """Anything that can turn a platform reference into a TranscriptResult."""

    strategy_id: str

    async def acquire(self, reference: str) -> TranscriptResult: ...


@dataclass(frozen=True)
class FetchStep:
    """One provider call in a fallback chain."""

    strategy_id: str
    state: FetchState
    fetch: Callable[[], Awaitable[Any]]
    language: str | None = None


async def first_success(
    steps: Sequence[FetchStep],
    platform: Platform,
    attempts: list[FetchAttempt],
) -> tuple[Transcript | None, dict[str, Any] | None]:
    """Run *steps* in order and stop at the first non-empty transcript.

    Transport and malformed-response errors mark the step as failed and move
    on; nothing is retried. Every step appends a :class:`FetchAttempt` to
    *attempts*.

    Returns:
        ``(transcript, last_payload)``. ``transcript`` is None when every step
        failed; ``last_payload`` is the most recent decoded response body
        (including error bodies), or None if the last call produced none.
    """
    last_payload: dict[str, Any] | None = None

    for step in steps:
        logger.debug("Transcript step %s (%s)", step.strategy_id, step.state)
        try:
            payload = await step.fetch()
        except ProviderError as exc:
            last_payload = exc.payload
            attempts.append(FetchAttempt(step.strategy_id, False, str(exc)))
            continue

        last_payload = payload if isinstance(payload, dict) else None
        try:
            transcript = normalize(payload, platform, step.language)
        except MalformedPayloadError as exc:
            attempts.append(FetchAttempt(step.strategy_id, False, str(exc)))
            continue

        if transcript.is_empty:
            attempts.append(FetchAttempt(step.strategy_id, False, "empty transcript"))
            continue

        attempts.append(FetchAttempt(step.strategy_id, True))
        return transcript, last_payload

    return None, last_payload


def transcript_search_variants(language: str) -> list[tuple[str, FetchState, dict[str, str]]]:
    """Parameter sets for the transcript-search fallbacks, most specific first."""
    return [
        ("asr_with_language", FetchState.TRYING_FALLBACK_A, {"type": "asr", "language_code": language}),
        ("asr_any_language", FetchState.TRYING_FALLBACK_B, {"type": "asr"}),
        ("language_any_type", FetchState.TRYING_FALLBACK_C, {"language_code": language}),
        ("unconstrained", FetchState.TRYING_FALLBACK_D, {}),
    ]


def _direct_transcript_link(metadata: dict[str, Any]) -> str | None:
    for key in ("serpapi_transcript_link", "transcript_link"):
        link = metadata.get(key)
        if isinstance(link, str) and link:
            return link
    nested = metadata.get("transcript")
    if isinstance(nested, dict):
        link = nested.get("serpapi_link") or nested.get("link")
        if isinstance(link, str) and link:
            return link
    return None


def _alternative_transcript_link(payload: dict[str, Any] | None) -> str | None:
    if not payload:
        return None
    alternatives = payload.get("available_transcripts")
    if not isinstance(alternatives, list) or not alternatives:
        return None
    first = alternatives[0]
    if not isinstance(first, dict):
        return None
    link = first.get("serpapi_link") or first.get("link")
    return link if isinstance(link, str) and link else None


class SerpApiTranscriptStrategy:
    """YouTube transcripts through SerpAPI's video and transcript engines."""

    strategy_id = "serpapi"

    def __init__(self, client: SerpApiClient | None = None, language: str | None = None) -> None:
        self.client = client or SerpApiClient()
        self.language = language or settings.transcript_language

    async def acquire(self, reference: str) -> TranscriptResult:
        """Fetch the transcript for YouTube video id *reference*."""
        if not self.client.configured:
            return TranscriptResult.failed(FailureKind.NOT_CONFIGURED, "SerpAPI key not configured")

        video_id = reference
        attempts: list[FetchAttempt] = []

        try:
            metadata = await self.client.search({"engine": "youtube_video", "v": video_id})
        except ProviderError as exc:
            attempts.append(FetchAttempt("metadata", False, str(exc)))
            logger.info("Metadata lookup failed for %s: %s", video_id, exc)
            return TranscriptResult.failed(
                FailureKind.METADATA_FAILED, "metadata lookup failed", attempts
            )
        attempts.append(FetchAttempt("metadata", True))

        steps: list[FetchStep] = []
        link = _direct_transcript_link(metadata)
        if link:
            steps.append(
                FetchStep(
                    "primary_link",
                    FetchState.TRYING_PRIMARY_LINK,
                    partial(self.client.fetch_link, link),
                )
            )
        else:
            attempts.append(FetchAttempt("primary_link", False, "no direct transcript link"))

        for strategy_id, state, params in transcript_search_variants(self.language):
            query = {"engine": "youtube_video_transcript", "v": video_id, **params}
            steps.append(
                FetchStep(
                    strategy_id,
                    state,
                    partial(self.client.search, query),
                    language=params.get("language_code"),
                )
            )

        transcript, last_payload = await first_success(steps, Platform.YOUTUBE, attempts)

        if transcript is None:
            alternative = _alternative_transcript_link(last_payload)
            if alternative:
                transcript, _ = await first_success(
                    [
                        FetchStep(
                            "alternative",
                            FetchState.TRYING_ALTERNATIVE,
                            partial(self.client.fetch_link, alternative),
                        )
                    ],
                    Platform.YOUTUBE,
                    attempts,
                )

        if transcript is None:
            logger.info("Transcript chain exhausted for %s after %d attempts", video_id, len(attempts))
            return TranscriptResult.failed(FailureKind.EXHAUSTED, EXHAUSTED_REASON, attempts)

        logger.info("Transcript for %s via %s", video_id, attempts[-1].strategy_id)
        return TranscriptResult.success(transcript, attempts)


class NativeYouTubeStrategy:
    """In-process caption extraction with youtube-transcript-api."""

    strategy_id = "native"

    def __init__(
        self,
        language: str | None = None,
        api: YouTubeTranscriptApi | None = None,
    ) -> None:
        preferred = language or settings.transcript_language
        self.languages = list(dict.fromkeys([preferred, "en"]))
        self._api = api or YouTubeTranscriptApi()

    async def acquire(self, reference: str) -> TranscriptResult:
        attempts: list[FetchAttempt] = []
        try:
            fetched = await asyncio.to_thread(self._api.fetch, reference, languages=self.languages)
        except (CouldNotRetrieveTranscript, OSError) as exc:
            reason = (str(exc).splitlines() or [type(exc).__name__])[0]
            attempts.append(FetchAttempt(self.strategy_id, False, reason))
            return TranscriptResult.failed(FailureKind.EXHAUSTED, EXHAUSTED_REASON, attempts)

        # Caption snippets carry seconds; the canonical form uses milliseconds.
        payload = {
            "segments": [
                {
                    "start_ms": round(snippet.start * 1000),
                    "end_ms": round((snippet.start + snippet.duration) * 1000),
                    "text": snippet.text,
                }
                for snippet in fetched
            ],
            "language_code": getattr(fetched, "language_code", None),
        }
        transcript = normalize(payload, Platform.YOUTUBE)
        if transcript.is_empty:
            attempts.append(FetchAttempt(self.strategy_id, False, "empty transcript"))
            return TranscriptResult.failed(FailureKind.EXHAUSTED, EXHAUSTED_REASON, attempts)

        attempts.append(FetchAttempt(self.strategy_id, True))
        return TranscriptResult.success(transcript, attempts)


class SpeechToTextStrategy:
    """Transcribe a media URL with AssemblyAI.

    Used for platforms without a caption track (X, TikTok, Instagram, ...).
    """

    strategy_id = "assemblyai"

    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = settings.assemblyai_api_key if api_key is None else api_key

    def _transcribe(self, media_url: str) -> dict[str, Any]:
        """Run the synchronous AssemblyAI SDK and return a flat-text payload."""
        import assemblyai as aai  # type: ignore[import-untyped]  # no stubs; import inside function

        aai.settings.api_key = self.api_key
        config = aai.TranscriptionConfig(language_detection=True)
        transcript = aai.Transcriber().transcribe(media_url, config=config)
        if transcript.status == aai.TranscriptStatus.error:
            raise ProviderError(f"Transcription failed: {transcript.error}")

        response = transcript.json_response or {}
        return {"text": transcript.text or "", "language_code": response.get("language_code")}

    async def acquire(self, reference: str, platform: Platform = Platform.X) -> TranscriptResult:
        if not self.api_key:
            return TranscriptResult.failed(
                FailureKind.NOT_CONFIGURED, "AssemblyAI API key not configured"
            )

        attempts: list[FetchAttempt] = []
        try:
            payload = await asyncio.to_thread(self._transcribe, reference)
        except ProviderError as exc:
            attempts.append(FetchAttempt(self.strategy_id, False, str(exc)))
            return TranscriptResult.failed(FailureKind.EXHAUSTED, str(exc), attempts)
        except Exception as exc:
            # Bad key, network or provider outage
            logger.exception("AssemblyAI transcription failed for %s", reference)
            attempts.append(FetchAttempt(self.strategy_id, False, str(exc)))
            return TranscriptResult.failed(
                FailureKind.EXHAUSTED, "transcription service unavailable", attempts
            )

        transcript = normalize(payload, platform)
        if transcript.is_empty:
            attempts.append(FetchAttempt(self.strategy_id, False, "empty transcript"))
            return TranscriptResult.failed(FailureKind.EXHAUSTED, EXHAUSTED_REASON, attempts)

        attempts.append(FetchAttempt(self.strategy_id, True))
        return TranscriptResult.success(transcript, attempts)
