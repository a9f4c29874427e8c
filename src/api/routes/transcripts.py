"""Transcript endpoint: acquire, normalize and optionally store a transcript."""

from __future__ import annotations

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, HTTPException

from src.api.models import (
    FetchAttemptResponse,
    TranscriptRequest,
    TranscriptResponse,
    TranscriptSegmentPayload,
)
from src.config import settings
from src.storage import get_supabase_client, store_transcript
from src.transcripts.models import FailureKind, Transcript, TranscriptResult
from src.transcripts.normalizer import to_subtitle_format, to_timestamped_text
from src.transcripts.provider import SerpApiClient
from src.transcripts.service import TranscriptService

logger = logging.getLogger(__name__)

router = APIRouter()

_FAILURE_STATUS: dict[FailureKind, int] = {
    FailureKind.NOT_CONFIGURED: 501,
    FailureKind.INVALID_REFERENCE: 400,
    FailureKind.UNSUPPORTED_PLATFORM: 400,
    FailureKind.METADATA_FAILED: 502,
    FailureKind.EXHAUSTED: 404,
}


async def _acquire(request: TranscriptRequest) -> TranscriptResult:
    serpapi = SerpApiClient()
    try:
        return await TranscriptService(serpapi=serpapi).acquire(request.platform, request.url)
    finally:
        await serpapi.aclose()


def _raise_for_failure(result: TranscriptResult) -> NoReturn:
    failure = result.failure or FailureKind.EXHAUSTED
    status = _FAILURE_STATUS.get(failure, 404)
    if failure is FailureKind.EXHAUSTED:
        detail = "Transcript not available"
    elif failure is FailureKind.NOT_CONFIGURED:
        detail = f"Transcripts not available: {result.reason}."
    elif failure is FailureKind.METADATA_FAILED:
        detail = "Transcript provider lookup failed. Please try again."
    else:
        detail = result.reason or "Invalid transcript request"
    raise HTTPException(status_code=status, detail=detail)


def _format(transcript: Transcript, fmt: str) -> str | None:
    if fmt == "text":
        return to_timestamped_text(transcript)
    if fmt == "srt":
        return to_subtitle_format(transcript)
    return None


@router.post("/api/transcripts", response_model=TranscriptResponse)
async def fetch_transcript(request: TranscriptRequest) -> TranscriptResponse:
    """Acquire a transcript for a YouTube video or a speech-to-text platform.

    Status codes:
    - 501: no provider key configured for this platform
    - 400: unparseable reference or unsupported platform
    - 502: the provider's video lookup failed
    - 404: every strategy ran and none produced a transcript
    """
    result = await _acquire(request)
    if result.transcript is None:
        _raise_for_failure(result)
    transcript = result.transcript

    stored = False
    if request.item_id and settings.supabase_url and settings.supabase_key:
        try:
            await asyncio.to_thread(
                store_transcript, get_supabase_client(), request.item_id, transcript
            )
            stored = True
        except Exception:
            logger.exception("Failed to store transcript for item %s", request.item_id)

    return TranscriptResponse(
        platform=transcript.platform,
        full_text=transcript.full_text,
        language=transcript.language,
        segments=[
            TranscriptSegmentPayload(start_ms=s.start_ms, text=s.text, end_ms=s.end_ms)
            for s in transcript.segments
        ]
        if transcript.segments
        else None,
        formatted=_format(transcript, request.format),
        attempts=[
            FetchAttemptResponse(
                strategy_id=a.strategy_id, succeeded=a.succeeded, error_reason=a.error_reason
            )
            for a in result.attempts
        ],
        stored=stored,
    )
