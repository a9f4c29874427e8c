"""Chat endpoint: answer a question about one saved item."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from src.api.models import ChatRequest, ChatResponse
from src.chat.context import ContentItem, ImageDescription, build_item_context, format_context_metadata
from src.chat.models import ChatTurn, SwitchNotificationState
from src.chat.orchestrator import ChatOrchestrator
from src.config import settings
from src.storage import SupabaseTurnStore
from src.tokens.estimator import format_token_count
from src.transcripts.models import Transcript, TranscriptSegment

router = APIRouter()


def _orchestrator() -> ChatOrchestrator:
    store = SupabaseTurnStore() if settings.supabase_url and settings.supabase_key else None
    return ChatOrchestrator(store=store)


def _transcript(request: ChatRequest) -> Transcript | None:
    if request.transcript is None:
        return None
    segments = None
    if request.transcript.segments:
        segments = tuple(
            TranscriptSegment(start_ms=s.start_ms, text=s.text, end_ms=s.end_ms)
            for s in request.transcript.segments
        )
    return Transcript(
        full_text=request.transcript.full_text,
        platform=request.transcript.platform,
        segments=segments,
        language=request.transcript.language,
    )


@router.post("/api/chat", response_model=ChatResponse)
async def chat(request: ChatRequest) -> ChatResponse:
    """Answer ``request.message`` grounded on the item, its transcript and images.

    Returns HTTP 501 if OPENAI_API_KEY is not configured. Model failures are
    not errors here: the reply carries a fixed apology and ``failed=True``.
    """
    if not settings.openai_api_key:
        raise HTTPException(
            status_code=501,
            detail="Chat not available: OPENAI_API_KEY is not configured.",
        )

    item = ContentItem(**request.item.model_dump())
    context = build_item_context(
        item,
        transcript=_transcript(request),
        image_descriptions=[
            ImageDescription(image_url=d.image_url, description=d.description)
            for d in request.image_descriptions
        ],
    )
    history = [ChatTurn(role=m.role, content=m.content) for m in request.history]

    reply = await _orchestrator().respond(
        context.context_string,
        history,
        request.message,
        SwitchNotificationState(has_shown=request.notice_shown),
        requested_model=request.model,
        chat_id=request.chat_id,
    )

    usage = None
    if reply.usage is not None:
        usage = {
            "prompt_tokens": reply.usage.prompt_tokens,
            "completion_tokens": reply.usage.completion_tokens,
            "total_tokens": reply.usage.total_tokens,
        }

    return ChatResponse(
        reply=reply.assistant_turn.content or "",
        model=reply.model or reply.decision.model,
        requested_model=reply.requested_model,
        auto_switched=reply.decision.auto_switched,
        switch_notice=reply.switch_notice,
        notice_shown=reply.notice_state.has_shown,
        estimated_tokens=reply.estimate.estimated_tokens,
        estimated_tokens_display=format_token_count(reply.estimate.estimated_tokens),
        context_summary=format_context_metadata(context.metadata),
        usage=usage,
        failed=reply.failed,
    )
