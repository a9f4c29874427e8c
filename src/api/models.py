"""Pydantic request/response schemas for the item chat API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

from src.chat.context import ContentType
from src.chat.models import Role
from src.transcripts.models import Platform


class ChatMessage(BaseModel):
    """A prior turn sent back by the client."""

    role: Role
    content: str | None = None


class ContentItemPayload(BaseModel):
    """The saved item a chat is about."""

    id: str
    content_type: ContentType = ContentType.BOOKMARK
    title: str | None = None
    url: str | None = None
    desc: str | None = None
    content: str | None = None
    raw_text: str | None = None
    tags: list[str] = []
    author: str | None = None
    username: str | None = None
    domain: str | None = None
    published_date: str | None = None
    video_url: str | None = None
    image_urls: list[str] = []


class TranscriptSegmentPayload(BaseModel):
    """A timed transcript fragment (milliseconds)."""

    start_ms: int
    text: str
    end_ms: int | None = None


class TranscriptPayload(BaseModel):
    """A transcript attached to a chat request, in canonical form."""

    full_text: str
    segments: list[TranscriptSegmentPayload] | None = None
    language: str | None = None
    platform: Platform = Platform.YOUTUBE


class ImageDescriptionPayload(BaseModel):
    image_url: str
    description: str


class ChatRequest(BaseModel):
    """Request body for the /api/chat endpoint.

    The client owns the conversation: it sends prior turns and whether the
    auto-switch notice was already shown in this chat session.
    """

    item: ContentItemPayload
    message: str
    history: list[ChatMessage] = []
    transcript: TranscriptPayload | None = None
    image_descriptions: list[ImageDescriptionPayload] = []
    model: str | None = None
    chat_id: str | None = None
    notice_shown: bool = False


class ChatResponse(BaseModel):
    """Response body for the /api/chat endpoint."""

    reply: str
    model: str
    requested_model: str | None = None
    auto_switched: bool = False
    switch_notice: str | None = None
    notice_shown: bool = False
    estimated_tokens: int
    estimated_tokens_display: str
    context_summary: str
    usage: dict[str, Any] | None = None
    failed: bool = False


class TranscriptRequest(BaseModel):
    """Request body for the /api/transcripts endpoint."""

    url: str
    platform: Platform = Platform.YOUTUBE
    format: Literal["json", "text", "srt"] = "json"
    item_id: str | None = None


class FetchAttemptResponse(BaseModel):
    strategy_id: str
    succeeded: bool
    error_reason: str | None = None


class TranscriptResponse(BaseModel):
    """Response body for the /api/transcripts endpoint."""

    platform: Platform
    full_text: str
    language: str | None = None
    segments: list[TranscriptSegmentPayload] | None = None
    formatted: str | None = None
    attempts: list[FetchAttemptResponse] = []
    stored: bool = False
