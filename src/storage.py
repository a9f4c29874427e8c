"""Supabase storage helpers for chat messages and video transcripts."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from supabase import Client, create_client

from src.config import settings

if TYPE_CHECKING:
    from src.chat.models import ChatTurn
    from src.transcripts.models import Transcript


def get_supabase_client() -> Client:
    """Create and return a Supabase client from settings."""
    return create_client(settings.supabase_url, settings.supabase_key)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def store_chat_message(
    client: Client,
    chat_id: str,
    turn: ChatTurn,
    metadata: dict[str, Any] | None = None,
    chat_type: str = "item",
) -> dict[str, Any]:
    """Append one turn to ``chat_messages`` and return the saved row."""
    result = (
        client.table("chat_messages")
        .insert(
            {
                "chat_id": chat_id,
                "chat_type": chat_type,
                "role": turn.role.value,
                "content": turn.content or "",
                "metadata": metadata or {},
                "created_at": _now(),
            }
        )
        .execute()
    )
    rows = cast(list[dict[str, Any]], result.data)
    return rows[0] if rows else {}


def transcript_row(item_id: str, transcript: Transcript) -> dict[str, Any]:
    """Build a ``video_transcripts`` row for *transcript*."""
    now = _now()
    return {
        "item_id": item_id,
        "transcript": transcript.full_text,
        "segments": [s.to_dict() for s in transcript.segments] if transcript.segments else None,
        "platform": transcript.platform.value,
        "language": transcript.language or "en",
        "fetched_at": now,
        "updated_at": now,
    }


def store_transcript(client: Client, item_id: str, transcript: Transcript) -> dict[str, Any]:
    """Upsert the transcript for *item_id* (one transcript per item)."""
    result = (
        client.table("video_transcripts")
        .upsert(transcript_row(item_id, transcript), on_conflict="item_id")
        .execute()
    )
    rows = cast(list[dict[str, Any]], result.data)
    return rows[0] if rows else {}


class SupabaseTurnStore:
    """Async turn store backed by the ``chat_messages`` table."""

    def __init__(self, client: Client | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    async def append(
        self,
        chat_id: str,
        turn: ChatTurn,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        # supabase-py is synchronous; keep it off the event loop.
        return await asyncio.to_thread(store_chat_message, self.client, chat_id, turn, metadata)
