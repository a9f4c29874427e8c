"""Compose a chat turn: context, history, model choice, completion, notice state."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

from src.chat.completion import ChatCompletionClient
from src.chat.models import (
    ChatSession,
    ChatTurn,
    ChatUsage,
    Role,
    SwitchNotificationState,
)
from src.config import NotConfiguredError, settings
from src.tokens.estimator import TokenEstimate, estimate_message_tokens
from src.tokens.selector import ModelDecision, select_model

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I apologize, but I could not generate a response at this time. Please try again."
NOT_CONFIGURED_REPLY = "An error occurred. Please check your API key and try again."

SYSTEM_PROMPT_TEMPLATE = (
    "You are a helpful assistant with access to the following content as context. "
    "Use this context to provide accurate and relevant responses to user questions.\n\n"
    "Current Time: {now}\n\n"
    "Context:\n{context}"
)


class TurnStore(Protocol):
    """Durable append-only storage for chat turns."""

    async def append(
        self,
        chat_id: str,
        turn: ChatTurn,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]: ...


@dataclass(frozen=True)
class ChatReply:
    """Everything a caller needs after one user message."""

    assistant_turn: ChatTurn
    decision: ModelDecision
    estimate: TokenEstimate
    notice_state: SwitchNotificationState
    model: str | None = None
    requested_model: str | None = None
    usage: ChatUsage | None = None
    switch_notice: str | None = None
    failed: bool = False


def build_messages(
    context: str,
    previous: Sequence[ChatTurn],
    user_message: str,
    now: datetime | None = None,
) -> list[ChatTurn]:
    """System turn, then prior turns in order, then the new user turn.

    System turns in *previous* are dropped; the fresh system turn replaces them.
    """
    now = now or datetime.now(UTC)
    system = ChatTurn(Role.SYSTEM, SYSTEM_PROMPT_TEMPLATE.format(now=now.isoformat(), context=context))
    history = [t for t in previous if t.role is not Role.SYSTEM]
    return [system, *history, ChatTurn(Role.USER, user_message)]


class ChatOrchestrator:
    """Run one chat turn end to end without ever raising a model failure.

    Notice state is passed in and handed back: the orchestrator holds no
    per-session state of its own, so one instance can serve every item.
    """

    def __init__(
        self,
        client: ChatCompletionClient | None = None,
        store: TurnStore | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.client = client or ChatCompletionClient()
        self.store = store
        self.temperature = settings.chat_temperature if temperature is None else temperature
        self.max_tokens = settings.chat_max_tokens if max_tokens is None else max_tokens

    async def respond(
        self,
        context: str,
        previous: Sequence[ChatTurn],
        user_message: str,
        notice_state: SwitchNotificationState,
        requested_model: str | None = None,
        chat_id: str | None = None,
    ) -> ChatReply:
        """Answer *user_message* about *context*.

        Args:
            context: Item context string (see ``build_item_context``).
            previous: Earlier turns of this chat, oldest first.
            user_message: The new user message.
            notice_state: This session's auto-switch notice state.
            requested_model: Model the user picked; defaults to settings.
            chat_id: When set and a store is configured, both turns are persisted.

        Returns:
            A :class:`ChatReply`. On failure ``failed`` is True and the
            assistant turn holds a fixed apology; no exception escapes.
        """
        requested = requested_model or settings.default_chat_model
        messages = build_messages(context, previous, user_message)

        estimate = estimate_message_tokens(messages, split_sections=True)
        decision = select_model(estimate.estimated_tokens, requested)
        logger.info(
            "Chat request: %d messages, ~%d tokens (%d words), model %s",
            len(messages),
            estimate.estimated_tokens,
            estimate.word_count,
            decision.model,
        )

        await self._persist(chat_id, messages[-1])

        try:
            completion = await self.client.complete(
                messages,
                model=decision.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except NotConfiguredError:
            logger.warning("Chat completion skipped: OpenAI API key not configured")
            return await self._failure(chat_id, NOT_CONFIGURED_REPLY, decision, estimate, notice_state)
        except Exception:
            logger.exception("Chat completion failed (model %s)", decision.model)
            return await self._failure(chat_id, FALLBACK_REPLY, decision, estimate, notice_state)

        switch_notice = None
        if decision.auto_switched and not notice_state.has_shown:
            switch_notice = decision.reason
            notice_state = notice_state.mark_shown()

        assistant = ChatTurn(Role.ASSISTANT, completion.content)
        await self._persist(
            chat_id,
            assistant,
            {
                "model": completion.model,
                "tokens": {
                    "prompt": completion.usage.prompt_tokens,
                    "completion": completion.usage.completion_tokens,
                    "total": completion.usage.total_tokens,
                },
                "auto_switched": decision.auto_switched,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )

        return ChatReply(
            assistant_turn=assistant,
            decision=decision,
            estimate=estimate,
            notice_state=notice_state,
            model=completion.model,
            requested_model=requested if decision.auto_switched else None,
            usage=completion.usage,
            switch_notice=switch_notice,
        )

    async def send(
        self,
        session: ChatSession,
        context: str,
        user_message: str,
        requested_model: str | None = None,
    ) -> ChatReply:
        """:meth:`respond` for a :class:`ChatSession`, updating its turns and notice."""
        reply = await self.respond(
            context,
            session.turns,
            user_message,
            session.notice,
            requested_model=requested_model,
            chat_id=session.chat_id,
        )
        session.turns.extend([ChatTurn(Role.USER, user_message), reply.assistant_turn])
        session.notice = reply.notice_state
        return reply

    async def _failure(
        self,
        chat_id: str | None,
        text: str,
        decision: ModelDecision,
        estimate: TokenEstimate,
        notice_state: SwitchNotificationState,
    ) -> ChatReply:
        assistant = ChatTurn(Role.ASSISTANT, text)
        await self._persist(chat_id, assistant)
        return ChatReply(
            assistant_turn=assistant,
            decision=decision,
            estimate=estimate,
            notice_state=notice_state,
            failed=True,
        )

    async def _persist(
        self,
        chat_id: str | None,
        turn: ChatTurn,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if self.store is None or chat_id is None:
            return
        try:
            await self.store.append(chat_id, turn, metadata)
        except Exception:
            logger.exception("Failed to persist %s turn for chat %s", turn.role, chat_id)
