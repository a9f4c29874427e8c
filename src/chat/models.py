"""Data models for chat turns, completions and per-session notice state."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum


class Role(StrEnum):
    """Author of a chat turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatTurn:
    """One message in a conversation. ``content`` may be absent."""

    role: Role
    content: str | None = None

    def to_message(self) -> dict[str, str]:
        """Render as an OpenAI-style chat message."""
        return {"role": self.role.value, "content": self.content or ""}


Conversation = list[ChatTurn]


@dataclass(frozen=True)
class ChatUsage:
    """Token usage reported by the completion service."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class ChatCompletion:
    """Successful completion returned by the chat-completion service."""

    content: str
    model: str
    usage: ChatUsage = field(default_factory=ChatUsage)


@dataclass(frozen=True)
class SwitchNotificationState:
    """Whether this chat session has already told the user about an auto-switch.

    Immutable: the orchestrator hands back a new value instead of mutating a
    shared flag, so two sessions can never see each other's state.
    """

    has_shown: bool = False

    def mark_shown(self) -> SwitchNotificationState:
        return replace(self, has_shown=True)


@dataclass
class ChatSession:
    """Chat session for one item: its turns and its notice state."""

    item_id: str
    chat_id: str | None = None
    turns: Conversation = field(default_factory=list)
    notice: SwitchNotificationState = field(default_factory=SwitchNotificationState)


class SessionRegistry:
    """In-process chat sessions keyed by item id, for callers that embed the
    orchestrator directly (see ``ChatOrchestrator.send``).

    The HTTP API does not use it: ``/api/chat`` is stateless and the client
    echoes ``notice_shown`` instead. Starting a session for an item always
    begins with fresh notice state.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ChatSession] = {}

    def start(self, item_id: str, chat_id: str | None = None) -> ChatSession:
        session = ChatSession(item_id=item_id, chat_id=chat_id)
        self._sessions[item_id] = session
        return session

    def get(self, item_id: str) -> ChatSession | None:
        return self._sessions.get(item_id)

    def get_or_start(self, item_id: str, chat_id: str | None = None) -> ChatSession:
        session = self._sessions.get(item_id)
        if session is None:
            session = self.start(item_id, chat_id)
        return session

    def end(self, item_id: str) -> None:
        self._sessions.pop(item_id, None)
