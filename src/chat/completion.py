"""OpenAI chat-completion client."""

from __future__ import annotations

from collections.abc import Sequence

from openai import AsyncOpenAI

from src.chat.models import ChatCompletion, ChatTurn, ChatUsage
from src.config import NotConfiguredError, settings


class CompletionError(Exception):
    """The completion service answered, but without usable content."""


class ChatCompletionClient:
    """Send a conversation to the chat-completion API."""

    def __init__(self, api_key: str | None = None, client: AsyncOpenAI | None = None) -> None:
        self.api_key = settings.openai_api_key if api_key is None else api_key
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _openai(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise NotConfiguredError("OpenAI API key not configured")
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def complete(
        self,
        messages: Sequence[ChatTurn],
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> ChatCompletion:
        """Run one completion. Turn order is sent unchanged.

        Raises:
            NotConfiguredError: No API key; nothing was sent.
            openai.OpenAIError: Transport or HTTP failure.
            CompletionError: The response carried no message content.
        """
        response = await self._openai().chat.completions.create(
            model=model,
            messages=[m.to_message() for m in messages],  # type: ignore[misc]
            temperature=temperature,
            max_tokens=max_tokens,
        )

        if not response.choices or response.choices[0].message.content is None:
            raise CompletionError("Completion response contained no message content")

        usage = ChatUsage()
        if response.usage:
            usage = ChatUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return ChatCompletion(
            content=response.choices[0].message.content.strip(),
            model=response.model,
            usage=usage,
        )
