"""Pick the model a request may safely use given its estimated size."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from src.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelDecision:
    """Model to call, and why it differs from the request when it does."""

    model: str
    auto_switched: bool = False
    reason: str | None = None


def select_model(
    estimated_tokens: int,
    requested_model: str,
    safe_limit: int | None = None,
    large_context_model: str | None = None,
) -> ModelDecision:
    """Keep *requested_model* or escalate to the single large-context model.

    There is exactly one fallback model; no search over a model list.

    Args:
        estimated_tokens: Estimated prompt size.
        requested_model: Model the user or caller asked for.
        safe_limit: Override for ``settings.safe_token_limit``.
        large_context_model: Override for ``settings.large_context_model``.

    Returns:
        A :class:`ModelDecision`. ``reason`` is set iff ``auto_switched``.
    """
    limit = settings.safe_token_limit if safe_limit is None else safe_limit
    fallback = large_context_model or settings.large_context_model

    if estimated_tokens <= limit:
        return ModelDecision(model=requested_model)

    reason = (
        f"{estimated_tokens:,} tokens exceeds safe limit; "
        f"switched to {fallback} for larger context"
    )
    logger.info("Auto-switching from %s: %s", requested_model, reason)
    return ModelDecision(model=fallback, auto_switched=True, reason=reason)
