"""Provider health checks: ping each configured provider before relying on it."""

import asyncio
import logging
from collections.abc import Sequence

from arena.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _check_one(provider: AIProvider) -> tuple[str, bool, str]:
    """Ping a provider's first candidate model. Returns (label, ok, error_message)."""
    models = provider.models()
    if not models:
        return provider.name(), False, "no candidate models configured"
    label = f"{provider.name()}:{models[0]}"
    try:
        generation = await asyncio.wait_for(
            provider.generate(_PING_PROMPT, models[0]),
            timeout=_TIMEOUT_SEC,
        )
    except Exception as exc:
        return label, False, str(exc) or type(exc).__name__
    if not generation.text.strip():
        return label, False, "Empty AI response"
    return label, True, ""


async def run_health_checks(providers: Sequence[AIProvider]) -> dict[str, tuple[bool, str]]:
    """Ping all providers in parallel.

    Returns:
        Dict mapping "provider:model" -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(p) for p in providers))
    for label, ok, err in results:
        if not ok:
            logger.debug("Health check failed for %s: %s", label, err)
    return {label: (ok, err) for label, ok, err in results}
