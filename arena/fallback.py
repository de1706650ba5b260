"""Model fallback: try providers and their candidate models in priority order."""

import logging
from collections.abc import Sequence

from arena.errors import FAILED_PRECONDITION, ArenaError, GenerationError
from arena.models import Generation
from arena.providers.base import AIProvider, FailureKind, ProviderError
from arena.providers.gemini import GeminiProvider
from arena.providers.nvidia import NvidiaProvider
from config.config_loader import AppConfig

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "google-genai": GeminiProvider,
    "openai": NvidiaProvider,
}

NOT_CONFIGURED_MESSAGE = "Falta configurar GEMINI_API_KEY o NVIDIA_API_KEY para Arena."


def build_providers(config: AppConfig) -> list[AIProvider]:
    """Instantiate every provider that has credentials, in priority order."""
    providers: list[AIProvider] = []
    for name in config.available_providers:
        provider_cfg = config.providers[name]
        provider_cls = PROVIDER_CLASSES.get(provider_cfg.sdk)
        if provider_cls is None:
            logger.warning("Provider '%s' uses unknown sdk '%s', skipping", name, provider_cfg.sdk)
            continue
        try:
            providers.append(provider_cls(provider_cfg))
        except ProviderError as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return providers


async def generate_with_fallback(
    providers: Sequence[AIProvider],
    prompt: str,
    response_schema: dict | None = None,
) -> Generation:
    """Return the first non-empty generation across providers and their models.

    A model-level failure moves on to the provider's next model; any other
    failure abandons the provider and moves on to the next one.

    Raises:
        ArenaError: failed-precondition when no provider is configured.
        GenerationError: when every combination failed; names the last one tried.
    """
    if not providers:
        raise ArenaError(FAILED_PRECONDITION, NOT_CONFIGURED_MESSAGE)

    last_error: GenerationError | None = None

    for provider in providers:
        for model in provider.models():
            try:
                generation = await provider.generate(prompt, model, response_schema)
                if not generation.text.strip():
                    raise ProviderError(provider.name(), "Empty AI response", model=model)
                return generation
            except ProviderError as exc:
                kind = exc.kind
                detail = exc.detail
            except Exception as exc:
                kind = FailureKind.UNKNOWN
                detail = f"Unexpected error: {exc}"

            last_error = GenerationError(
                f"Provider {provider.name()}, model {model} failed: {detail}",
                provider=provider.name(),
                model=model,
                kind=kind,
            )

            if kind.is_model_level:
                logger.warning("Model %s:%s unavailable, trying next model: %s", provider.name(), model, detail)
                continue

            logger.warning("Provider %s failed on %s (%s), trying next provider", provider.name(), model, kind.value)
            break

    if last_error is None:
        raise GenerationError("No AI models configured for Arena.", provider="", model=None, kind=FailureKind.UNKNOWN)
    raise last_error
