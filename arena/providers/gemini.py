"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import time

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from arena.models import Generation
from arena.providers.base import AIProvider, ProviderError
from config.config_loader import ProviderConfig

logger = logging.getLogger(__name__)


def describe_api_error(exc: Exception) -> str:
    """Render SDK errors as "[<code> <status>] <message>" so status markers classify."""
    if isinstance(exc, genai_errors.APIError):
        status = f" {exc.status}" if exc.status else ""
        return f"[{exc.code}{status}] {exc.message or exc}"
    return str(exc)


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        if not config.api_key:
            raise ProviderError(config.name, "Missing API key")
        self._client = genai.Client(api_key=config.api_key)

    def name(self) -> str:
        return self._config.name

    def models(self) -> tuple[str, ...]:
        return self._config.models

    def _generation_config(self, response_schema: dict | None) -> genai_types.GenerateContentConfig:
        if response_schema is None:
            return genai_types.GenerateContentConfig(max_output_tokens=self._config.max_tokens)
        return genai_types.GenerateContentConfig(
            max_output_tokens=self._config.max_tokens,
            response_mime_type="application/json",
            response_schema=response_schema,
        )

    async def generate(
        self,
        prompt: str,
        model: str,
        response_schema: dict | None = None,
    ) -> Generation:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=model,
                    contents=prompt,
                    config=self._generation_config(response_schema),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(
                self._config.name, f"Request timed out after {self._config.timeout_sec}s", model=model
            ) from exc
        except Exception as exc:
            raise ProviderError(self._config.name, describe_api_error(exc), model=model) from exc

        latency = time.monotonic() - start

        logger.info("Gemini %s: %.2fs", model, latency)

        return Generation(
            text=response.text or "",
            model_used=f"{self._config.name}:{model}",
            latency_sec=latency,
        )
