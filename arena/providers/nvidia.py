"""NVIDIA provider using openai SDK (OpenAI-compatible chat completions API)."""

import asyncio
import logging
import time

import openai
from openai import NOT_GIVEN, AsyncOpenAI

from arena.models import Generation
from arena.providers.base import AIProvider, ProviderError
from config.config_loader import ProviderConfig

logger = logging.getLogger(__name__)


def extract_message_text(content: object) -> str:
    """Flatten choices[0].message.content, which may be a string or a list of fragments."""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            text = item.get("text") if isinstance(item, dict) else getattr(item, "text", None)
            parts.append(text if isinstance(text, str) else "")
        return "\n".join(parts).strip()
    return ""


def describe_api_error(exc: Exception) -> str:
    if isinstance(exc, openai.APIStatusError):
        return f"[{exc.status_code}] {exc.message or 'NVIDIA upstream error'}"
    return str(exc)


class NvidiaProvider(AIProvider):
    """NVIDIA-hosted models via OpenAI-compatible API."""

    def __init__(self, config: ProviderConfig) -> None:
        self._config = config
        if not config.api_key:
            raise ProviderError(config.name, "Missing API key")
        if not config.base_url:
            raise ProviderError(config.name, "base_url is required for NVIDIA provider")
        self._client = AsyncOpenAI(api_key=config.api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def models(self) -> tuple[str, ...]:
        return self._config.models

    def _messages(self, prompt: str) -> list[dict]:
        messages = []
        if self._config.system_instruction:
            messages.append({"role": "system", "content": self._config.system_instruction})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(
        self,
        prompt: str,
        model: str,
        response_schema: dict | None = None,
    ) -> Generation:
        # Structured output is not requested here; the prompt carries the JSON contract.
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=model,
                    messages=self._messages(prompt),
                    temperature=self._config.temperature if self._config.temperature is not None else NOT_GIVEN,
                    max_tokens=self._config.max_tokens,
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

        choice = response.choices[0] if response.choices else None
        text = extract_message_text(choice.message.content) if choice and choice.message else ""

        logger.info("NVIDIA %s: %.2fs", model, latency)

        return Generation(
            text=text,
            model_used=f"{self._config.name}:{model}",
            latency_sec=latency,
        )
