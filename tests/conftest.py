"""Shared pytest fixtures."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from arena.models import Caller, DebateRequest, Generation
from arena.providers.base import AIProvider, ProviderError
from arena.store import MemoryStore
from config.config_loader import AppConfig, ProviderConfig, load_config

TEST_ENV = {
    "GEMINI_API_KEY": "test-gemini-key",
    "NVIDIA_API_KEY": "test-nvidia-key",
}

VERDICT_JSON = json.dumps({
    "summary": "A defendio los datos y B cuestiono la muestra.",
    "verdict": {"winner": "A", "reason": "Respondio mejor a las objeciones."},
})

TURN_TEXT = (
    "Segun el informe de la OMS, el teletrabajo reduce emisiones. "
    "Ver https://example.org/estudio para el detalle."
)

FIXED_NOW = datetime(2026, 3, 14, 15, 9, 26, tzinfo=timezone.utc)


class MockProvider(AIProvider):
    """Test double AIProvider. Plain prompts get turn_text, schema calls get verdict_text."""

    def __init__(
        self,
        provider_name: str = "mock",
        models: tuple[str, ...] = ("mock-model",),
        turn_text: str = TURN_TEXT,
        verdict_text: str = VERDICT_JSON,
    ) -> None:
        self._name = provider_name
        self._models = models
        self._turn_text = turn_text
        self._verdict_text = verdict_text
        # Shadow the class method with an AsyncMock at the instance level.
        self.generate = AsyncMock(side_effect=self._respond)  # type: ignore[assignment]

    async def _respond(self, prompt: str, model: str, response_schema: dict | None = None) -> Generation:
        text = self._verdict_text if response_schema is not None else self._turn_text
        return Generation(text=text, model_used=f"{self._name}:{model}", latency_sec=0.1)

    def name(self) -> str:
        return self._name

    def models(self) -> tuple[str, ...]:
        return self._models

    async def generate(  # type: ignore[override]
        self, prompt: str, model: str, response_schema: dict | None = None
    ) -> Generation:
        """Default implementation; replaced by AsyncMock in __init__."""
        return await self._respond(prompt, model, response_schema)


def failing_provider(name: str, message: str, models: tuple[str, ...] = ("m1", "m2")) -> MockProvider:
    provider = MockProvider(name, models)
    provider.generate = AsyncMock(side_effect=ProviderError(name, message))
    return provider


@pytest.fixture
def app_config() -> AppConfig:
    return load_config(environ=TEST_ENV)


@pytest.fixture
def unconfigured_app_config() -> AppConfig:
    return load_config(environ={})


@pytest.fixture
def sample_provider_config() -> ProviderConfig:
    return ProviderConfig(
        name="test_provider",
        sdk="test",
        models=("test-model-1", "test-model-2"),
        api_key="test-key",
        timeout_sec=30,
        max_tokens=1024,
        base_url="https://llm.example.com/v1",
        temperature=0.7,
        system_instruction="Sigue las instrucciones.",
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def caller() -> Caller:
    return Caller(uid="user-123")


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def sample_request() -> DebateRequest:
    return DebateRequest(
        topic="  Debe   el teletrabajo ser la norma?  ",
        persona_a="scientist",
        persona_b="skeptic",
    )


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider("gemini", ("gemini-2.5-flash",))
