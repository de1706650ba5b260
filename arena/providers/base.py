"""Abstract base for all AI model providers, plus the failure taxonomy adapters report."""

from abc import ABC, abstractmethod
from enum import Enum

from arena.models import Generation

# Matched against the lower-cased error message. Order matters: model-level
# signatures win over provider-level ones.
MODEL_NOT_FOUND_MARKERS = ("[404", "not found", "is not supported", "model not found")
RATE_LIMITED_MARKERS = ("quota exceeded", "too many requests", "[429", "resource_exhausted")
UNAVAILABLE_MARKERS = ("[503", "service unavailable", "overloaded", "temporarily unavailable")
AUTH_INVALID_MARKERS = (
    "api key not valid",
    "permission denied",
    "[403",
    "invalid api key",
    "authentication",
)


class FailureKind(Enum):
    MODEL_NOT_FOUND = "model_not_found"
    RATE_LIMITED = "rate_limited"
    AUTH_INVALID = "auth_invalid"
    SERVICE_UNAVAILABLE = "service_unavailable"
    UNKNOWN = "unknown"

    @property
    def is_model_level(self) -> bool:
        """True when the next model of the same provider is worth trying."""
        return self is FailureKind.MODEL_NOT_FOUND


def classify_failure(message: str) -> FailureKind:
    """Map a raw upstream error message onto a FailureKind."""
    text = message.lower()
    if any(marker in text for marker in MODEL_NOT_FOUND_MARKERS):
        return FailureKind.MODEL_NOT_FOUND
    if any(marker in text for marker in RATE_LIMITED_MARKERS):
        return FailureKind.RATE_LIMITED
    if any(marker in text for marker in UNAVAILABLE_MARKERS):
        return FailureKind.SERVICE_UNAVAILABLE
    if any(marker in text for marker in AUTH_INVALID_MARKERS):
        return FailureKind.AUTH_INVALID
    return FailureKind.UNKNOWN


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(
        self,
        provider_name: str,
        message: str,
        model: str | None = None,
        kind: FailureKind | None = None,
    ) -> None:
        self.provider_name = provider_name
        self.model = model
        self.detail = message
        self.kind = kind if kind is not None else classify_failure(message)
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'gemini', 'nvidia')."""
        ...

    @abstractmethod
    def models(self) -> tuple[str, ...]:
        """Return the candidate model identifiers in priority order."""
        ...

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        model: str,
        response_schema: dict | None = None,
    ) -> Generation:
        """Generate a response with one specific model.

        Args:
            prompt: The full prompt text to send.
            model: Model identifier, one of models().
            response_schema: Optional JSON schema for structured output.
                Providers that cannot enforce it ignore it.

        Returns:
            Generation with the extracted text (possibly empty) and the
            "<provider>:<model>" label.

        Raises:
            ProviderError: On API failure or timeout, with kind set.
        """
        ...
