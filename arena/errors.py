"""Caller-facing errors and the mapping from raw generation failures onto them."""

from arena.providers.base import (
    AUTH_INVALID_MARKERS,
    RATE_LIMITED_MARKERS,
    UNAVAILABLE_MARKERS,
    FailureKind,
)

# Codes mirror the callable-function error codes the client understands.
UNAUTHENTICATED = "unauthenticated"
INVALID_ARGUMENT = "invalid-argument"
RESOURCE_EXHAUSTED = "resource-exhausted"
ALREADY_EXISTS = "already-exists"
FAILED_PRECONDITION = "failed-precondition"
UNAVAILABLE = "unavailable"
DEADLINE_EXCEEDED = "deadline-exceeded"
INTERNAL = "internal"


class ArenaError(Exception):
    """Error surfaced to the caller. `message` is user-safe; `details` only in diagnostic contexts."""

    def __init__(self, code: str, message: str, details: dict | None = None) -> None:
        self.code = code
        self.message = message
        self.details = details
        super().__init__(f"{code}: {message}")

    def to_dict(self) -> dict:
        payload: dict = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class GenerationError(Exception):
    """Every provider/model combination failed. Message names the last provider and model."""

    def __init__(self, message: str, provider: str, model: str | None, kind: FailureKind) -> None:
        self.provider = provider
        self.model = model
        self.kind = kind
        super().__init__(message)


def map_generation_error(raw_message: str, expose_details: bool = False) -> ArenaError:
    """Re-map a raw pipeline failure into one user-safe category."""
    text = raw_message.lower()
    details = {"reason": raw_message} if expose_details else None

    if any(marker in text for marker in UNAVAILABLE_MARKERS):
        return ArenaError(
            UNAVAILABLE,
            "El modelo de IA esta saturado temporalmente. Intenta nuevamente en unos segundos.",
            details,
        )
    if any(marker in text for marker in RATE_LIMITED_MARKERS):
        return ArenaError(
            RESOURCE_EXHAUSTED,
            "Se alcanzo el limite de uso de la API de IA. Intenta nuevamente mas tarde.",
            details,
        )
    if any(marker in text for marker in AUTH_INVALID_MARKERS):
        return ArenaError(
            FAILED_PRECONDITION,
            "La configuracion de API key (Gemini/NVIDIA) no es valida o no tiene permisos.",
            details,
        )
    return ArenaError(INTERNAL, "Error al generar el debate. Intenta de nuevo.", details)
