"""Content guardrails applied to debate topics before any model call."""

import re
from dataclasses import dataclass

MIN_TOPIC_CHARS = 5
MAX_TOPIC_CHARS = 240

PROHIBITED_PATTERNS = [
    re.compile(r"\b(matar|asesinar|torturar|mutilar)\b", re.IGNORECASE),
    re.compile(r"\b(kill|murder|torture|mutilate)\b", re.IGNORECASE),
    re.compile(r"\b(ninos?|menores?|infantes?).*(sexual|explicito|pornografia)", re.IGNORECASE),
    re.compile(r"\b(children|minors?|kids?).*(sexual|explicit|porn)", re.IGNORECASE),
    re.compile(r"\b(exterminar|genocidio|supremacia)\b", re.IGNORECASE),
    re.compile(r"\b(exterminate|genocide|supremacy)\b", re.IGNORECASE),
    re.compile(r"\b(bomba|explosivo|terrorista|atacar)\b.*\b(hacer|construir|crear)\b", re.IGNORECASE),
    re.compile(r"\b(bomb|explosive|terrorist|attack)\b.*\b(make|build|create)\b", re.IGNORECASE),
]

BLOCKED_PHRASES = [
    "pornografia infantil",
    "child pornography",
    "como hacer una bomba",
    "how to make a bomb",
]


@dataclass
class GuardrailResult:
    allowed: bool
    reason: str | None = None


def check_topic(topic: str, min_chars: int = MIN_TOPIC_CHARS) -> GuardrailResult:
    """Reject blocked phrases, prohibited patterns and topics shorter than min_chars."""
    normalized = topic.lower().strip()

    for phrase in BLOCKED_PHRASES:
        if phrase in normalized:
            return GuardrailResult(False, "El tema contiene contenido prohibido.")

    for pattern in PROHIBITED_PATTERNS:
        if pattern.search(topic):
            return GuardrailResult(False, "El tema contiene contenido potencialmente danino.")

    if len(normalized) < min_chars:
        return GuardrailResult(False, f"El tema es demasiado corto. Minimo {min_chars} caracteres.")

    return GuardrailResult(True)


def sanitize_topic(topic: str, max_chars: int = MAX_TOPIC_CHARS) -> str:
    """Trim, collapse whitespace runs and truncate. Idempotent."""
    collapsed = re.sub(r"\s+", " ", topic.strip())
    return collapsed[:max_chars].rstrip()
