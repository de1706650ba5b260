"""Pure dataclasses for the Arena debate pipeline. No logic beyond document mapping, no deps."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Speaker = Literal["A", "B"]
Winner = Literal["A", "B", "draw"]
Visibility = Literal["public", "private"]

WINNERS: tuple[str, ...] = ("A", "B", "draw")
TURN_COUNT = 6


@dataclass(frozen=True)
class Persona:
    id: str
    name: str
    description: str
    style: str          # injected into prompts verbatim


@dataclass
class DebateRequest:
    topic: object                   # raw caller payload, validated by the orchestrator
    persona_a: object
    persona_b: object
    visibility: str = "public"
    client_debate_id: str | None = None

    @classmethod
    def from_payload(cls, payload: object) -> "DebateRequest":
        data = payload if isinstance(payload, dict) else {}
        client_id = data.get("clientDebateId")
        return cls(
            topic=data.get("topic"),
            persona_a=data.get("personaA"),
            persona_b=data.get("personaB"),
            visibility="private" if data.get("visibility") == "private" else "public",
            client_debate_id=client_id.strip() if isinstance(client_id, str) else None,
        )


@dataclass
class Caller:
    uid: str | None     # None when the request is unauthenticated


@dataclass
class Turn:
    idx: int
    speaker: Speaker
    text: str
    created_at: datetime | None = None

    def to_document(self) -> dict:
        return {
            "idx": self.idx,
            "speaker": self.speaker,
            "text": self.text,
            "createdAt": self.created_at,
        }


@dataclass
class Verdict:
    winner: Winner
    reason: str

    def to_document(self) -> dict:
        return {"winner": self.winner, "reason": self.reason}


@dataclass
class SummaryVerdict:
    summary: str
    verdict: Verdict


@dataclass
class DebateMetrics:
    tokens_in: int          # prompt characters across all calls
    tokens_out: int         # normalized output characters
    latency_ms: int
    model: str | None = None

    def to_document(self) -> dict:
        return {
            "tokensIn": self.tokens_in,
            "tokensOut": self.tokens_out,
            "latencyMs": self.latency_ms,
            "model": self.model,
        }


@dataclass
class DebateSources:
    source_links: list[str] = field(default_factory=list)
    source_mentions: list[str] = field(default_factory=list)

    @property
    def source_count(self) -> int:
        return len(self.source_links) + len(self.source_mentions)


@dataclass
class Debate:
    """A debate record at creation time. Later fields arrive through the final update."""

    id: str
    created_at: datetime
    created_by: str
    topic: str
    persona_a: str
    persona_b: str
    visibility: Visibility = "public"
    language: str = "es"
    mode: str = "debate"

    def to_document(self) -> dict:
        """Initial document: status running, no sources yet, no likes."""
        return {
            "createdAt": self.created_at,
            "createdBy": self.created_by,
            "topic": self.topic,
            "mode": self.mode,
            "personaA": self.persona_a,
            "personaB": self.persona_b,
            "status": "running",
            "visibility": self.visibility,
            "language": self.language,
            "linkCount": 0,
            "sourceCount": 0,
            "sourceLinks": [],
            "sourceMentions": [],
            "likesCount": 0,
        }


@dataclass
class Generation:
    text: str
    model_used: str         # "<provider>:<model>"
    latency_sec: float = 0.0


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: datetime


@dataclass
class Usage:
    used: int
    limit: int
    remaining: int

    def to_dict(self) -> dict:
        return {"used": self.used, "limit": self.limit, "remaining": self.remaining}


@dataclass
class CreateDebateResult:
    debate_id: str
    summary: str
    verdict: Verdict
    remaining: int
    success: bool = True

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "debateId": self.debate_id,
            "summary": self.summary,
            "verdict": self.verdict.to_document(),
            "remaining": self.remaining,
        }
