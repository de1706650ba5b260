"""Debate orchestration: validate, reserve quota, generate six turns and a verdict, finalize."""

import asyncio
import logging
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from arena.errors import (
    ALREADY_EXISTS,
    DEADLINE_EXCEEDED,
    INVALID_ARGUMENT,
    RESOURCE_EXHAUSTED,
    UNAUTHENTICATED,
    ArenaError,
    map_generation_error,
)
from arena.fallback import generate_with_fallback
from arena.guardrails import check_topic, sanitize_topic
from arena.models import (
    TURN_COUNT,
    Caller,
    CreateDebateResult,
    Debate,
    DebateMetrics,
    DebateRequest,
    DebateSources,
    Persona,
    SummaryVerdict,
    Turn,
    Usage,
)
from arena.parsing import normalize_turn_text, parse_summary_verdict_response
from arena.personas import get_persona, list_personas
from arena.prompts import SUMMARY_VERDICT_SCHEMA, build_summary_verdict_prompt, build_turn_prompt
from arena.providers.base import AIProvider
from arena.rate_limit import check_rate_limit, get_usage
from arena.sources import extract_debate_sources
from arena.store import AlreadyExistsError, DocumentStore
from config.config_loader import AppConfig

logger = logging.getLogger(__name__)

ARENA_DEBATES_COLLECTION = "arenaDebates"
CLIENT_DEBATE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,120}$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def debate_path(debate_id: str) -> str:
    return f"{ARENA_DEBATES_COLLECTION}/{debate_id}"


def turns_path(debate_id: str) -> str:
    return f"{debate_path(debate_id)}/turns"


@dataclass
class _ValidatedRequest:
    topic: str
    persona_a: Persona
    persona_b: Persona
    visibility: str
    client_debate_id: str | None


def _invalid(message: str) -> ArenaError:
    return ArenaError(INVALID_ARGUMENT, message)


def validate_request(request: DebateRequest, config: AppConfig) -> _ValidatedRequest:
    """Check the payload in the order the client expects errors. Raises ArenaError."""
    if not request.topic or not isinstance(request.topic, str):
        raise _invalid("El tema es requerido.")
    if (
        not request.persona_a
        or not isinstance(request.persona_a, str)
        or not request.persona_b
        or not isinstance(request.persona_b, str)
    ):
        raise _invalid("Debes seleccionar dos personas validas.")

    topic = sanitize_topic(request.topic)
    max_chars = config.limits.max_topic_chars
    if len(topic) > max_chars:
        raise _invalid(f"El tema no puede exceder {max_chars} caracteres.")

    guardrail = check_topic(topic, config.limits.min_topic_chars)
    if not guardrail.allowed:
        logger.warning("Topic rejected by guardrails: %s", guardrail.reason)
        raise _invalid(guardrail.reason or "Tema no permitido.")

    if request.persona_a == request.persona_b:
        raise _invalid("Las personas deben ser diferentes.")
    if request.client_debate_id and not CLIENT_DEBATE_ID_PATTERN.match(request.client_debate_id):
        raise _invalid("El identificador del debate no es valido.")

    persona_a = get_persona(config.personas, request.persona_a)
    persona_b = get_persona(config.personas, request.persona_b)
    if persona_a is None or persona_b is None:
        raise _invalid("Personas invalidas.")

    return _ValidatedRequest(
        topic=topic,
        persona_a=persona_a,
        persona_b=persona_b,
        visibility="private" if request.visibility == "private" else "public",
        client_debate_id=request.client_debate_id or None,
    )


async def _generate_debate(
    debate_id: str,
    req: _ValidatedRequest,
    config: AppConfig,
    store: DocumentStore,
    providers: Sequence[AIProvider],
    now: Callable[[], datetime],
    started: float,
) -> tuple[SummaryVerdict, DebateSources]:
    """Run the six turns and the verdict, then write the single final update."""
    language = config.defaults.language
    turns: list[Turn] = []
    model_used = ""
    prompt_chars = 0
    output_chars = 0

    for idx in range(TURN_COUNT):
        speaker = "A" if idx % 2 == 0 else "B"
        prompt = build_turn_prompt(
            config.prompts, req.topic, req.persona_a, req.persona_b, speaker, idx + 1, turns, language
        )
        prompt_chars += len(prompt)

        generation = await generate_with_fallback(providers, prompt)
        model_used = generation.model_used

        text = normalize_turn_text(generation.text)
        if not text:
            raise RuntimeError(f"Generated empty turn for speaker {speaker}")

        output_chars += len(text)
        turn = Turn(idx=idx, speaker=speaker, text=text, created_at=now())
        turns.append(turn)
        await store.add(turns_path(debate_id), turn.to_document())
        logger.info("Debate %s turn %d (%s) via %s", debate_id, idx, speaker, model_used)

    verdict_prompt = build_summary_verdict_prompt(
        config.prompts, req.topic, req.persona_a, req.persona_b, turns, language
    )
    prompt_chars += len(verdict_prompt)
    generation = await generate_with_fallback(providers, verdict_prompt, SUMMARY_VERDICT_SCHEMA)
    model_used = generation.model_used

    parsed = parse_summary_verdict_response(generation.text)
    if parsed is None:
        raise RuntimeError("Failed to parse summary and verdict response")
    output_chars += len(parsed.summary) + len(parsed.verdict.reason)

    sources = extract_debate_sources(
        turns,
        parsed.summary,
        parsed.verdict.reason,
        max_links=config.limits.max_source_links,
        max_mentions=config.limits.max_source_mentions,
        max_mention_chars=config.limits.max_mention_chars,
    )
    metrics = DebateMetrics(
        tokens_in=prompt_chars,
        tokens_out=output_chars,
        latency_ms=int((time.monotonic() - started) * 1000),
        model=model_used,
    )

    await store.update(
        debate_path(debate_id),
        {
            "status": "done",
            "summary": parsed.summary,
            "verdict": parsed.verdict.to_document(),
            "metrics": metrics.to_document(),
            # linkCount predates sourceCount and is kept equal to it for older clients
            "linkCount": sources.source_count,
            "sourceCount": sources.source_count,
            "sourceLinks": sources.source_links,
            "sourceMentions": sources.source_mentions,
        },
    )
    return parsed, sources


async def _mark_failed(store: DocumentStore, debate_id: str, message: str) -> None:
    """Flip the record to error. Never raises: the original failure must reach the caller."""
    try:
        await store.update(debate_path(debate_id), {"status": "error", "error": message})
    except Exception as exc:
        logger.error("Could not record failure for debate %s: %s", debate_id, exc)


async def _fail_generation(store: DocumentStore, debate_id: str, exc: Exception, config: AppConfig) -> ArenaError:
    """Record a pipeline failure and return its caller-facing mapping."""
    message = str(exc) or "Unknown error"
    logger.error("Debate %s failed: %s", debate_id, message)
    await _mark_failed(store, debate_id, message)
    return map_generation_error(message, config.expose_error_details)


async def create_debate(
    request: DebateRequest,
    caller: Caller,
    config: AppConfig,
    store: DocumentStore,
    providers: Sequence[AIProvider],
    now: Callable[[], datetime] = _utc_now,
) -> CreateDebateResult:
    """Create and fully generate one debate.

    Args:
        request: Raw request fields; validated here.
        caller: The authenticated caller, uid None when anonymous.
        config: Immutable application config.
        store: Document store holding debates and usage counters.
        providers: Providers with credentials, in priority order.
        now: Clock, injectable for tests.

    Returns:
        CreateDebateResult with the debate id, summary, verdict and remaining quota.

    Raises:
        ArenaError: For every rejection or failure, already mapped to a user-safe message.
    """
    if not caller.uid:
        raise ArenaError(UNAUTHENTICATED, "Debes iniciar sesion para crear un debate.")

    req = validate_request(request, config)

    rate_limit = await check_rate_limit(store, caller.uid, config.limits.daily_limit, now)
    if not rate_limit.allowed:
        raise ArenaError(
            RESOURCE_EXHAUSTED,
            "Has alcanzado el limite diario de debates. "
            f"Reinicia a las {rate_limit.reset_at:%H:%M} UTC.",
            {"remaining": 0, "resetAt": rate_limit.reset_at.isoformat()},
        )

    debate = Debate(
        id=req.client_debate_id or store.new_id(),
        created_at=now(),
        created_by=caller.uid,
        topic=req.topic,
        persona_a=req.persona_a.id,
        persona_b=req.persona_b.id,
        visibility=req.visibility,
        language=config.defaults.language,
    )
    started = time.monotonic()

    try:
        await store.create(debate_path(debate.id), debate.to_document())
    except AlreadyExistsError as exc:
        raise ArenaError(
            ALREADY_EXISTS,
            "Ya existe un debate en proceso con ese identificador. Intenta de nuevo.",
        ) from exc

    logger.info(
        "Debate %s running: %s vs %s on %r", debate.id, debate.persona_a, debate.persona_b, debate.topic
    )

    timeout = config.defaults.debate_timeout_sec
    deadline = asyncio.timeout(timeout)
    try:
        async with deadline:
            parsed, sources = await _generate_debate(debate.id, req, config, store, providers, now, started)
    except TimeoutError as exc:
        # a TimeoutError from a collaborator is not the debate deadline
        if not deadline.expired():
            raise await _fail_generation(store, debate.id, exc, config) from exc
        message = f"Debate generation timed out after {timeout}s"
        logger.error("Debate %s failed: %s", debate.id, message)
        await _mark_failed(store, debate.id, message)
        raise ArenaError(
            DEADLINE_EXCEEDED,
            "La generacion del debate tardo demasiado. Intenta de nuevo.",
            {"reason": message} if config.expose_error_details else None,
        ) from exc
    except ArenaError as exc:
        logger.error("Debate %s failed: %s", debate.id, exc.message)
        await _mark_failed(store, debate.id, exc.message)
        raise
    except Exception as exc:
        raise await _fail_generation(store, debate.id, exc, config) from exc

    logger.info(
        "Debate %s done: winner %s, %d sources", debate.id, parsed.verdict.winner, sources.source_count
    )
    return CreateDebateResult(
        debate_id=debate.id,
        summary=parsed.summary,
        verdict=parsed.verdict,
        remaining=rate_limit.remaining,
    )


async def get_arena_usage(
    caller: Caller,
    config: AppConfig,
    store: DocumentStore,
    now: Callable[[], datetime] = _utc_now,
) -> Usage:
    if not caller.uid:
        raise ArenaError(UNAUTHENTICATED, "Debes iniciar sesion.")
    return await get_usage(store, caller.uid, config.limits.daily_limit, now)


def get_arena_personas(config: AppConfig) -> list[dict]:
    return [
        {"id": p.id, "name": p.name, "description": p.description, "style": p.style}
        for p in list_personas(config.personas)
    ]


async def load_turns(store: DocumentStore, debate_id: str) -> list[Turn]:
    """Turns of a debate in idx order."""
    docs = await store.list_documents(turns_path(debate_id))
    turns = [
        Turn(idx=int(doc["idx"]), speaker=doc["speaker"], text=doc["text"], created_at=doc.get("createdAt"))
        for _, doc in docs
    ]
    return sorted(turns, key=lambda t: t.idx)
