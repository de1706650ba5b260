"""Heuristic source detection over generated debate text.

Two kinds of sources are collected: http(s) links and citation-like
mentions. Mentions come from contextual phrases ("segun ...", "according
to ...", "study by ...") and from capitalized entities followed by a year
("Instituto Nacional de 2023", "Acme Institute 2023"). Both lists are
deduplicated and capped, and scanning stops once the combined cap is hit.
"""

import re
from collections.abc import Sequence
from urllib.parse import urlsplit, urlunsplit

from arena.models import DebateSources, Turn

MAX_SOURCE_LINKS = 12
MAX_SOURCE_MENTIONS = 16
MAX_MENTION_CHARS = 120
MIN_CONTEXT_MENTION_CHARS = 8
MIN_ENTITY_CHARS = 3

_URL_IN_TEXT = re.compile(r"https?://[^\s<>\"'`)\]}]+", re.IGNORECASE)
_URL_TRAILING_PUNCTUATION = ".,;:!?)"

_WORD = r"[a-z0-9áéíóúñ-]+"
_SOURCE_CONTEXT = re.compile(
    r"\b(?:"
    r"seg[uú]n|de acuerdo con|conforme a|basado en|datos?\s+de"
    rf"|metaan[aá]lisis(?:\s+{_WORD}){{0,3}}\s+de"
    rf"|estudio(?:\s+{_WORD}){{0,4}}\s+de"
    rf"|informe(?:\s+{_WORD}){{0,4}}\s+de"
    r"|according to|based on|data from|research by|study by|report by"
    r")\s+([^.;:\n]{3,140})",
    re.IGNORECASE,
)
_CAPITALIZED = r"[A-ZÁÉÍÓÚÑ][A-Za-zÁÉÍÓÚÑáéíóúñ0-9&.-]*"
_SOURCE_ENTITY_YEAR = re.compile(
    rf"\b({_CAPITALIZED}(?:\s+{_CAPITALIZED}){{0,5}})\s+(?:de\s+)?((?:19|20)\d{{2}})\b"
)
SOURCE_ENTITY_STOPWORDS = frozenset({
    "turno",
    "persona",
    "tema",
    "resumen",
    "veredicto",
    "ganador",
    "turn",
    "topic",
    "summary",
    "verdict",
    "winner",
})


def _normalize_url_token(raw: str) -> str:
    return raw.strip().rstrip(_URL_TRAILING_PUNCTUATION)


def _canonical_url(token: str) -> str | None:
    try:
        parts = urlsplit(token)
    except ValueError:
        return None
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        return None
    return urlunsplit(parts)


def extract_links_from_text(text: str) -> list[str]:
    """Well-formed http(s) links in order of appearance, deduplicated."""
    links: dict[str, None] = {}
    for token in _URL_IN_TEXT.findall(text):
        url = _canonical_url(_normalize_url_token(token))
        if url:
            links[url] = None
    return list(links)


def normalize_source_mention(raw: str, max_chars: int = MAX_MENTION_CHARS) -> str:
    compact = re.sub(r"\s+", " ", raw).strip()
    trimmed = re.sub(r"^[,;:\-)\]} ]+", "", compact)
    trimmed = re.sub(r"[,;:\-(\[{ ]+$", "", trimmed).strip()
    if len(trimmed) > max_chars:
        return trimmed[:max_chars - 3] + "..."
    return trimmed


def extract_source_mentions_from_text(
    text: str,
    max_mentions: int = MAX_SOURCE_MENTIONS,
    max_chars: int = MAX_MENTION_CHARS,
) -> list[str]:
    if not text.strip():
        return []

    mentions: dict[str, None] = {}

    for match in _SOURCE_CONTEXT.finditer(text):
        mention = normalize_source_mention(match.group(0), max_chars)
        if len(mention) >= MIN_CONTEXT_MENTION_CHARS:
            mentions[mention] = None
            if len(mentions) >= max_mentions:
                return list(mentions)

    for match in _SOURCE_ENTITY_YEAR.finditer(text):
        entity = normalize_source_mention(match.group(1), max_chars)
        year = match.group(2)
        if (
            len(entity) >= MIN_ENTITY_CHARS
            and entity.lower() not in SOURCE_ENTITY_STOPWORDS
            and not entity.isdigit()
        ):
            mentions[f"{entity} {year}"] = None
            if len(mentions) >= max_mentions:
                return list(mentions)

    return list(mentions)


def extract_debate_sources(
    turns: Sequence[Turn],
    summary: str,
    verdict_reason: str,
    max_links: int = MAX_SOURCE_LINKS,
    max_mentions: int = MAX_SOURCE_MENTIONS,
    max_mention_chars: int = MAX_MENTION_CHARS,
) -> DebateSources:
    """Collect links and mentions from every turn, then the summary, then the verdict reason."""
    links: dict[str, None] = {}
    mentions: dict[str, None] = {}
    blocks = [*(turn.text for turn in turns), summary, verdict_reason]

    for block in blocks:
        for link in extract_links_from_text(block):
            if len(links) >= max_links:
                break
            links[link] = None

        for mention in extract_source_mentions_from_text(block, max_mentions, max_mention_chars):
            if len(mentions) >= max_mentions:
                break
            mentions[mention] = None

        if len(links) + len(mentions) >= max_links + max_mentions:
            break

    return DebateSources(source_links=list(links), source_mentions=list(mentions))
