"""Best-effort cleanup of model output. Nothing here raises on bad input."""

import json
import re

from arena.models import WINNERS, SummaryVerdict, Verdict

_LEADING_FENCE = re.compile(r"^```[a-z]*\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"```$")
_LEADING_QUOTES = re.compile(r"^[\"'`]+")
_TRAILING_QUOTES = re.compile(r"[\"'`]+$")


def extract_json_object(text: str) -> str | None:
    """Return the first balanced {...} span, ignoring braces inside string literals."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaping = False

    for i in range(start, len(text)):
        ch = text[i]

        if in_string:
            if escaping:
                escaping = False
            elif ch == "\\":
                escaping = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return None


def parse_loose_json(raw: str) -> object | None:
    """Parse JSON that may be fenced or surrounded by prose. None when nothing parses."""
    cleaned = raw.strip()
    cleaned = re.sub(r"^```json", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"^```", "", cleaned)
    cleaned = re.sub(r"```$", "", cleaned).strip()

    try:
        return json.loads(cleaned)
    except (ValueError, RecursionError):
        pass

    extracted = extract_json_object(cleaned)
    if extracted is None:
        return None
    try:
        return json.loads(extracted)
    except (ValueError, RecursionError):
        return None


def normalize_turn_text(raw: str) -> str:
    """Clean a free-text turn. Unwraps {"text": ...} echoes, strips fences and quotes."""
    cleaned = raw.strip()
    if not cleaned:
        return ""

    try:
        parsed = json.loads(cleaned)
    except (ValueError, RecursionError):
        parsed = None
    if isinstance(parsed, dict) and isinstance(parsed.get("text"), str):
        return parsed["text"].strip()

    cleaned = _LEADING_FENCE.sub("", cleaned)
    cleaned = _TRAILING_FENCE.sub("", cleaned)
    cleaned = _LEADING_QUOTES.sub("", cleaned)
    cleaned = _TRAILING_QUOTES.sub("", cleaned)
    return cleaned.strip()


def _non_empty_str(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def parse_summary_verdict_response(raw: str) -> SummaryVerdict | None:
    """Extract {summary, verdict: {winner, reason}}; None if absent or invalid."""
    data = parse_loose_json(raw)
    if not isinstance(data, dict):
        return None

    summary = data.get("summary")
    verdict = data.get("verdict")
    if not _non_empty_str(summary) or not isinstance(verdict, dict):
        return None

    winner = verdict.get("winner")
    reason = verdict.get("reason")
    if winner not in WINNERS or not _non_empty_str(reason):
        return None

    return SummaryVerdict(summary=summary, verdict=Verdict(winner=winner, reason=reason))
