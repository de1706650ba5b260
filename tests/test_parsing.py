"""Tests for arena/parsing.py."""

import pytest

from arena.parsing import (
    extract_json_object,
    normalize_turn_text,
    parse_loose_json,
    parse_summary_verdict_response,
)

STRICT = '{"summary":"s","verdict":{"winner":"A","reason":"r"}}'


def test_parses_strict_json():
    parsed = parse_summary_verdict_response(STRICT)
    assert parsed is not None
    assert parsed.summary == "s"
    assert parsed.verdict.winner == "A"
    assert parsed.verdict.reason == "r"


def test_parses_fenced_json():
    parsed = parse_summary_verdict_response(f"```json\n{STRICT}\n```")
    assert parsed is not None
    assert parsed.verdict.winner == "A"


def test_parses_json_surrounded_by_prose():
    raw = f"Aqui tienes el veredicto:\n{STRICT}\nEspero que sea util."
    parsed = parse_summary_verdict_response(raw)
    assert parsed is not None
    assert parsed.summary == "s"


def test_parses_draw_winner():
    parsed = parse_summary_verdict_response('{"summary":"s","verdict":{"winner":"draw","reason":"r"}}')
    assert parsed is not None
    assert parsed.verdict.winner == "draw"


@pytest.mark.parametrize("raw", [
    '{"summary":"s"}',
    '{"summary":"","verdict":{"winner":"X","reason":"r"}}',
    '{"summary":"","verdict":{"winner":"A","reason":"r"}}',
    '{"summary":"s","verdict":{"winner":"X","reason":"r"}}',
    '{"summary":"s","verdict":{"winner":"A","reason":"  "}}',
    '{"summary":"s","verdict":"A"}',
    '["summary", "verdict"]',
    "no json here",
    "",
    '{"summary": "s", "verdict": {',
])
def test_invalid_responses_return_none(raw):
    assert parse_summary_verdict_response(raw) is None


def test_extract_ignores_braces_inside_strings():
    text = 'prefix {"a": "has } and { inside", "b": {"c": "\\"quoted\\" }"}} suffix }'
    assert extract_json_object(text) == '{"a": "has } and { inside", "b": {"c": "\\"quoted\\" }"}}'


def test_extract_returns_none_when_unbalanced():
    assert extract_json_object('{"a": {"b": 1}') is None
    assert extract_json_object("no braces") is None


def test_parse_loose_json_prefers_direct_parse():
    assert parse_loose_json("```\n[1, 2]\n```") == [1, 2]


def test_prose_with_braces_in_summary():
    raw = 'Resultado: {"summary": "Uso de {llaves} en texto", "verdict": {"winner": "B", "reason": "r"}} fin'
    parsed = parse_summary_verdict_response(raw)
    assert parsed is not None
    assert parsed.summary == "Uso de {llaves} en texto"


def test_normalize_plain_text():
    assert normalize_turn_text("  Hola mundo.  ") == "Hola mundo."


def test_normalize_unwraps_text_field():
    assert normalize_turn_text('{"speaker": "A", "text": "  Argumento central. "}') == "Argumento central."


def test_normalize_strips_fences_and_quotes():
    assert normalize_turn_text('```text\n"Argumento con comillas."\n```') == "Argumento con comillas."


def test_normalize_strips_backticks():
    assert normalize_turn_text("`Argumento`") == "Argumento"


def test_normalize_keeps_json_without_text_field():
    raw = '{"argument": "x"}'
    assert normalize_turn_text(raw) == raw


@pytest.mark.parametrize("raw", ["", "   ", "```\n```", '""', "``````"])
def test_normalize_empty_results(raw):
    assert normalize_turn_text(raw) == ""


def test_normalize_deeply_nested_brackets_falls_back_to_text():
    raw = "[" * 100000 + "]" * 100000
    assert normalize_turn_text(raw) == raw


def test_deeply_nested_object_after_prose_returns_none():
    raw = "Here it is: " + '{"a":' * 50000 + "1" + "}" * 50000
    assert parse_summary_verdict_response(raw) is None
    assert parse_loose_json(raw) is None
