"""Deterministic prompt rendering for turn and summary/verdict generation. No I/O."""

from collections.abc import Sequence

from arena.models import Persona, Turn
from config.config_loader import PromptsConfig

_FALLBACK_LANGUAGE = "en"

# Passed to providers that support structured output for the verdict call.
SUMMARY_VERDICT_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "summary": {"type": "STRING"},
        "verdict": {
            "type": "OBJECT",
            "properties": {
                "winner": {"type": "STRING", "format": "enum", "enum": ["A", "B", "draw"]},
                "reason": {"type": "STRING"},
            },
            "required": ["winner", "reason"],
        },
    },
    "required": ["summary", "verdict"],
}


def language_instruction(prompts: PromptsConfig, language: str) -> str:
    if language in prompts.languages:
        return prompts.languages[language]
    return prompts.languages.get(_FALLBACK_LANGUAGE, "")


def _format_turns(
    prompts: PromptsConfig,
    persona_a: Persona,
    persona_b: Persona,
    turns: Sequence[Turn],
) -> str:
    return "\n\n".join(
        prompts.history_line.format(
            number=i + 1,
            speaker=turn.speaker,
            name=persona_a.name if turn.speaker == "A" else persona_b.name,
            text=turn.text,
        )
        for i, turn in enumerate(turns)
    )


def build_turn_prompt(
    prompts: PromptsConfig,
    topic: str,
    persona_a: Persona,
    persona_b: Persona,
    speaker: str,
    turn_number: int,
    prior_turns: Sequence[Turn],
    language: str = "es",
) -> str:
    """Prompt for one turn, written as `speaker`, answering all prior turns.

    turn_number is 1-indexed.
    """
    current, counterpart = (persona_a, persona_b) if speaker == "A" else (persona_b, persona_a)
    history = (
        _format_turns(prompts, persona_a, persona_b, prior_turns)
        if prior_turns
        else prompts.empty_history
    )
    return prompts.turn.format(
        language_instruction=language_instruction(prompts, language),
        persona_name=current.name,
        persona_style=current.style,
        counterpart_name=counterpart.name,
        counterpart_style=counterpart.style,
        speaker=speaker,
        turn_number=turn_number,
        topic=topic,
        history=history,
    )


def build_summary_verdict_prompt(
    prompts: PromptsConfig,
    topic: str,
    persona_a: Persona,
    persona_b: Persona,
    turns: Sequence[Turn],
    language: str = "es",
) -> str:
    return prompts.summary_verdict.format(
        language_instruction=language_instruction(prompts, language),
        topic=topic,
        persona_a_name=persona_a.name,
        persona_b_name=persona_b.name,
        turns=_format_turns(prompts, persona_a, persona_b, turns),
    )
