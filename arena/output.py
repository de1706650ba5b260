"""Rich console output and markdown file save for debates."""

import logging
import re
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from arena.models import Persona, Turn, Usage

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_WINNER_LABELS = {"A": "A", "B": "B", "draw": "Empate"}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _speaker_name(speaker: str, persona_a: Persona, persona_b: Persona) -> str:
    return persona_a.name if speaker == "A" else persona_b.name


def print_turns(turns: Sequence[Turn], persona_a: Persona, persona_b: Persona) -> None:
    console.print(Rule("[bold cyan]Debate[/bold cyan]"))
    for turn in turns:
        console.print(
            Panel(
                Text(turn.text),
                title=f"[bold]Turno {turn.idx + 1}[/bold] ({turn.speaker} - {_speaker_name(turn.speaker, persona_a, persona_b)})",
                border_style="cyan" if turn.speaker == "A" else "magenta",
            )
        )


def print_verdict(debate: dict) -> None:
    """Print summary, verdict and detected sources of a finished debate document.

    Summary, reason and sources are model output and never parsed as rich markup.
    """
    console.print(Rule("[bold green]Veredicto[/bold green]"))
    verdict = debate.get("verdict") or {}
    metrics = debate.get("metrics") or {}
    console.print(
        Text(
            f"Modelo: {metrics.get('model', '?')} | "
            f"Latencia: {metrics.get('latencyMs', 0) / 1000:.1f}s | "
            f"Fuentes: {debate.get('sourceCount', 0)}",
            style="dim",
        )
    )
    console.print(Text(debate.get("summary", "")))
    console.print(
        f"\n[bold]Ganador:[/bold] {_WINNER_LABELS.get(verdict.get('winner'), '?')} - {escape(verdict.get('reason', ''))}"
    )
    for link in debate.get("sourceLinks", []):
        console.print(Text(f"  {link}", style="blue"))
    for mention in debate.get("sourceMentions", []):
        console.print(Text(f"  {mention}", style="dim"))


def print_personas(personas: Sequence[Persona]) -> None:
    table = Table(title="Personas")
    table.add_column("id", style="bold")
    table.add_column("Nombre")
    table.add_column("Descripcion")
    for p in personas:
        table.add_row(p.id, p.name, p.description)
    console.print(table)


def print_usage(usage: Usage) -> None:
    console.print(f"Usados: {usage.used} / {usage.limit} - restantes: [bold]{usage.remaining}[/bold]")


def save_to_file(
    debate_id: str,
    debate: dict,
    turns: Sequence[Turn],
    persona_a: Persona,
    persona_b: Persona,
    output_dir: Path,
) -> Path:
    """Save the full debate transcript as a markdown file.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = output_dir / f"{timestamp}_{_slug(debate.get('topic', debate_id))}.md"

    verdict = debate.get("verdict") or {}
    metrics = debate.get("metrics") or {}

    lines: list[str] = [
        f"# Arena: {debate.get('topic', '')[:80]}",
        "",
        f"**Debate:** {debate_id}",
        f"**A:** {persona_a.name} | **B:** {persona_b.name}",
        f"**Estado:** {debate.get('status')}",
        f"**Modelo:** {metrics.get('model', '?')}",
        f"**Latencia:** {metrics.get('latencyMs', 0) / 1000:.1f}s",
        "",
        "---",
        "",
    ]

    for turn in turns:
        lines.append(f"## Turno {turn.idx + 1} ({turn.speaker} - {_speaker_name(turn.speaker, persona_a, persona_b)})")
        lines.append("")
        lines.append(turn.text)
        lines.append("")

    lines += [
        "## Resumen",
        "",
        debate.get("summary", ""),
        "",
        f"**Ganador:** {_WINNER_LABELS.get(verdict.get('winner'), '?')}",
        "",
        verdict.get("reason", ""),
        "",
    ]

    sources = [*debate.get("sourceLinks", []), *debate.get("sourceMentions", [])]
    if sources:
        lines += ["## Fuentes", ""]
        lines += [f"- {s}" for s in sources]
        lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Debate saved to: %s", filepath)
    return filepath
