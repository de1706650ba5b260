"""Click CLI: loads config once, builds providers and store, runs the inbound calls."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from arena.debate import create_debate, debate_path, get_arena_usage, load_turns
from arena.errors import ArenaError
from arena.fallback import build_providers
from arena.healthcheck import run_health_checks
from arena.models import Caller, DebateRequest
from arena.output import print_personas, print_turns, print_usage, print_verdict, save_to_file
from arena.personas import list_personas
from arena.store import JsonFileStore
from config.config_loader import AppConfig, load_config

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_DEFAULT_STORE = Path(".arena") / "store.json"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _print_error(exc: ArenaError) -> None:
    console.print(f"[bold red]Error ({exc.code}):[/bold red] {escape(exc.message)}")
    if exc.details:
        console.print(f"[dim]{escape(str(exc.details))}[/dim]")


async def _run_create(
    config: AppConfig,
    store_path: Path,
    uid: str,
    request: DebateRequest,
    output_dir: Path | None,
) -> None:
    store = JsonFileStore(store_path)
    providers = build_providers(config)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Generando debate...", total=None)
        result = await create_debate(request, Caller(uid=uid), config, store, providers)

    debate = await store.get(debate_path(result.debate_id)) or {}
    turns = await load_turns(store, result.debate_id)
    persona_a = config.personas[debate["personaA"]]
    persona_b = config.personas[debate["personaB"]]

    print_turns(turns, persona_a, persona_b)
    print_verdict(debate)
    console.print(f"\n[dim]Debate {result.debate_id} - restantes hoy: {result.remaining}[/dim]")

    if output_dir is not None:
        saved = save_to_file(result.debate_id, debate, turns, persona_a, persona_b, output_dir)
        console.print(f"[dim]Saved to: {saved}[/dim]")


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Arena -- AI debates between two personas, with model fallback.

    \b
    Examples:
      arena personas
      arena create "Debe la IA regular el trabajo remoto?" --persona-a scientist --persona-b skeptic
      arena usage --user alice
      arena check
    """
    load_dotenv()
    _setup_logging(verbose)
    try:
        ctx.obj = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)


@main.command()
@click.argument("topic")
@click.option("--persona-a", "persona_a", required=True, help="Persona id for speaker A")
@click.option("--persona-b", "persona_b", required=True, help="Persona id for speaker B")
@click.option("--private", "private", is_flag=True, help="Create the debate as private")
@click.option("--debate-id", "debate_id", default=None, help="Idempotency id (8-120 chars, [A-Za-z0-9_-])")
@click.option("--user", "uid", default="local", show_default=True, help="Caller user id")
@click.option("--store", "store_path", default=str(_DEFAULT_STORE), show_default=True, help="JSON store file")
@click.option("--output", "output_path", default=None, help="Directory to save a markdown transcript")
@click.pass_obj
def create(
    config: AppConfig,
    topic: str,
    persona_a: str,
    persona_b: str,
    private: bool,
    debate_id: str | None,
    uid: str,
    store_path: str,
    output_path: str | None,
) -> None:
    """Generate a six-turn debate on TOPIC and print the verdict."""
    request = DebateRequest(
        topic=topic,
        persona_a=persona_a,
        persona_b=persona_b,
        visibility="private" if private else "public",
        client_debate_id=debate_id.strip() if debate_id else None,
    )
    try:
        asyncio.run(
            _run_create(
                config,
                Path(store_path),
                uid,
                request,
                Path(output_path) if output_path else None,
            )
        )
    except ArenaError as exc:
        _print_error(exc)
        sys.exit(1)


@main.command()
@click.option("--user", "uid", default="local", show_default=True, help="Caller user id")
@click.option("--store", "store_path", default=str(_DEFAULT_STORE), show_default=True, help="JSON store file")
@click.pass_obj
def usage(config: AppConfig, uid: str, store_path: str) -> None:
    """Show today's debate quota."""
    store = JsonFileStore(Path(store_path))
    try:
        result = asyncio.run(get_arena_usage(Caller(uid=uid), config, store))
    except ArenaError as exc:
        _print_error(exc)
        sys.exit(1)
    print_usage(result)


@main.command()
@click.pass_obj
def personas(config: AppConfig) -> None:
    """List the persona registry."""
    print_personas(list_personas(config.personas))


@main.command()
@click.pass_obj
def check(config: AppConfig) -> None:
    """Ping each configured provider's first model."""
    providers = build_providers(config)
    if not providers:
        console.print("[bold red]Error:[/bold red] No providers available. Check API keys in .env.")
        sys.exit(1)

    results = asyncio.run(run_health_checks(providers))
    failed = 0
    for label in sorted(results):
        ok, err = results[label]
        if ok:
            console.print(f"  [green]OK  [/green] {label}")
        else:
            failed += 1
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {label}: {escape(short_err)}")
    if failed == len(results):
        sys.exit(1)


if __name__ == "__main__":
    main()
