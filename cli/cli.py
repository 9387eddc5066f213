"""CLI for the workout engine.

Developer CLI to run the generation pipeline locally through the same entry
points callers use: generate, simulate (dry run, no network), regenerate from
a stored seed file, and raw registry queries.
"""

import asyncio
import json
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.text import Text

from app.config.settings import settings
from app.core.logger import setup_logger
from app.generation.errors import GenerationError
from app.generation.registry import MovementQuery, get_registry, query_movements
from app.generation.schema.request import GenerationRequest
from app.generation.schema.seed import GeneratorSeed
from app.generation.seed import GenerationResult, generate, regenerate, simulate

console = Console()

app = typer.Typer(
    name="axle-cli",
    help="AXLE workout engine CLI - local generation and registry queries",
    add_completion=False,
)

DEFAULT_USER_ID = "cli-user"


def _request(
    style: str,
    minutes: int,
    intensity: int,
    equipment: list[str] | None,
    constraints: list[str] | None,
    focus: list[str] | None,
) -> GenerationRequest:
    try:
        return GenerationRequest.model_validate(
            {
                "style": style,
                "duration_minutes": minutes,
                "intensity": intensity,
                "equipment": equipment or [],
                "constraints": constraints or [],
                "focus_areas": focus or [],
            }
        )
    except (ValidationError, GenerationError) as e:
        console.print(Panel(Text("Invalid request", style="bold red"), subtitle=str(e), border_style="red"))
        raise typer.Exit(1) from e


def _print_result(result: GenerationResult, seed_out: Path | None) -> None:
    workout = result.workout
    console.print(
        Panel(
            JSON(workout.model_dump_json(exclude={"meta": {"selection_trace"}})),
            title=workout.title,
            subtitle=f"hardness={workout.hardness_score} variety={workout.variety_score} seed={result.seed.rng_seed}",
            border_style="green" if all(workout.acceptance_flags.model_dump().values()) else "yellow",
        )
    )
    if result.critique is not None:
        console.print(
            Panel(
                Text("\n".join(result.critique.issues) or "no issues"),
                title=f"critic score {result.critique.score} ({result.critique.source})",
                border_style="cyan",
            )
        )
    if seed_out:
        seed_out.write_text(result.seed.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"[dim]Seed written to {seed_out}[/dim]")


def _run(coro) -> GenerationResult:
    try:
        return asyncio.run(coro)
    except GenerationError as e:
        console.print(
            Panel(Text(f"Generation failed: {e.code}", style="bold red"), subtitle="\n".join(e.details), border_style="red")
        )
        raise typer.Exit(1) from e


@app.callback()
def main(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")) -> None:
    setup_logger(level="DEBUG" if debug else settings.log_level)


@app.command(name="generate")
def generate_cmd(
    style: str = typer.Option(..., "--style", "-s", help="Workout style (crossfit, olympic_weightlifting, ...)"),
    minutes: int = typer.Option(45, "--minutes", "-m", help="Target duration in minutes"),
    intensity: int = typer.Option(6, "--intensity", "-i", help="Target intensity 1-10"),
    equipment: list[str] | None = typer.Option(None, "--equipment", "-e", help="Available equipment tag"),
    constraints: list[str] | None = typer.Option(None, "--constraint", "-c", help="Constraint tag"),
    focus: list[str] | None = typer.Option(None, "--focus", "-f", help="Sub-focus for hybrid styles"),
    strict: bool = typer.Option(False, "--strict", help="Fail on unrecoverable policy problems"),
    user_id: str = typer.Option(DEFAULT_USER_ID, "--user-id", "-u", help="Requesting user"),
    seed_out: Path | None = typer.Option(None, "--seed-out", help="Write the generator seed to this file"),
) -> None:
    """Generate a workout (critic included when enabled)."""
    request = _request(style, minutes, intensity, equipment, constraints, focus)
    result = _run(generate(request, user_id, strict=strict))
    _print_result(result, seed_out)


@app.command(name="simulate")
def simulate_cmd(
    style: str = typer.Option(..., "--style", "-s", help="Workout style"),
    minutes: int = typer.Option(45, "--minutes", "-m", help="Target duration in minutes"),
    intensity: int = typer.Option(6, "--intensity", "-i", help="Target intensity 1-10"),
    equipment: list[str] | None = typer.Option(None, "--equipment", "-e", help="Available equipment tag"),
    constraints: list[str] | None = typer.Option(None, "--constraint", "-c", help="Constraint tag"),
    focus: list[str] | None = typer.Option(None, "--focus", "-f", help="Sub-focus for hybrid styles"),
    rng_seed: str | None = typer.Option(None, "--rng-seed", help="Fixed rng seed for a reproducible preview"),
    strict: bool = typer.Option(False, "--strict", help="Fail on unrecoverable policy problems"),
) -> None:
    """Dry-run preview: no network calls, nothing stored."""
    request = _request(style, minutes, intensity, equipment, constraints, focus)
    result = _run(simulate(request, rng_seed=rng_seed, strict=strict))
    _print_result(result, None)


@app.command(name="regenerate")
def regenerate_cmd(
    seed_file: Path = typer.Option(..., "--seed-file", help="JSON file holding a stored generator seed"),
    strict: bool = typer.Option(False, "--strict", help="Fail on unrecoverable policy problems"),
) -> None:
    """Rebuild a workout from a stored seed."""
    try:
        seed = GeneratorSeed.model_validate_json(seed_file.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        console.print(Panel(Text("Unreadable seed file", style="bold red"), subtitle=str(e), border_style="red"))
        raise typer.Exit(1) from e
    result = _run(regenerate(seed, strict=strict))
    _print_result(result, None)


@app.command(name="movements")
def movements_cmd(
    category: list[str] | None = typer.Option(None, "--category", help="Category tag"),
    pattern: list[str] | None = typer.Option(None, "--pattern", help="Pattern tag"),
    equipment: list[str] | None = typer.Option(None, "--equipment", "-e", help="Available equipment tag"),
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum results"),
    seed: str = typer.Option("cli", "--seed", help="Shuffle seed"),
) -> None:
    """Run a seeded registry query."""
    query = MovementQuery(
        categories=tuple(category) if category else None,
        patterns=tuple(pattern) if pattern else None,
        equipment=tuple(equipment) if equipment is not None else None,
        exclude_banned_mains=bool(equipment),
        limit=limit,
        seed=seed,
    )
    movements = query_movements(get_registry(), query)
    logger.debug("CLI movement query", results=len(movements))
    rows = [{"id": m.id, "name": m.name, "patterns": list(m.patterns), "equipment": list(m.equipment)} for m in movements]
    console.print(Panel(JSON(json.dumps(rows)), title=f"{len(rows)} movements", border_style="blue"))


if __name__ == "__main__":
    app()
