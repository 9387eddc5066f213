"""Seed & determinism layer.

A GeneratorSeed pairs a fresh random token with the full request snapshot and
generator version. Re-running the pipeline from a stored seed reproduces the
same structural workout; the critic stage is replayed from cache, never
re-called.

Seeds handed out by `generate` are remembered in-process by rng seed, which
doubles as the workout's generation id. `simulate` never stores anything.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger

from app.config.settings import settings
from app.generation.compose.notes import NotesRunner
from app.generation.critic import CriticRunner, CritiqueResult
from app.generation.errors import ConfigurationError
from app.generation.pipeline import BuildResult, CriticMode, run_pipeline
from app.generation.registry import MovementRegistry
from app.generation.schema.request import GenerationRequest
from app.generation.schema.seed import GeneratorSeed, HealthModifiers, SeedChoices, SeedContext
from app.generation.schema.workout import Workout

_seed_store: dict[str, GeneratorSeed] = {}


@dataclass(frozen=True)
class GenerationResult:
    workout: Workout
    seed: GeneratorSeed
    critique: CritiqueResult | None = None


def make_seed(
    inputs: GenerationRequest,
    user_id: str,
    *,
    date_iso: str | None = None,
    health_modifiers: HealthModifiers | None = None,
    generator_version: str | None = None,
) -> GeneratorSeed:
    """Create a fresh seed for one request.

    Args:
        inputs: Validated request snapshot
        user_id: Requesting user
        date_iso: Generation timestamp; defaults to now (UTC)
        health_modifiers: Optional health scores to snapshot
        generator_version: Defaults to settings.generator_version

    Returns:
        GeneratorSeed without choices (filled in after a build)
    """
    return GeneratorSeed(
        rng_seed=uuid.uuid4().hex,
        generator_version=generator_version or settings.generator_version,
        inputs=inputs,
        context=SeedContext(
            date_iso=date_iso or datetime.now(UTC).isoformat(),
            user_id=user_id,
            health_modifiers=health_modifiers,
        ),
    )


def seed_choices(built: BuildResult) -> SeedChoices:
    """Template, movement pool and scheme actually used by a build."""
    pool: list[str] = []
    for block in built.workout.blocks:
        for item in block.items:
            if item.registry_id and item.registry_id not in pool:
                pool.append(item.registry_id)
    scheme = "+".join(str(b.structure.kind) for b in built.workout.blocks if b.is_main)
    return SeedChoices(template_id=built.pack.name, movement_pool_ids=pool, scheme_id=scheme)


def remember_seed(seed: GeneratorSeed) -> None:
    _seed_store[seed.rng_seed] = seed


def get_seed(generation_id: str) -> GeneratorSeed | None:
    return _seed_store.get(generation_id)


def clear_seed_store() -> None:
    _seed_store.clear()


async def _run_from_seed(
    seed: GeneratorSeed,
    *,
    strict: bool | None,
    critic_mode: CriticMode | None,
    critic_runner: CriticRunner | None = None,
    notes_runner: NotesRunner | None = None,
    registry: MovementRegistry | None = None,
) -> GenerationResult:
    outcome, built = await run_pipeline(
        seed.inputs,
        seed.rng_seed,
        strict=strict,
        critic_mode=critic_mode,
        critic_runner=critic_runner,
        notes_runner=notes_runner,
        registry=registry,
        generator_version=seed.generator_version,
    )
    seed = seed.model_copy(update={"choices": seed_choices(built)})
    return GenerationResult(workout=outcome.workout, seed=seed, critique=outcome.critique)


async def generate(
    request: GenerationRequest,
    user_id: str,
    *,
    strict: bool | None = None,
    critic_runner: CriticRunner | None = None,
    notes_runner: NotesRunner | None = None,
    registry: MovementRegistry | None = None,
    health_modifiers: HealthModifiers | None = None,
) -> GenerationResult:
    """Generate a new workout with a fresh seed and remember the seed."""
    seed = make_seed(request, user_id, health_modifiers=health_modifiers)
    result = await _run_from_seed(
        seed,
        strict=strict,
        critic_mode=None,
        critic_runner=critic_runner,
        notes_runner=notes_runner,
        registry=registry,
    )
    remember_seed(result.seed)
    return result


async def regenerate(
    seed: GeneratorSeed | str,
    *,
    strict: bool | None = None,
    registry: MovementRegistry | None = None,
) -> GenerationResult:
    """Reproduce a previously generated workout.

    Args:
        seed: Stored GeneratorSeed, or the generation id (rng seed) of a
            workout produced by `generate` in this process
        strict: Strictness for the rerun
        registry: Movement catalog; defaults to the bundled registry

    Returns:
        GenerationResult whose workout matches the original build; the
        critic outcome is replayed from cache when one exists

    Raises:
        ConfigurationError: If a generation id is unknown
    """
    if isinstance(seed, str):
        stored = get_seed(seed)
        if stored is None:
            raise ConfigurationError("SEED_UNKNOWN", [f"No stored seed for generation id '{seed}'"], {"id": seed})
        seed = stored

    if seed.generator_version != settings.generator_version:
        logger.warning(
            "Regenerating with a different generator version",
            seed_version=seed.generator_version,
            current_version=settings.generator_version,
        )
    return await _run_from_seed(seed, strict=strict, critic_mode=CriticMode.REPLAY, registry=registry)


async def simulate(
    request: GenerationRequest,
    user_id: str = "simulation",
    *,
    rng_seed: str | None = None,
    strict: bool | None = None,
    registry: MovementRegistry | None = None,
) -> GenerationResult:
    """Dry-run preview: same pipeline, no network calls, nothing stored."""
    seed = make_seed(request, user_id)
    if rng_seed:
        seed = seed.model_copy(update={"rng_seed": rng_seed})
    return await _run_from_seed(seed, strict=strict, critic_mode=CriticMode.REPLAY, registry=registry)
