"""Workout generation pipeline.

Stages run strictly in order and each consumes the previous stage's output:

    request -> readiness -> pack -> compose -> fit -> pattern lock
            -> sanitize -> policy -> enrich -> validate -> (notes) -> (critic)

Everything up to validation is synchronous and deterministic for a given
(request, rng seed). The optional LLM stages are async, timeout-bounded and
never fatal.
"""

from dataclasses import dataclass
from enum import StrEnum

from loguru import logger

from app.config.settings import settings
from app.generation.compose import apply_llm_notes, compose
from app.generation.compose.notes import NotesRunner
from app.generation.context import GenerationContext
from app.generation.critic import (
    CriticRunner,
    CritiqueResult,
    CritiqueSource,
    critic_cache_key,
    critique,
    get_cached_critique,
    set_cached_critique,
)
from app.generation.enrich import enrich
from app.generation.errors import BudgetInfeasible, GenerationError
from app.generation.fitting import correct_duration, fit_workout, lock_required_patterns, time_tolerance, within_tolerance
from app.generation.logging import log_generation_failure
from app.generation.packs import PatternPack, resolve_pack
from app.generation.policy import enforce_policy, upgrade_crossfit_loaded
from app.generation.readiness import assess_readiness
from app.generation.registry import MovementRegistry, get_registry
from app.generation.repairs import record_repair
from app.generation.sanitize import sanitize
from app.generation.schema.request import GenerationRequest
from app.generation.schema.workout import Workout, total_minutes
from app.generation.validate import validate_invariants, validate_workout

TIME_FIT_STAGE = "time_fit"


class CriticMode(StrEnum):
    LIVE = "live"  # call the critic, cache the outcome
    REPLAY = "replay"  # cached outcome only, never the network
    OFF = "off"


@dataclass(frozen=True)
class BuildResult:
    workout: Workout
    pack: PatternPack
    context: GenerationContext


@dataclass(frozen=True)
class PipelineOutcome:
    workout: Workout
    critique: CritiqueResult | None = None


def resolve_strict(strict: bool | None) -> bool:
    return settings.policy_strict_default if strict is None else strict


def _check_time_fit(workout: Workout, pack: PatternPack, ctx: GenerationContext) -> Workout:
    if within_tolerance(workout.blocks, ctx.duration_minutes, pack.time_tolerance_pct):
        return workout
    total = total_minutes(workout.blocks)
    tolerance = time_tolerance(ctx.duration_minutes, pack.time_tolerance_pct)
    if ctx.strict:
        raise BudgetInfeasible(
            "TIME_FIT",
            [f"Blocks sum to {total} min, requested {ctx.duration_minutes} min (tolerance {tolerance})"],
            {"style": str(ctx.style), "total_minutes": total, "delta": total - ctx.duration_minutes},
        )
    return record_repair(
        workout,
        "time_fit_out_of_tolerance",
        TIME_FIT_STAGE,
        total_minutes=total,
        requested_minutes=ctx.duration_minutes,
        tolerance=tolerance,
    )


def _build(ctx: GenerationContext, generator_version: str) -> BuildResult:
    request = ctx.request
    pack = resolve_pack(request.style, request.duration_minutes, ctx.intensity, ctx.equipment, request.focus_areas)

    workout = compose(pack, ctx)
    workout = fit_workout(workout, pack, ctx)

    locked = lock_required_patterns(workout, pack, ctx)
    if locked.blocks != workout.blocks:
        locked = locked.model_copy(
            update={"blocks": correct_duration(locked.blocks, ctx.duration_minutes, pack.time_tolerance_pct)}
        )
    workout = _check_time_fit(locked, pack, ctx)

    workout = sanitize(workout, pack, ctx)
    workout = enforce_policy(workout, ctx)
    workout = upgrade_crossfit_loaded(workout, ctx)
    workout = enrich(workout, pack, ctx, generator_version)
    workout = validate_workout(workout)
    return BuildResult(workout=workout, pack=pack, context=ctx)


def build_workout(
    request: GenerationRequest,
    rng_seed: str,
    *,
    strict: bool | None = None,
    registry: MovementRegistry | None = None,
    generator_version: str | None = None,
) -> BuildResult:
    """Run the deterministic stages for one request.

    Args:
        request: Validated generation request
        rng_seed: Seed string driving every registry query
        strict: Raise on unrecoverable policy/budget problems instead of
            recording repairs; defaults to settings.policy_strict_default
        registry: Movement catalog; defaults to the bundled registry
        generator_version: Version stamped into meta; defaults to settings

    Returns:
        BuildResult with the validated workout, its pack and context

    Raises:
        GenerationError: Any typed pipeline failure, after it has been logged
    """
    strict = resolve_strict(strict)
    readiness = assess_readiness(request)
    ctx = GenerationContext(
        request=request,
        readiness=readiness,
        registry=registry or get_registry(),
        rng_seed=rng_seed,
        strict=strict,
    )
    try:
        result = _build(ctx, generator_version or settings.generator_version)
    except GenerationError as e:
        log_generation_failure(
            e,
            {
                "style": str(request.style),
                "duration_minutes": request.duration_minutes,
                "rng_seed": rng_seed,
                "strict": strict,
            },
        )
        raise

    logger.info(
        "Workout generated",
        style=str(request.style),
        pack=result.pack.name,
        total_minutes=total_minutes(result.workout.blocks),
        hardness=result.workout.hardness_score,
        repairs=len(result.workout.meta.policy_repairs),
        rng_seed=rng_seed,
    )
    return result


async def _critic_stage(
    workout: Workout,
    built: BuildResult,
    generator_version: str,
    mode: CriticMode,
    runner: CriticRunner | None,
) -> CritiqueResult | None:
    # keyed on the deterministic build so replays hit regardless of LLM notes
    key = critic_cache_key(built.context.rng_seed, generator_version, built.workout)
    if mode == CriticMode.REPLAY:
        cached = get_cached_critique(key)
        if cached is None:
            logger.debug("No cached critic outcome, skipping critic", rng_seed=built.context.rng_seed)
            return None
        return cached.model_copy(update={"source": CritiqueSource.CACHE})

    def gate(patched: Workout) -> Workout:
        enriched = enrich(patched, built.pack, built.context, generator_version)
        return validate_invariants(enriched, built.pack, built.context, baseline=built.workout)

    result = await critique(workout, built.context.request, runner=runner, gate=gate)
    if result.source == CritiqueSource.MODEL:
        set_cached_critique(key, result)
    return result


async def run_pipeline(
    request: GenerationRequest,
    rng_seed: str,
    *,
    strict: bool | None = None,
    critic_mode: CriticMode | None = None,
    critic_runner: CriticRunner | None = None,
    notes_runner: NotesRunner | None = None,
    registry: MovementRegistry | None = None,
    generator_version: str | None = None,
) -> tuple[PipelineOutcome, BuildResult]:
    """Deterministic build followed by the optional LLM stages."""
    version = generator_version or settings.generator_version
    built = build_workout(request, rng_seed, strict=strict, registry=registry, generator_version=version)
    workout = built.workout

    if critic_mode is None:
        critic_mode = CriticMode.LIVE if settings.critic_enabled else CriticMode.OFF

    if settings.notes_mode == "llm" and critic_mode == CriticMode.LIVE:
        workout = await apply_llm_notes(workout, runner=notes_runner)

    if critic_mode == CriticMode.OFF:
        return PipelineOutcome(workout=workout), built

    result = await _critic_stage(workout, built, version, critic_mode, critic_runner)
    if result is not None and result.was_patched:
        workout = validate_workout(enrich(result.workout, built.pack, built.context, version))
    return PipelineOutcome(workout=workout, critique=result), built
