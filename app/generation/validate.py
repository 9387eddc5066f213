"""Final structural validation.

A workout that fails here never reaches the caller.
"""

from loguru import logger
from pydantic import ValidationError

from app.generation.context import GenerationContext
from app.generation.errors import SchemaInvalid
from app.generation.fitting.duration import within_tolerance
from app.generation.items import main_patterns, missing_groups
from app.generation.packs.types import PatternPack
from app.generation.policy.table import get_policy
from app.generation.policy.validator import validate_policy
from app.generation.schema.structure import structure_matches_minutes
from app.generation.schema.workout import BlockKind, Workout


def structural_problems(workout: Workout) -> list[str]:
    """Human-readable list of structural problems (empty when valid)."""
    problems: list[str] = []
    blocks = workout.blocks
    if not blocks:
        return ["workout has no blocks"]

    warmups = [i for i, b in enumerate(blocks) if b.kind == BlockKind.WARMUP]
    cooldowns = [i for i, b in enumerate(blocks) if b.kind == BlockKind.COOLDOWN]
    if warmups != [0]:
        problems.append(f"expected exactly one warmup at position 0, found {warmups}")
    if cooldowns != [len(blocks) - 1]:
        problems.append(f"expected exactly one cooldown at the end, found {cooldowns}")
    if not any(b.is_main for b in blocks):
        problems.append("workout has no main block")

    for index, block in enumerate(blocks):
        if block.is_main and not block.items:
            problems.append(f"main block {index} ({block.title}) has no items")
        if not structure_matches_minutes(block.structure, block.time_minutes):
            problems.append(f"block {index} title '{block.title}' does not match {block.time_minutes} min")
    return problems


def validate_workout(workout: Workout) -> Workout:
    """Re-validate the full schema and the structural rules.

    Args:
        workout: Finished workout

    Returns:
        A freshly validated copy of the workout

    Raises:
        SchemaInvalid: If any field or structural rule fails
    """
    try:
        validated = Workout.model_validate(workout.model_dump())
    except ValidationError as e:
        logger.error("Workout failed schema validation", style=str(workout.style), errors=e.error_count())
        raise SchemaInvalid(
            "SCHEMA_INVALID",
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
            {"style": str(workout.style)},
        ) from e

    problems = structural_problems(validated)
    if problems:
        logger.error("Workout failed structural validation", style=str(workout.style), problems=problems)
        raise SchemaInvalid("STRUCTURE_INVALID", problems, {"style": str(workout.style)})
    return validated


def invariant_problems(workout: Workout, pack: PatternPack, ctx: GenerationContext) -> list[str]:
    """Time fit, banned filler, pack pattern groups and style policy, as problem strings."""
    problems: list[str] = []
    if not within_tolerance(workout.blocks, ctx.duration_minutes, pack.time_tolerance_pct):
        problems.append(f"blocks outside the time tolerance for {ctx.duration_minutes} min")

    if ctx.has_gear:
        for index, block in enumerate(workout.blocks):
            if not block.is_main:
                continue
            movements = (ctx.registry.lookup(item.registry_id, item.exercise_name) for item in block.items)
            banned = sum(1 for m in movements if m is not None and m.banned_in_main_when_equipment)
            if banned:
                problems.append(f"main block {index} ({block.title}) has {banned} banned filler item(s)")

    missing = missing_groups(pack.required_pattern_groups, main_patterns(workout.blocks, ctx.registry))
    if missing:
        problems.append(f"required pattern groups missing: {missing}")

    policy = get_policy(ctx.style)
    if policy is not None:
        result = validate_policy(workout, policy, ctx.registry, ctx.equipment)
        if not result.ok:
            problems.append(f"policy: {result.reason}")
    return problems


def validate_invariants(
    workout: Workout,
    pack: PatternPack,
    ctx: GenerationContext,
    baseline: Workout | None = None,
) -> Workout:
    """Structural validation plus the request-level invariants.

    Used as the gate for workouts that did not come out of the deterministic
    stages, such as critic patches. Problems `baseline` already has (recorded
    repairs on a non-strict build) are tolerated; new ones are not.

    Raises:
        SchemaInvalid: If any structural rule or invariant fails
    """
    validated = validate_workout(workout)
    problems = invariant_problems(validated, pack, ctx)
    if baseline is not None:
        known = set(invariant_problems(baseline, pack, ctx))
        problems = [p for p in problems if p not in known]
    if problems:
        logger.warning("Workout failed invariant validation", style=str(workout.style), problems=problems)
        raise SchemaInvalid("INVARIANT_VIOLATION", problems, {"style": str(workout.style)})
    return validated
