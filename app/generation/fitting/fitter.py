from app.generation.context import GenerationContext
from app.generation.fitting.budget import fit_to_budget
from app.generation.fitting.duration import correct_duration
from app.generation.packs.types import PatternPack
from app.generation.policy.table import get_policy
from app.generation.schema.workout import Workout


def required_groups_for(pack: PatternPack, ctx: GenerationContext) -> tuple[tuple[str, ...], ...]:
    """Pack groups plus the style policy's required-any groups."""
    policy = get_policy(ctx.style)
    groups = tuple(tuple(g) for g in pack.required_pattern_groups)
    if policy is not None:
        groups += tuple(tuple(g) for g in policy.required_any)
    return groups


def fit_workout(workout: Workout, pack: PatternPack, ctx: GenerationContext) -> Workout:
    """Budget scaling followed by delta correction."""
    blocks = fit_to_budget(workout.blocks, ctx.duration_minutes, required_groups_for(pack, ctx), ctx.registry)
    blocks = correct_duration(
        blocks,
        ctx.duration_minutes,
        pack.time_tolerance_pct,
        allow_finisher=not pack.continuous_scoring,
    )
    return workout.model_copy(update={"blocks": blocks})
