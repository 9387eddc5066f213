"""Single-pass policy auto-fix.

Offending main items are swapped for registry movements that share at least
one pattern with the offender and satisfy the policy. The pass fixes, in
order: item-level violations (category, banned name or pattern, required
equipment), missing required pattern groups, then the loaded ratio.
"""

from collections.abc import Sequence

from loguru import logger

from app.generation.context import GenerationContext
from app.generation.items import MainItem, iter_main_items, main_loaded_ratio, main_patterns, missing_groups, replace_item, swap_movement
from app.generation.policy.table import StylePolicy
from app.generation.registry.movement import Movement
from app.generation.registry.query import MovementQuery, query_movements
from app.generation.schema.workout import Workout

POLICY_FIX_MARKER = "(policy auto-fix)"
LOADED_UPLIFT_MARKER = "(loaded uplift)"
REPLACEMENT_QUERY_LIMIT = 8


def violates_item_rules(movement: Movement, policy: StylePolicy) -> bool:
    if movement.category not in policy.allowed_categories:
        return True
    if policy.bans_name(movement.name):
        return True
    if policy.banned_main_patterns and movement.has_pattern(policy.banned_main_patterns):
        return True
    return bool(policy.require_equipment and not movement.uses_gear(policy.require_equipment))


def find_replacement(
    ctx: GenerationContext,
    policy: StylePolicy,
    patterns: Sequence[str],
    seed: str,
    exclude_ids: Sequence[str] = (),
    loaded_only: bool = False,
) -> Movement | None:
    """First seeded registry movement sharing a pattern and passing the policy."""
    candidates = query_movements(
        ctx.registry,
        MovementQuery(
            seed=seed,
            categories=policy.allowed_categories,
            patterns=tuple(patterns),
            equipment=ctx.equipment,
            exclude_banned_mains=True,
            avoid_patterns=ctx.avoid_patterns,
            exclude_ids=tuple(exclude_ids),
            limit=REPLACEMENT_QUERY_LIMIT,
        ),
    )
    for movement in candidates:
        if violates_item_rules(movement, policy):
            continue
        if loaded_only and not movement.is_loaded:
            continue
        return movement
    return None


def _used_ids(workout: Workout, ctx: GenerationContext) -> list[str]:
    return [e.movement.id for e in iter_main_items(workout.blocks, ctx.registry) if e.movement is not None]


def _swap(workout: Workout, entry: MainItem, movement: Movement, marker: str) -> Workout:
    blocks = replace_item(workout.blocks, entry.block_index, entry.item_index, swap_movement(entry.item, movement, marker))
    logger.info(
        "Policy auto-fix applied",
        offender=entry.item.exercise_name,
        replacement=movement.name,
        marker=marker,
    )
    return workout.model_copy(update={"blocks": blocks})


def _fix_items(workout: Workout, policy: StylePolicy, ctx: GenerationContext) -> Workout | None:
    for entry in list(iter_main_items(workout.blocks, ctx.registry)):
        movement = entry.movement
        offends = movement is not None and violates_item_rules(movement, policy)
        offends = offends or policy.bans_name(entry.item.exercise_name)
        if not offends:
            continue
        if movement is None:
            return None
        seed = ctx.seed_for("policy-fix", entry.block_index, entry.item_index)
        replacement = find_replacement(ctx, policy, movement.patterns, seed, _used_ids(workout, ctx))
        replacement = replacement or find_replacement(ctx, policy, movement.patterns, seed)
        if replacement is None:
            logger.debug("No policy-safe replacement", offender=movement.id, patterns=list(movement.patterns))
            return None
        workout = _swap(workout, entry, replacement, POLICY_FIX_MARKER)
    return workout


def _fix_required_groups(workout: Workout, policy: StylePolicy, ctx: GenerationContext) -> Workout | None:
    required = {p for group in policy.required_any for p in group}
    for group in missing_groups(policy.required_any, main_patterns(workout.blocks, ctx.registry)):
        # Replace the last main item that does not carry any required pattern
        spare = [
            e
            for e in iter_main_items(workout.blocks, ctx.registry)
            if e.movement is None or not e.movement.has_pattern(required)
        ]
        if not spare:
            return None
        target = spare[-1]
        replacement = find_replacement(
            ctx, policy, group, ctx.seed_for("policy-group", *group), _used_ids(workout, ctx)
        )
        if replacement is None:
            return None
        workout = _swap(workout, target, replacement, POLICY_FIX_MARKER)
    return workout


def uplift_loaded_ratio(
    workout: Workout,
    policy: StylePolicy,
    ctx: GenerationContext,
    target_ratio: float,
    marker: str = LOADED_UPLIFT_MARKER,
    seed_prefix: str = "uplift",
) -> Workout:
    """Swap bodyweight mains for loaded movements sharing a pattern until the ratio is met."""
    if main_loaded_ratio(workout.blocks, ctx.registry) >= target_ratio:
        return workout
    for entry in list(iter_main_items(workout.blocks, ctx.registry)):
        if entry.movement is None or entry.movement.is_loaded:
            continue
        seed = ctx.seed_for(seed_prefix, entry.block_index, entry.item_index)
        replacement = find_replacement(
            ctx, policy, entry.movement.patterns, seed, _used_ids(workout, ctx), loaded_only=True
        )
        if replacement is None:
            continue
        workout = _swap(workout, entry, replacement, marker)
        if main_loaded_ratio(workout.blocks, ctx.registry) >= target_ratio:
            break
    return workout


def auto_fix(workout: Workout, policy: StylePolicy, ctx: GenerationContext) -> Workout | None:
    """Run one auto-fix pass.

    Args:
        workout: Workout that failed validation
        policy: Style policy
        ctx: Request context

    Returns:
        The fixed workout (still to be revalidated by the caller), or None
        when an offender has no policy-safe replacement
    """
    fixed = _fix_items(workout, policy, ctx)
    if fixed is None:
        return None
    fixed = _fix_required_groups(fixed, policy, ctx)
    if fixed is None:
        return None
    if policy.require_loaded_ratio is not None and ctx.has_gear:
        fixed = uplift_loaded_ratio(fixed, policy, ctx, policy.require_loaded_ratio)
    return fixed
