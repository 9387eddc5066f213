"""Sanitizer.

Runs after fitting: swaps banned filler out of main blocks when loaded gear
is available, scores hardness, enforces the effective floor with a short
finisher and stores the main-only loaded ratio.
"""

from itertools import cycle

from loguru import logger

from app.generation.compose.notes import coaching_note
from app.generation.context import GenerationContext
from app.generation.errors import PolicyViolation
from app.generation.invariants import (
    BANNED_FILLER_LADDER,
    FINISHER_EQUIPMENT_PREFERENCE,
    HARDNESS_FINISHER_MINUTES,
    MIN_MAIN_BLOCK_MINUTES,
)
from app.generation.fitting.budget import resized
from app.generation.items import iter_main_items, main_loaded_ratio, replace_item, swap_movement
from app.generation.packs.types import PatternPack
from app.generation.policy.table import get_policy
from app.generation.registry.movement import Movement
from app.generation.registry.query import MovementQuery, equipment_ok, query_movements
from app.generation.repairs import record_repair
from app.generation.sanitize.hardness import effective_floor, hardness_score
from app.generation.schema.structure import BlockStructure, StructureKind
from app.generation.schema.workout import (
    BlockKind,
    ItemScheme,
    Workout,
    WorkoutBlock,
    WorkoutItem,
    insert_before_cooldown,
)

SANITIZE_STAGE = "sanitize"
AUTO_UPGRADE_MARKER = "(auto-upgrade)"
HARDNESS_FINISHER_SCHEME = "21-15-9"


def _ladder(ctx: GenerationContext) -> list[Movement]:
    rungs = (ctx.registry.get(movement_id) for movement_id in BANNED_FILLER_LADDER)
    return [m for m in rungs if m is not None and equipment_ok(m, ctx.equipment)]


def replace_banned_filler(workout: Workout, ctx: GenerationContext) -> tuple[Workout, int]:
    """Swap banned filler in mains for the next ladder rung.

    Only applies when barbell, dumbbell or kettlebell is available.

    Returns:
        The new workout and the number of replaced items
    """
    if not ctx.has_gear:
        return workout, 0
    ladder = _ladder(ctx)
    if not ladder:
        return workout, 0

    rungs = cycle(ladder)
    blocks = workout.blocks
    replaced = 0
    for entry in list(iter_main_items(blocks, ctx.registry)):
        if entry.movement is None or not entry.movement.banned_in_main_when_equipment:
            continue
        sub = next(rungs)
        blocks = replace_item(blocks, entry.block_index, entry.item_index, swap_movement(entry.item, sub, AUTO_UPGRADE_MARKER))
        replaced += 1
        logger.debug("Banned filler replaced", original=entry.movement.id, replacement=sub.id)
    return workout.model_copy(update={"blocks": blocks}), replaced


def _finisher_movements(ctx: GenerationContext, categories: tuple[str, ...]) -> list[Movement]:
    """Loaded movements by gear preference, else bodyweight, from the allowed categories."""
    seed = ctx.seed_for("hardness-finisher")
    for gear in FINISHER_EQUIPMENT_PREFERENCE:
        if gear not in ctx.equipment:
            continue
        found = query_movements(
            ctx.registry,
            MovementQuery(
                seed=f"{seed}-{gear}",
                categories=categories,
                equipment=(gear,),
                exclude_banned_mains=True,
                avoid_patterns=ctx.avoid_patterns,
                limit=4,
            ),
        )
        loaded = [m for m in found if m.uses_gear(gear)]
        if loaded:
            return loaded[:2]
    found = query_movements(
        ctx.registry,
        MovementQuery(
            seed=f"{seed}-bodyweight",
            categories=categories,
            equipment=(),
            avoid_patterns=ctx.avoid_patterns,
            limit=6,
        ),
    )
    return [m for m in found if not (ctx.has_gear and m.banned_in_main_when_equipment)][:2]


def _take_minutes(blocks: list[WorkoutBlock], minutes: int) -> list[WorkoutBlock] | None:
    """Shorten the longest main by `minutes`, or None when that breaks its floor."""
    mains = [i for i, b in enumerate(blocks) if b.is_main]
    if not mains:
        return None
    longest = max(mains, key=lambda i: (blocks[i].time_minutes, -i))
    if blocks[longest].time_minutes - minutes < MIN_MAIN_BLOCK_MINUTES:
        return None
    result = list(blocks)
    result[longest] = resized(result[longest], result[longest].time_minutes - minutes)
    return result


def hardness_finisher(movements: list[Movement]) -> WorkoutBlock:
    block = WorkoutBlock(
        kind=BlockKind.CONDITIONING,
        structure=BlockStructure(kind=StructureKind.FOR_TIME, rep_scheme=HARDNESS_FINISHER_SCHEME),
        time_minutes=HARDNESS_FINISHER_MINUTES,
        items=[
            WorkoutItem(exercise_name=m.name, registry_id=m.id, scheme=ItemScheme(reps=21), notes="21-15-9 reps for time")
            for m in movements
        ],
        finisher=True,
    )
    return block.model_copy(update={"notes": coaching_note(block)})


def _hardness_shortfall(workout: Workout, ctx: GenerationContext, score: float, floor: float, reason: str) -> Workout:
    if ctx.strict:
        raise PolicyViolation(
            "hardness_floor",
            [f"Hardness {score:.2f} below floor {floor:.2f} ({reason})"],
            {"style": str(ctx.style), "hardness": score, "floor": floor},
        )
    return record_repair(workout, "hardness_floor", SANITIZE_STAGE, score=score, floor=floor, reason=reason)


def enforce_hardness_floor(workout: Workout, pack: PatternPack, ctx: GenerationContext) -> Workout:
    """Score the workout and inject a finisher when it falls below the floor.

    The finisher's minutes come out of the longest main block so the total
    duration is unchanged; the score is recomputed exactly once.

    Raises:
        PolicyViolation: Strict mode, when the floor cannot be reached
    """
    floor = effective_floor(pack, ctx)
    score = hardness_score(workout.blocks, pack, ctx)
    meta = workout.meta.model_copy(update={"effective_floor": floor})
    workout = workout.model_copy(update={"hardness_score": score, "meta": meta})
    if score >= floor:
        return workout

    if pack.continuous_scoring:
        return _hardness_shortfall(workout, ctx, score, floor, "continuous_pack")

    policy = get_policy(ctx.style)
    categories = policy.allowed_categories if policy else tuple(dict.fromkeys(c for s in pack.main_blocks for c in s.select.categories))
    movements = _finisher_movements(ctx, categories)
    blocks = _take_minutes(workout.blocks, HARDNESS_FINISHER_MINUTES)
    if not movements or blocks is None:
        return _hardness_shortfall(workout, ctx, score, floor, "no_finisher")

    blocks = insert_before_cooldown(blocks, hardness_finisher(movements))
    rescored = hardness_score(blocks, pack, ctx)
    logger.info(
        "Hardness finisher injected",
        style=str(ctx.style),
        hardness_before=score,
        hardness_after=rescored,
        floor=floor,
    )
    workout = workout.model_copy(update={"blocks": blocks, "hardness_score": rescored})
    if rescored < floor:
        return _hardness_shortfall(workout, ctx, rescored, floor, "finisher_insufficient")
    return workout


def sanitize(workout: Workout, pack: PatternPack, ctx: GenerationContext) -> Workout:
    """Banned-filler ladder, hardness floor and loaded ratio, in that order.

    Args:
        workout: Fitted workout
        pack: Resolved pattern pack
        ctx: Request context

    Returns:
        Sanitized workout with hardness score, effective floor and main
        loaded ratio filled in

    Raises:
        PolicyViolation: Strict mode, when the hardness floor cannot be met
    """
    workout, replaced = replace_banned_filler(workout, ctx)
    workout = enforce_hardness_floor(workout, pack, ctx)
    ratio = round(main_loaded_ratio(workout.blocks, ctx.registry), 2)
    workout = workout.model_copy(update={"meta": workout.meta.model_copy(update={"main_loaded_ratio": ratio})})

    logger.debug(
        "Workout sanitized",
        style=str(ctx.style),
        pack=pack.name,
        banned_replaced=replaced,
        hardness=workout.hardness_score,
        floor=workout.meta.effective_floor,
        main_loaded_ratio=ratio,
    )
    return workout
