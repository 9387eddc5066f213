"""Hardness scoring.

A [0, 1] heuristic for how demanding a composed workout is. Loaded styles
score structure, load and compound signals per block; continuous styles
(aerobic, endurance, mobility) add credit for main minutes, interval effort
and working intensity instead of relying on load.
"""

from app.generation.context import GenerationContext
from app.generation.invariants import LOW_READINESS_FLOOR, NO_GEAR_FLOOR
from app.generation.packs.types import PatternPack
from app.generation.registry.movement import Movement, MovementRegistry
from app.generation.schema.structure import StructureKind
from app.generation.schema.workout import WorkoutBlock

EVERY_BONUS_BY_INTERVAL: dict[int, float] = {120: 0.38, 150: 0.34, 180: 0.35, 240: 0.35}
EVERY_DEFAULT_BONUS = 0.30
STRUCTURE_BONUS: dict[StructureKind, float] = {
    StructureKind.EMOM: 0.30,
    StructureKind.AMRAP: 0.30,
    StructureKind.FOR_TIME: 0.28,
    StructureKind.CHIPPER: 0.32,
}

BARBELL_BLOCK_BONUS = 0.12
LOADED_MAIN_BONUS = 0.10
OLYMPIC_BONUS = 0.08
HEAVY_COMPOUND_BONUS = 0.06
BODYWEIGHT_MAIN_PENALTY = 0.10

SANITIZE_LOADED_MAIN_BONUS = 0.03
SANITIZE_BODYWEIGHT_PENALTY = 0.07

CONTINUOUS_MINUTE_CREDIT = 0.02
CONTINUOUS_MINUTE_CAP = 0.35
EFFORT_BONUS: dict[str, float] = {"vo2": 0.25, "cruise": 0.18, "steady": 0.12, "circuit": 0.16}

HEAVY_COMPOUND_PATTERNS = ("squat", "hinge", "bench")


def _structure_bonus(block: WorkoutBlock) -> float:
    structure = block.structure
    if structure.kind == StructureKind.EVERY:
        return EVERY_BONUS_BY_INTERVAL.get(structure.interval_seconds or 0, EVERY_DEFAULT_BONUS)
    return STRUCTURE_BONUS.get(structure.kind, 0.0)


def _is_bodyweight_only(movement: Movement) -> bool:
    return movement.equipment == ("bodyweight",)


def _block_movements(block: WorkoutBlock, registry: MovementRegistry) -> list[Movement]:
    movements = (registry.lookup(item.registry_id, item.exercise_name) for item in block.items)
    return [m for m in movements if m is not None]


def _continuous_bonus(blocks: list[WorkoutBlock], intensity: int) -> float:
    mains = [b for b in blocks if b.is_main]
    bonus = min(CONTINUOUS_MINUTE_CAP, sum(b.time_minutes for b in mains) * CONTINUOUS_MINUTE_CREDIT)
    efforts = {b.structure.effort for b in mains if b.structure.effort}
    bonus += sum(value for effort, value in EFFORT_BONUS.items() if effort in efforts)
    if intensity >= 7:
        bonus += 0.06
    if intensity >= 8:
        bonus += 0.10
    return bonus


def base_hardness(blocks: list[WorkoutBlock], pack: PatternPack, ctx: GenerationContext) -> float:
    """Structure, load and continuous-effort signals, clamped to [0, 1]."""
    score = 0.0
    for block in blocks:
        score += _structure_bonus(block)

        movements = _block_movements(block, ctx.registry) if block.is_main else []
        if any(m.uses_gear("barbell") for m in movements):
            score += BARBELL_BLOCK_BONUS
        if block.is_main and any(m.is_loaded for m in movements):
            score += LOADED_MAIN_BONUS
        if any(p.startswith("olympic_") for m in movements for p in m.patterns):
            score += OLYMPIC_BONUS
        if any(m.is_loaded and m.has_pattern(HEAVY_COMPOUND_PATTERNS) for m in movements):
            score += HEAVY_COMPOUND_BONUS
        bodyweight = sum(1 for m in movements if _is_bodyweight_only(m))
        if block.is_main and pack.expects_load and ctx.has_gear and bodyweight >= 2:
            score -= BODYWEIGHT_MAIN_PENALTY

    if pack.continuous_scoring:
        score += _continuous_bonus(blocks, ctx.intensity)
    return min(1.0, max(0.0, score))


def hardness_score(blocks: list[WorkoutBlock], pack: PatternPack, ctx: GenerationContext) -> float:
    """Base hardness plus the sanitizer's per-main load adjustments.

    Args:
        blocks: Workout blocks
        pack: Resolved pattern pack
        ctx: Request context

    Returns:
        Score in [0, 1], rounded to two decimals
    """
    score = base_hardness(blocks, pack, ctx)
    for block in blocks:
        if not block.is_main:
            continue
        movements = _block_movements(block, ctx.registry)
        if any(m.is_loaded for m in movements):
            score += SANITIZE_LOADED_MAIN_BONUS
        if pack.expects_load and ctx.has_gear and sum(1 for m in movements if m.is_bodyweight) >= 2:
            score -= SANITIZE_BODYWEIGHT_PENALTY
    return round(min(1.0, max(0.0, score)), 2)


def effective_floor(pack: PatternPack, ctx: GenerationContext) -> float:
    """Pack floor, relaxed for low readiness or a gear-free request. Never raised."""
    floor = pack.hardness_floor
    if ctx.readiness.low_readiness:
        floor = min(floor, LOW_READINESS_FLOOR)
    if not ctx.has_gear:
        floor = min(floor, NO_GEAR_FLOOR)
    return floor
