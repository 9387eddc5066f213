"""Delta correction against the requested duration."""

from loguru import logger

from app.generation.fitting.budget import resized
from app.generation.invariants import (
    FINISHER_LONG_SESSION_MINUTES,
    FINISHER_MAX_MINUTES,
    FINISHER_MIN_MINUTES,
    MIN_MAIN_BLOCK_MINUTES,
    TIME_TOLERANCE_FLOOR_MINUTES,
)
from app.generation.schema.structure import STRETCHABLE_KINDS, BlockStructure, StructureKind
from app.generation.schema.workout import (
    BlockKind,
    WorkoutBlock,
    insert_before_cooldown,
    total_minutes,
)


def time_tolerance(duration_minutes: int, pct: float) -> float:
    return max(TIME_TOLERANCE_FLOOR_MINUTES, pct * duration_minutes)


def within_tolerance(blocks: list[WorkoutBlock], duration_minutes: int, pct: float) -> bool:
    return abs(total_minutes(blocks) - duration_minutes) <= time_tolerance(duration_minutes, pct)


def _longest(blocks: list[WorkoutBlock], kinds: frozenset[StructureKind] | None = None) -> int | None:
    best: int | None = None
    for i, block in enumerate(blocks):
        if not block.is_main or (kinds is not None and block.structure.kind not in kinds):
            continue
        if best is None or block.time_minutes > blocks[best].time_minutes:
            best = i
    return best


def _extend(blocks: list[WorkoutBlock], index: int, minutes: int) -> list[WorkoutBlock]:
    result = list(blocks)
    result[index] = resized(result[index], result[index].time_minutes + minutes)
    return result


def delta_finisher(blocks: list[WorkoutBlock], minutes: int, target_minutes: int) -> WorkoutBlock | None:
    """For Time finisher reusing the first main block's first two movements."""
    first_main = next((b for b in blocks if b.is_main and b.items), None)
    if first_main is None:
        return None
    rep_scheme = "30-20-10" if target_minutes >= FINISHER_LONG_SESSION_MINUTES else "21-15-9"
    items = [
        item.model_copy(update={"notes": f"{rep_scheme} reps for time"}) for item in first_main.items[:2]
    ]
    return WorkoutBlock(
        kind=BlockKind.CONDITIONING,
        structure=BlockStructure(kind=StructureKind.FOR_TIME, rep_scheme=rep_scheme),
        time_minutes=minutes,
        items=items,
        finisher=True,
    )


def _fill_deficit(blocks: list[WorkoutBlock], delta: int, target_minutes: int, allow_finisher: bool) -> list[WorkoutBlock]:
    stretchable = _longest(blocks, STRETCHABLE_KINDS)
    if stretchable is not None:
        return _extend(blocks, stretchable, delta)

    longest = _longest(blocks)
    if longest is None:
        return blocks
    if not allow_finisher or delta < FINISHER_MIN_MINUTES:
        return _extend(blocks, longest, delta)

    minutes = min(FINISHER_MAX_MINUTES, delta)
    finisher = delta_finisher(blocks, minutes, target_minutes)
    if finisher is None:
        return _extend(blocks, longest, delta)
    result = insert_before_cooldown(blocks, finisher)
    remainder = delta - minutes
    receiver = _longest(result)
    if remainder > 0 and receiver is not None:
        result = _extend(result, receiver, remainder)
    return result


def _trim_excess(blocks: list[WorkoutBlock], excess: int) -> list[WorkoutBlock]:
    result = list(blocks)
    while excess > 0:
        order = sorted(
            (i for i, b in enumerate(result) if b.is_main and b.time_minutes > MIN_MAIN_BLOCK_MINUTES),
            key=lambda i: (-result[i].time_minutes, i),
        )
        if not order:
            break
        index = order[0]
        cut = min(excess, result[index].time_minutes - MIN_MAIN_BLOCK_MINUTES)
        result[index] = resized(result[index], result[index].time_minutes - cut)
        excess -= cut
    return result


def correct_duration(
    blocks: list[WorkoutBlock],
    target_minutes: int,
    tolerance_pct: float,
    allow_finisher: bool = True,
) -> list[WorkoutBlock]:
    """Close the gap between the block total and the requested duration.

    Under target by more than the tolerance: extend the longest EMOM/Every
    block by the deficit, or else the longest main for small gaps, or else
    insert a bounded For Time finisher before the cooldown. Over target by
    more than the tolerance: shrink the longest mains, never below the
    main-block floor.

    Args:
        blocks: Blocks after budget scaling
        target_minutes: Requested total duration
        tolerance_pct: Pack tolerance as a fraction of the duration
        allow_finisher: False for continuous packs, which only stretch mains

    Returns:
        New block list
    """
    delta = target_minutes - total_minutes(blocks)
    tolerance = time_tolerance(target_minutes, tolerance_pct)
    if abs(delta) <= tolerance:
        return list(blocks)

    if delta > 0:
        result = _fill_deficit(blocks, delta, target_minutes, allow_finisher)
    else:
        result = _trim_excess(blocks, -delta)

    logger.debug(
        "Duration delta corrected",
        target_minutes=target_minutes,
        delta=delta,
        total_before=total_minutes(blocks),
        total_after=total_minutes(result),
        blocks_added=len(result) - len(blocks),
    )
    return result
