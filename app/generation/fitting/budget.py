"""Proportional time-budget scaling.

Shrinks main blocks so warmup + mains + cooldown fit the requested duration.
Blocks are never mutated: every step returns new blocks, and every resized
block gets its structure (and so its title) recomputed from the new minutes.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from app.generation.invariants import (
    MAX_MIN_BLOCK_MINUTES,
    MIN_COOLDOWN_MINUTES,
    MIN_MAIN_BLOCK_MINUTES,
    MIN_WARMUP_MINUTES,
)
from app.generation.items import main_patterns, missing_groups
from app.generation.registry.movement import MovementRegistry
from app.generation.schema.structure import BlockStructure, resize_structure, round_half_up
from app.generation.schema.workout import BlockKind, WorkoutBlock, WorkoutItem


def resized(block: WorkoutBlock, minutes: int) -> WorkoutBlock:
    """Copy of `block` at `minutes`, with its round count recomputed."""
    structure = resize_structure(block.structure, minutes)
    if minutes == block.time_minutes and block.structure == structure:
        return block
    update: dict = {"time_minutes": minutes, "structure": structure}
    old, new = block.structure, structure
    if (old.work_seconds, old.rest_seconds) != (new.work_seconds, new.rest_seconds):
        update["items"] = [_retimed(item, old, new) for item in block.items]
    return block.model_copy(update=update)


def _retimed(item: WorkoutItem, old: BlockStructure, new: BlockStructure) -> WorkoutItem:
    scheme = item.scheme
    changes: dict = {}
    if scheme.duration_seconds is not None and scheme.duration_seconds == old.work_seconds:
        changes["duration_seconds"] = new.work_seconds
    if scheme.rest_seconds is not None and scheme.rest_seconds == old.rest_seconds:
        changes["rest_seconds"] = new.rest_seconds
    if not changes:
        return item
    return item.model_copy(update={"scheme": scheme.model_copy(update=changes)})


@dataclass
class _Slot:
    index: int
    minutes: int


def _compress_edges(blocks: list[WorkoutBlock], needed: int, target_main: int) -> list[WorkoutBlock]:
    """Take minutes from warmup, then cooldown, down to their floors."""
    result = list(blocks)
    for kind, floor in ((BlockKind.WARMUP, MIN_WARMUP_MINUTES), (BlockKind.COOLDOWN, MIN_COOLDOWN_MINUTES)):
        if target_main >= needed:
            break
        for i, block in enumerate(result):
            if block.kind != kind or block.time_minutes <= floor:
                continue
            reduction = min(block.time_minutes - floor, needed - target_main)
            result[i] = resized(block, block.time_minutes - reduction)
            target_main += reduction
            break
    return result


def _carries_required_group(
    blocks: list[WorkoutBlock],
    gone: set[int],
    index: int,
    required_groups: Sequence[Sequence[str]],
    registry: MovementRegistry | None,
) -> bool:
    """True when dropping `index` would leave a required group with no carrier."""
    if not required_groups or registry is None:
        return False
    kept = [b for i, b in enumerate(blocks) if i not in gone]
    without = [b for i, b in enumerate(blocks) if i not in gone and i != index]
    return len(missing_groups(required_groups, main_patterns(without, registry))) > len(
        missing_groups(required_groups, main_patterns(kept, registry))
    )


def fit_to_budget(
    blocks: list[WorkoutBlock],
    target_minutes: int,
    required_groups: Sequence[Sequence[str]] = (),
    registry: MovementRegistry | None = None,
) -> list[WorkoutBlock]:
    """Scale main blocks down to the remaining budget.

    Steps, in order: scale mains by target/current with an adaptive per-block
    minimum, trim one minute at a time largest-first down to the main-block
    floor, drop the smallest mains that are not the last carrier of a
    required pattern group, and only then take minutes from warmup/cooldown.

    Args:
        blocks: Ordered blocks, warmup first and cooldown last
        target_minutes: Requested total duration
        required_groups: Pattern groups a dropped main must not take with it
        registry: Resolves item patterns for ``required_groups``

    Returns:
        New block list whose mains fit ``target_minutes`` whenever the
        floors allow it
    """
    mains = [i for i, b in enumerate(blocks) if b.is_main]
    if not mains:
        return list(blocks)
    current_main = sum(blocks[i].time_minutes for i in mains)
    edges = sum(b.time_minutes for b in blocks if not b.is_main)
    target_main = target_minutes - edges
    if current_main <= target_main:
        return list(blocks)

    min_block = max(MIN_MAIN_BLOCK_MINUTES, min(MAX_MIN_BLOCK_MINUTES, target_main // len(mains)))
    scale = target_main / current_main
    slots = [_Slot(i, max(min_block, round_half_up(blocks[i].time_minutes * scale))) for i in mains]

    def scaled_sum() -> int:
        return sum(s.minutes for s in slots)

    while scaled_sum() > target_main and any(s.minutes > MIN_MAIN_BLOCK_MINUTES for s in slots):
        for slot in sorted(slots, key=lambda s: (-s.minutes, s.index)):
            if scaled_sum() <= target_main:
                break
            if slot.minutes > MIN_MAIN_BLOCK_MINUTES:
                slot.minutes -= 1

    removed: set[int] = set()
    while scaled_sum() > target_main and len(slots) > 1:
        candidates = [
            s for s in slots if not _carries_required_group(blocks, removed, s.index, required_groups, registry)
        ]
        if not candidates:
            break
        smallest = min(candidates, key=lambda s: (s.minutes, blocks[s.index].time_minutes, -s.index))
        slots.remove(smallest)
        removed.add(smallest.index)

    result = list(blocks)
    for slot in slots:
        result[slot.index] = resized(result[slot.index], slot.minutes)
    result = [b for i, b in enumerate(result) if i not in removed]

    if scaled_sum() > target_main:
        result = _compress_edges(result, scaled_sum(), target_main)

    logger.debug(
        "Main blocks scaled to budget",
        target_minutes=target_minutes,
        main_before=current_main,
        main_after=scaled_sum(),
        removed_blocks=len(removed),
    )
    return result
