"""Main-block item helpers shared by the post-composition stages."""

from collections.abc import Iterator
from dataclasses import dataclass

from app.generation.registry.movement import Movement, MovementRegistry
from app.generation.schema.workout import WorkoutBlock, WorkoutItem


@dataclass(frozen=True)
class MainItem:
    block_index: int
    item_index: int
    item: WorkoutItem
    movement: Movement | None


def iter_main_items(blocks: list[WorkoutBlock], registry: MovementRegistry) -> Iterator[MainItem]:
    for bi, block in enumerate(blocks):
        if not block.is_main:
            continue
        for ii, item in enumerate(block.items):
            yield MainItem(bi, ii, item, registry.lookup(item.registry_id, item.exercise_name))


def main_patterns(blocks: list[WorkoutBlock], registry: MovementRegistry) -> set[str]:
    return {p for entry in iter_main_items(blocks, registry) if entry.movement for p in entry.movement.patterns}


def missing_groups(groups: tuple[tuple[str, ...], ...] | list[list[str]], patterns: set[str]) -> list[list[str]]:
    """Return the groups with no matching pattern (empty when all are satisfied)."""
    return [list(group) for group in groups if not any(p in patterns for p in group)]


def main_loaded_ratio(blocks: list[WorkoutBlock], registry: MovementRegistry) -> float:
    """Share of main items whose movement carries a loaded-equipment tag."""
    entries = list(iter_main_items(blocks, registry))
    if not entries:
        return 0.0
    loaded = sum(1 for e in entries if e.movement is not None and e.movement.is_loaded)
    return loaded / len(entries)


def replace_item(blocks: list[WorkoutBlock], block_index: int, item_index: int, item: WorkoutItem) -> list[WorkoutBlock]:
    result = list(blocks)
    block = result[block_index]
    items = [item if i == item_index else existing for i, existing in enumerate(block.items)]
    result[block_index] = block.model_copy(update={"items": items})
    return result


def swap_movement(item: WorkoutItem, movement: Movement, marker: str) -> WorkoutItem:
    """Item rewritten to `movement`, keeping its scheme and tagging the notes."""
    scheme = item.scheme
    if scheme.percent_1rm is not None and not movement.is_loaded:
        scheme = scheme.model_copy(update={"percent_1rm": None})
    notes = f"{item.notes} {marker}" if item.notes else marker
    return item.model_copy(
        update={"exercise_name": movement.name, "registry_id": movement.id, "scheme": scheme, "notes": notes}
    )
