"""Deterministic seeded movement queries.

Filtering is a pure set intersection over category, pattern, modality and
equipment tags. Ordering is a seeded Fisher-Yates shuffle over a pool in
which loaded movements appear three times, so loaded options surface first
more often without ever being guaranteed.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger

from app.generation.invariants import FREE_EQUIPMENT
from app.generation.registry.movement import Movement, MovementRegistry
from app.generation.registry.rng import SeededRandom

LOADED_WEIGHT = 3


@dataclass(frozen=True)
class MovementQuery:
    """Query criteria. ``None`` means "do not filter on this field".

    An empty ``equipment`` tuple is a real filter: only bodyweight and
    mobility movements qualify.
    """

    seed: str
    categories: tuple[str, ...] | None = None
    patterns: tuple[str, ...] | None = None
    modality: tuple[str, ...] | None = None
    equipment: tuple[str, ...] | None = None
    exclude_banned_mains: bool = False
    avoid_patterns: tuple[str, ...] = field(default_factory=tuple)
    exclude_ids: tuple[str, ...] = field(default_factory=tuple)
    limit: int | None = None


def equipment_ok(movement: Movement, available: Sequence[str]) -> bool:
    return any(e in available or e in FREE_EQUIPMENT for e in movement.equipment)


def _matches(movement: Movement, query: MovementQuery) -> bool:
    if query.categories is not None and movement.category not in query.categories:
        return False
    if query.patterns is not None and not movement.has_pattern(query.patterns):
        return False
    if query.modality is not None and movement.modality not in query.modality:
        return False
    if movement.id in query.exclude_ids:
        return False
    if query.equipment is not None:
        if query.exclude_banned_mains and query.equipment and movement.banned_in_main_when_equipment:
            return False
        if not equipment_ok(movement, query.equipment):
            return False
    return True


def filter_movements(registry: MovementRegistry, query: MovementQuery) -> list[Movement]:
    """Unordered candidate pool, in registry order."""
    pool = [m for m in registry if _matches(m, query)]
    if query.avoid_patterns:
        safe = [m for m in pool if not m.has_pattern(query.avoid_patterns)]
        if safe:
            return safe
        logger.debug(
            "No movements avoid the requested patterns, using unfiltered pool",
            avoid_patterns=list(query.avoid_patterns),
            pool_size=len(pool),
        )
    return pool


def query_movements(registry: MovementRegistry, query: MovementQuery) -> list[Movement]:
    """Run a seeded query against the registry.

    Args:
        registry: Movement registry to search
        query: Filter criteria, seed and limit

    Returns:
        Deduplicated movements in seeded order. Empty when nothing matches;
        callers decide whether that is fatal.
    """
    pool = filter_movements(registry, query)
    weighted: list[Movement] = []
    for movement in pool:
        weighted.extend([movement] * (LOADED_WEIGHT if movement.is_loaded else 1))

    shuffled = SeededRandom(query.seed).shuffle(weighted)

    unique: dict[str, Movement] = {}
    for movement in shuffled:
        if movement.id not in unique:
            unique[movement.id] = movement
        if query.limit and len(unique) >= query.limit:
            break
    return list(unique.values())
