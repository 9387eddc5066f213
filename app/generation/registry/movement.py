from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import StrEnum

from app.generation.invariants import GEAR_EQUIPMENT, LOADED_EQUIPMENT


class MovementCategory(StrEnum):
    OLYMPIC_WEIGHTLIFTING = "olympic_weightlifting"
    POWERLIFTING = "powerlifting"
    BB_FULL_BODY = "bb_full_body"
    BB_UPPER = "bb_upper"
    BB_LOWER = "bb_lower"
    GYMNASTICS = "gymnastics"
    CROSSFIT = "crossfit"
    AEROBIC = "aerobic"
    MOBILITY = "mobility"


class Modality(StrEnum):
    STRENGTH = "strength"
    CONDITIONING = "conditioning"
    SKILL = "skill"
    AEROBIC = "aerobic"
    MOBILITY = "mobility"


@dataclass(frozen=True)
class Movement:
    """One catalog entry. Immutable and shared by every request."""

    id: str
    name: str
    category: MovementCategory
    patterns: tuple[str, ...]
    equipment: tuple[str, ...]
    modality: Modality
    level: str = "beginner"
    banned_in_main_when_equipment: bool = False
    aliases: tuple[str, ...] = ()

    @property
    def is_loaded(self) -> bool:
        return any(e in LOADED_EQUIPMENT for e in self.equipment)

    @property
    def is_bodyweight(self) -> bool:
        return "bodyweight" in self.equipment

    def has_pattern(self, patterns: Iterable[str]) -> bool:
        return any(p in self.patterns for p in patterns)

    def uses_gear(self, gear: str) -> bool:
        return gear in self.equipment


def has_loaded_gear(equipment: Iterable[str]) -> bool:
    """True when barbell, dumbbell or kettlebell is available."""
    return any(e in GEAR_EQUIPMENT for e in equipment)


class MovementRegistry:
    """Read-only movement catalog indexed by id."""

    def __init__(self, movements: Iterable[Movement], version: int | str | None = None):
        self._movements: tuple[Movement, ...] = tuple(movements)
        self._by_id: dict[str, Movement] = {}
        for movement in self._movements:
            if movement.id in self._by_id:
                raise ValueError(f"Duplicate movement id in registry: {movement.id}")
            self._by_id[movement.id] = movement
        self.version = version

    def __len__(self) -> int:
        return len(self._movements)

    def __iter__(self) -> Iterator[Movement]:
        return iter(self._movements)

    def __contains__(self, movement_id: object) -> bool:
        return movement_id in self._by_id

    @property
    def movements(self) -> tuple[Movement, ...]:
        return self._movements

    def get(self, movement_id: str | None) -> Movement | None:
        if not movement_id:
            return None
        return self._by_id.get(movement_id)

    def find(self, exercise_name: str) -> Movement | None:
        """Look up a movement by display name.

        Tries an exact (case-insensitive) name match, then an alias match,
        then a substring match in either direction.

        Args:
            exercise_name: Free-text exercise name

        Returns:
            Matching Movement or None
        """
        normalized = exercise_name.strip().lower()
        if not normalized:
            return None
        for movement in self._movements:
            if movement.name.lower() == normalized:
                return movement
        for movement in self._movements:
            if any(alias.lower() == normalized for alias in movement.aliases):
                return movement
        for movement in self._movements:
            name = movement.name.lower()
            if name in normalized or normalized in name:
                return movement
        return None

    def lookup(self, registry_id: str | None, exercise_name: str) -> Movement | None:
        """Resolve a workout item: registry id first, display name second."""
        return self.get(registry_id) or self.find(exercise_name)
