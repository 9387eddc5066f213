"""Style policy validation.

Checks run in a fixed order and short-circuit on the first failure:
category whitelist, required pattern groups, banned names, banned patterns,
single-equipment requirement, then the main loaded ratio.
"""

from dataclasses import dataclass
from enum import StrEnum

from app.generation.items import iter_main_items, main_loaded_ratio, main_patterns, missing_groups
from app.generation.policy.table import StylePolicy
from app.generation.registry.movement import MovementRegistry, has_loaded_gear
from app.generation.schema.workout import Workout


class ViolationKind(StrEnum):
    CATEGORY = "category_mismatch"
    REQUIRED_PATTERNS = "required_patterns"
    BANNED_NAME = "banned_exercise"
    BANNED_PATTERN = "banned_pattern"
    EQUIPMENT = "barbell_only"
    LOADED_RATIO = "loaded_ratio"


@dataclass(frozen=True)
class PolicyResult:
    ok: bool
    kind: ViolationKind | None = None
    reason: str | None = None
    offender: str | None = None

    @classmethod
    def passed(cls) -> "PolicyResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, kind: ViolationKind, detail: str, offender: str | None = None) -> "PolicyResult":
        return cls(ok=False, kind=kind, reason=f"{kind}:{detail}", offender=offender)


def validate_policy(
    workout: Workout,
    policy: StylePolicy,
    registry: MovementRegistry,
    equipment: tuple[str, ...] | list[str],
) -> PolicyResult:
    """Check a workout's main blocks against a style policy.

    Args:
        workout: Sanitized workout
        policy: Style policy
        registry: Movement registry for item lookup
        equipment: Available equipment (the loaded-ratio rule only applies
            when barbell, dumbbell or kettlebell is present)

    Returns:
        PolicyResult describing the first violation, or a passing result
    """
    entries = list(iter_main_items(workout.blocks, registry))

    for entry in entries:
        movement = entry.movement
        if movement is not None and movement.category not in policy.allowed_categories:
            return PolicyResult.failed(ViolationKind.CATEGORY, movement.category, movement.name)

    missing = missing_groups(policy.required_any, main_patterns(workout.blocks, registry))
    if missing:
        return PolicyResult.failed(ViolationKind.REQUIRED_PATTERNS, "|".join(missing[0]))

    for entry in entries:
        if policy.bans_name(entry.item.exercise_name):
            return PolicyResult.failed(ViolationKind.BANNED_NAME, entry.item.exercise_name, entry.item.exercise_name)

    if policy.banned_main_patterns:
        for entry in entries:
            movement = entry.movement
            if movement is not None and movement.has_pattern(policy.banned_main_patterns):
                hit = next(p for p in movement.patterns if p in policy.banned_main_patterns)
                return PolicyResult.failed(ViolationKind.BANNED_PATTERN, hit, movement.name)

    if policy.require_equipment:
        for entry in entries:
            movement = entry.movement
            if movement is not None and not movement.uses_gear(policy.require_equipment):
                return PolicyResult.failed(ViolationKind.EQUIPMENT, movement.name, movement.name)

    if policy.require_loaded_ratio is not None and has_loaded_gear(equipment):
        ratio = main_loaded_ratio(workout.blocks, registry)
        if ratio < policy.require_loaded_ratio:
            return PolicyResult.failed(ViolationKind.LOADED_RATIO, f"{ratio:.2f}")

    return PolicyResult.passed()
