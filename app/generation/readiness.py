"""Readiness adjustment.

Health markers and yesterday's session lower the working intensity and add
constraint tags; constraint tags map to movement patterns that selection
avoids when alternatives exist.
"""

from dataclasses import dataclass

from loguru import logger

from app.generation.invariants import (
    CAUTION_HRV_BELOW,
    CAUTION_RESTING_HR_ABOVE,
    CAUTION_SLEEP_BELOW,
    LOW_READINESS_SLEEP_SCORE,
)
from app.generation.schema.request import GenerationRequest

RECOVERY_CONSTRAINT = "recovery_focused_due_to_health_markers"
HEAVY_LEGS_CONSTRAINT = "avoid_heavy_legs_due_to_yesterday"

# Substring of a constraint tag -> patterns to avoid in mains
CONSTRAINT_PATTERNS: dict[str, tuple[str, ...]] = {
    "knee": ("jump", "lunge"),
    "shoulder": ("gym_push", "overhead"),
    "back": ("hinge",),
    "no_jumping": ("jump",),
    "avoid_heavy_legs": ("squat", "hinge", "lunge"),
}

_HEAVY_LEG_MOVEMENTS = ("squat", "deadlift", "lunge")


@dataclass(frozen=True)
class Readiness:
    working_intensity: int
    constraints: tuple[str, ...]
    caution_flags: tuple[str, ...]
    avoid_patterns: tuple[str, ...]
    low_readiness: bool
    mod_applied: bool


def caution_flags(request: GenerationRequest) -> list[str]:
    health = request.health
    if health is None:
        return []
    flags: list[str] = []
    if health.hrv is not None and health.hrv < CAUTION_HRV_BELOW:
        flags.append("low_hrv")
    if health.resting_hr is not None and health.resting_hr > CAUTION_RESTING_HR_ABOVE:
        flags.append("elevated_resting_hr")
    if health.sleep_score is not None and health.sleep_score < CAUTION_SLEEP_BELOW:
        flags.append("poor_sleep")
    if health.stress_flag:
        flags.append("stress")
    return flags


def _yesterday_was_heavy_legs(request: GenerationRequest) -> bool:
    yesterday = request.yesterday
    if yesterday is None:
        return False
    if (yesterday.type or "").strip().lower() == "heavy_legs":
        return True
    return any(word in m.lower() for m in yesterday.movements for word in _HEAVY_LEG_MOVEMENTS)


def avoided_patterns(constraints: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """Patterns implied by constraint tags, in first-seen order."""
    patterns: dict[str, None] = {}
    for tag in constraints:
        for key, mapped in CONSTRAINT_PATTERNS.items():
            if key in tag:
                patterns.update(dict.fromkeys(mapped))
    return tuple(patterns)


def assess_readiness(request: GenerationRequest) -> Readiness:
    """Derive working intensity, constraints and avoided patterns for a request."""
    flags = caution_flags(request)
    constraints = list(request.constraints)
    intensity = request.intensity

    if len(flags) >= 2:
        intensity = max(1, intensity - 2)
        constraints.append(RECOVERY_CONSTRAINT)
    elif len(flags) == 1:
        intensity = max(1, intensity - 1)

    if _yesterday_was_heavy_legs(request):
        constraints.append(HEAVY_LEGS_CONSTRAINT)

    constraints = list(dict.fromkeys(constraints))
    sleep = request.health.sleep_score if request.health else None
    low_readiness = sleep is not None and sleep < LOW_READINESS_SLEEP_SCORE
    mod_applied = not flags or intensity < request.intensity or request.intensity == 1

    readiness = Readiness(
        working_intensity=intensity,
        constraints=tuple(constraints),
        caution_flags=tuple(flags),
        avoid_patterns=avoided_patterns(constraints),
        low_readiness=low_readiness,
        mod_applied=mod_applied,
    )
    if flags or len(constraints) != len(request.constraints):
        logger.info(
            "Readiness adjustment applied",
            caution_flags=flags,
            requested_intensity=request.intensity,
            working_intensity=intensity,
            constraints=constraints,
        )
    return readiness
