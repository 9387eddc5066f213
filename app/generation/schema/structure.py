"""First-class block structure.

A block's structure (EMOM, Every X:XX, AMRAP, intervals, ...) is data. The
display title is always rendered from the structure and the block minutes,
and resizing a block recomputes its round count, so title and duration can
never diverge.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

INTERVAL_STEP_SECONDS = 15


class StructureKind(StrEnum):
    EVERY = "every"
    EMOM = "emom"
    AMRAP = "amrap"
    FOR_TIME = "for_time"
    CHIPPER = "chipper"
    INTERVALS = "intervals"
    STEADY = "steady"
    SETS = "sets"
    CIRCUIT = "circuit"
    FLOW = "flow"


# Structures whose round count is a function of minutes
TIMED_KINDS: frozenset[StructureKind] = frozenset(
    {StructureKind.EVERY, StructureKind.EMOM, StructureKind.AMRAP, StructureKind.INTERVALS}
)

# Structures the delta corrector may stretch or shrink in place
STRETCHABLE_KINDS: frozenset[StructureKind] = frozenset({StructureKind.EVERY, StructureKind.EMOM})


class BlockStructure(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: StructureKind
    rounds: int | None = Field(None, gt=0)
    interval_seconds: int | None = Field(None, gt=0)
    alternating: bool = False
    rep_scheme: str | None = None
    work_seconds: int | None = Field(None, gt=0)
    rest_seconds: int | None = Field(None, ge=0)
    effort: str | None = None  # e.g. "vo2", "cruise", "steady", "z3"
    fixed_rounds: bool = False  # intervals keep their rep count when stretched
    label: str | None = None


def round_half_up(value: float) -> int:
    return int(value + 0.5)


def format_clock(seconds: int) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def _with_label(title: str, label: str | None) -> str:
    return f"{title} - {label}" if label else title


def render_title(structure: BlockStructure, minutes: int) -> str:
    """Render the display title for a block.

    Args:
        structure: Block structure
        minutes: Block duration in minutes

    Returns:
        Title string such as "EMOM 12" or "Every 2:00 x 7 - Snatch Complex"
    """
    kind = structure.kind
    if kind == StructureKind.EVERY:
        prefix = "Alt Every" if structure.alternating else "Every"
        clock = format_clock(structure.interval_seconds or 120)
        return _with_label(f"{prefix} {clock} x {structure.rounds}", structure.label)
    if kind == StructureKind.EMOM:
        return _with_label(f"EMOM {structure.rounds}", structure.label)
    if kind == StructureKind.AMRAP:
        return _with_label(f"AMRAP {structure.rounds}", structure.label)
    if kind == StructureKind.FOR_TIME:
        return _with_label(f"For Time {structure.rep_scheme}", structure.label)
    if kind == StructureKind.CHIPPER:
        return _with_label(f"Chipper {structure.rep_scheme}", structure.label)
    if kind == StructureKind.INTERVALS:
        work = format_clock(structure.work_seconds or 60)
        rest = format_clock(structure.rest_seconds or 0)
        title = f"{structure.rounds} x {work} hard / {rest} easy"
        return f"{structure.label} {title}" if structure.label else f"Intervals {title}"
    if kind == StructureKind.STEADY:
        return f"{structure.label or 'Steady'} {minutes} min"
    if kind == StructureKind.CIRCUIT and structure.rounds:
        return f"{structure.label or 'Circuit'} - {structure.rounds} Rounds"
    return structure.label or kind.value.replace("_", " ").title()


def _every_rounds(structure: BlockStructure, minutes: int) -> int:
    min_rounds = 4 if structure.alternating else 2
    interval = structure.interval_seconds or 120
    return max(min_rounds, round_half_up(minutes * 60 / interval))


def _interval_capacity(structure: BlockStructure, minutes: int) -> int:
    cycle = (structure.work_seconds or 60) + (structure.rest_seconds or 0)
    return max(1, (minutes * 60) // cycle)


def _fit_one_cycle(structure: BlockStructure, minutes: int) -> BlockStructure:
    """Shrink work and rest proportionally so a single cycle fits in `minutes`."""
    work = structure.work_seconds or 60
    rest = structure.rest_seconds or 0
    available = minutes * 60
    if work + rest <= available:
        return structure
    factor = available / (work + rest)
    new_work = max(INTERVAL_STEP_SECONDS, int(work * factor) // INTERVAL_STEP_SECONDS * INTERVAL_STEP_SECONDS)
    new_rest = int(rest * factor) // INTERVAL_STEP_SECONDS * INTERVAL_STEP_SECONDS
    while new_work + new_rest > available and new_rest > 0:
        new_rest -= INTERVAL_STEP_SECONDS
    return structure.model_copy(update={"work_seconds": new_work, "rest_seconds": max(0, new_rest)})


def resize_structure(structure: BlockStructure, minutes: int) -> BlockStructure:
    """Return the structure with its round count recomputed for `minutes`.

    Interval blocks shorter than one work+rest cycle get their work and rest
    scaled down so one round still fits.
    """
    kind = structure.kind
    if kind == StructureKind.EVERY:
        return structure.model_copy(update={"rounds": _every_rounds(structure, minutes)})
    if kind in (StructureKind.EMOM, StructureKind.AMRAP):
        return structure.model_copy(update={"rounds": max(1, minutes)})
    if kind == StructureKind.INTERVALS:
        structure = _fit_one_cycle(structure, max(1, minutes))
        capacity = _interval_capacity(structure, minutes)
        rounds = min(structure.rounds or capacity, capacity) if structure.fixed_rounds else capacity
        return structure.model_copy(update={"rounds": rounds})
    return structure


def structure_matches_minutes(structure: BlockStructure, minutes: int) -> bool:
    """Check that the round count embedded in a structure agrees with minutes."""
    kind = structure.kind
    if kind == StructureKind.EVERY:
        return structure.rounds == _every_rounds(structure, minutes)
    if kind in (StructureKind.EMOM, StructureKind.AMRAP):
        return structure.rounds == minutes
    if kind == StructureKind.INTERVALS:
        cycle = (structure.work_seconds or 60) + (structure.rest_seconds or 0)
        return structure.rounds is not None and structure.rounds * cycle <= minutes * 60
    return True
