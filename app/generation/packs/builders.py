"""Duration-, intensity- and equipment-aware pack builders.

Styles with structural branching get their pack built per request. Each
builder returns the same PatternPack shape as the static table.
"""

from collections.abc import Sequence

from app.generation.invariants import CARDIO_TIME_TOLERANCE_PCT
from app.generation.packs.types import DEFAULT_LOCKED_STRUCTURES, CyclicalModality, MainBlockSpec, PatternPack, SelectionCriteria
from app.generation.schema.request import FocusArea
from app.generation.schema.structure import BlockStructure, StructureKind, round_half_up
from app.generation.schema.workout import BlockKind, ItemScheme

SNATCH = "olympic_snatch"
CLEAN_JERK = "olympic_cleanjerk"

OLYMPIC_SPLIT_BUDGET_MINUTES = 24
OLYMPIC_MIN_BLOCK_MINUTES = 10
OLYMPIC_MAX_BLOCK_MINUTES = 16

DEFAULT_FOCUS: tuple[FocusArea, ...] = (FocusArea.STRENGTH, FocusArea.CONDITIONING)


def clamp(n: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, n))


# ---- CROSSFIT / CONDITIONING / MIXED ----


def _crossfit_focus_block(focus: FocusArea, intensity: int) -> MainBlockSpec:
    if focus == FocusArea.STRENGTH:
        return MainBlockSpec(
            kind=BlockKind.STRENGTH,
            minutes=13,
            structure=BlockStructure(kind=StructureKind.EVERY, interval_seconds=150),
            select=SelectionCriteria(("crossfit",), ("squat", "press", "hinge"), items=2, require_loaded=True),
            scheme=ItemScheme(reps=5, rest_seconds=60),
        )
    if focus == FocusArea.CONDITIONING:
        return MainBlockSpec(
            kind=BlockKind.CONDITIONING,
            minutes=16 if intensity >= 8 else 14,
            structure=BlockStructure(kind=StructureKind.EMOM),
            select=SelectionCriteria(("crossfit",), ("cardio", "hinge", "squat", "press"), items=2, require_loaded=True),
            scheme=ItemScheme(reps=12),
        )
    if focus == FocusArea.SKILL:
        return MainBlockSpec(
            kind=BlockKind.SKILL,
            minutes=12,
            structure=BlockStructure(kind=StructureKind.AMRAP),
            select=SelectionCriteria(("crossfit",), ("gym_pull", "gym_push", "inversion", "jump_rope"), items=2),
            scheme=ItemScheme(reps=8),
        )
    return MainBlockSpec(
        kind=BlockKind.CORE,
        minutes=10,
        structure=BlockStructure(kind=StructureKind.AMRAP),
        select=SelectionCriteria(("crossfit",), ("core",), items=2),
        scheme=ItemScheme(reps=15),
    )


def build_crossfit_pack(intensity: int, focus_areas: Sequence[FocusArea] = ()) -> PatternPack:
    """One main block per declared focus, in request order."""
    focus = tuple(dict.fromkeys(focus_areas)) or DEFAULT_FOCUS
    return PatternPack(
        name="crossfit",
        warmup_minutes=8,
        cooldown_minutes=6,
        hardness_floor=0.85,
        main_blocks=tuple(_crossfit_focus_block(f, intensity) for f in focus),
        focus_count=len(focus),
    )


# ---- OLYMPIC WEIGHTLIFTING ----


def build_olympic_pack(total_minutes: int) -> PatternPack:
    """Two single-lift blocks when the budget allows, else one alternating block."""
    warmup = 8 if total_minutes >= 35 else 6
    cooldown = 6 if total_minutes >= 35 else 4
    budget = max(0, total_minutes - warmup - cooldown)
    required = ((SNATCH,), (CLEAN_JERK,))

    if budget >= OLYMPIC_SPLIT_BUDGET_MINUTES:
        per_block = clamp(budget // 2, OLYMPIC_MIN_BLOCK_MINUTES, OLYMPIC_MAX_BLOCK_MINUTES)
        blocks = tuple(
            MainBlockSpec(
                kind=BlockKind.STRENGTH,
                minutes=per_block,
                structure=BlockStructure(kind=StructureKind.EVERY, interval_seconds=120, label=label),
                select=SelectionCriteria(("olympic_weightlifting",), (pattern,), items=1, require_loaded=True),
                scheme=ItemScheme(reps=2, percent_1rm=75),
            )
            for pattern, label in ((SNATCH, "Snatch Complex"), (CLEAN_JERK, "Clean & Jerk Complex"))
        )
        name = "olympic_weightlifting_split"
    else:
        blocks = (
            MainBlockSpec(
                kind=BlockKind.STRENGTH,
                minutes=clamp(budget, OLYMPIC_MIN_BLOCK_MINUTES, max(OLYMPIC_MIN_BLOCK_MINUTES, budget)),
                structure=BlockStructure(
                    kind=StructureKind.EVERY, interval_seconds=120, alternating=True, label="Snatch / Clean & Jerk"
                ),
                select=SelectionCriteria(
                    ("olympic_weightlifting",), (SNATCH, CLEAN_JERK), items=2, require_loaded=True, cover_patterns=True
                ),
                scheme=ItemScheme(reps=2, percent_1rm=70),
            ),
        )
        name = "olympic_weightlifting_alternating"

    return PatternPack(
        name=name,
        warmup_minutes=warmup,
        cooldown_minutes=cooldown,
        hardness_floor=0.85,
        main_blocks=blocks,
        required_pattern_groups=required,
    )


# ---- POWERLIFTING / STRENGTH ----


def build_powerlifting_pack(intensity: int, name: str = "powerlifting") -> PatternPack:
    """Squat, then bench (or a heavy hinge day at 9+), then an accessory EMOM.

    The accessory block covers whichever of bench/hinge the main lifts did not.
    """
    heavy_hinge = intensity >= 9
    lift_b_pattern = "hinge" if heavy_hinge else "bench"
    accessory_patterns = ("bench", "pull") if heavy_hinge else ("hinge", "pull")
    top_percent = 90 if intensity >= 9 else 85 if intensity >= 7 else 75
    return PatternPack(
        name=name,
        warmup_minutes=8,
        cooldown_minutes=6,
        hardness_floor=0.85,
        main_blocks=(
            MainBlockSpec(
                kind=BlockKind.STRENGTH,
                minutes=15,
                structure=BlockStructure(kind=StructureKind.EVERY, interval_seconds=180, label="Lift A"),
                select=SelectionCriteria(("powerlifting",), ("squat",), items=1, require_loaded=True),
                scheme=ItemScheme(reps=3, percent_1rm=top_percent, rest_seconds=120),
            ),
            MainBlockSpec(
                kind=BlockKind.STRENGTH,
                minutes=12,
                structure=BlockStructure(kind=StructureKind.EVERY, interval_seconds=150, label="Lift B"),
                select=SelectionCriteria(("powerlifting",), (lift_b_pattern,), items=1, require_loaded=True),
                scheme=ItemScheme(reps=3, percent_1rm=top_percent - 5, rest_seconds=90),
            ),
            MainBlockSpec(
                kind=BlockKind.STRENGTH,
                minutes=10,
                structure=BlockStructure(kind=StructureKind.EMOM, label="Accessory"),
                select=SelectionCriteria(
                    ("powerlifting",), accessory_patterns, items=2, require_loaded=True, cover_patterns=True
                ),
                scheme=ItemScheme(reps=8),
            ),
        ),
    )


# ---- ENDURANCE ----


def pick_cyclical(equipment: Sequence[str]) -> CyclicalModality:
    """Best available cyclical modality: rower > bike > run > ski erg > jump rope."""
    eq = {e.lower() for e in equipment}
    if "rower" in eq:
        return CyclicalModality("Row", ("row", "erg", "cyclical"))
    if eq & {"bike", "air_bike", "assault_bike"}:
        return CyclicalModality("Bike", ("bike", "erg", "cyclical"))
    if "treadmill" in eq:
        return CyclicalModality("Run", ("run", "cyclical"))
    if "ski_erg" in eq:
        return CyclicalModality("Ski Erg", ("ski", "erg", "cyclical"))
    return CyclicalModality("Jump Rope", ("jump_rope", "cyclical"))


def _endurance_structure(budget: int, intensity: int, modality: str) -> tuple[BlockStructure, float]:
    if intensity <= 6:
        structure = BlockStructure(kind=StructureKind.STEADY, effort="steady", label=f"Steady {modality}")
        return structure, 0.30
    if intensity == 7:
        work_min = max(1, round_half_up(budget / 3))
        rest_min = max(2, round_half_up(budget / 9))
        rounds = max(1, budget // (work_min + rest_min))
        structure = BlockStructure(
            kind=StructureKind.INTERVALS,
            rounds=rounds,
            work_seconds=work_min * 60,
            rest_seconds=rest_min * 60,
            effort="cruise",
            label=f"Cruise {modality}",
        )
        return structure, 0.40
    structure = BlockStructure(
        kind=StructureKind.INTERVALS,
        rounds=10,
        fixed_rounds=True,
        work_seconds=60,
        rest_seconds=60,
        effort="vo2",
        label=f"VO2 {modality}",
    )
    return structure, 0.50


def build_endurance_pack(total_minutes: int, intensity: int, equipment: Sequence[str]) -> PatternPack:
    """Single cyclical main block whose structure is chosen by intensity."""
    warmup = 8 if total_minutes >= 40 else 6 if total_minutes >= 30 else 5
    cooldown = 6 if total_minutes >= 40 else 4 if total_minutes >= 30 else 3
    budget = max(10, total_minutes - warmup - cooldown)
    modality = pick_cyclical(equipment)
    structure, floor = _endurance_structure(budget, clamp(intensity, 1, 10), modality.name)
    scheme = (
        ItemScheme(duration_seconds=budget * 60)
        if structure.kind == StructureKind.STEADY
        else ItemScheme(duration_seconds=structure.work_seconds, rest_seconds=structure.rest_seconds)
    )
    return PatternPack(
        name=f"endurance_{structure.effort}",
        warmup_minutes=warmup,
        cooldown_minutes=cooldown,
        hardness_floor=floor,
        main_blocks=(
            MainBlockSpec(
                kind=BlockKind.CONDITIONING,
                minutes=budget,
                structure=structure,
                # item must match the modality named in the title
                select=SelectionCriteria(("aerobic",), modality.patterns[:1], items=1),
                scheme=scheme,
            ),
        ),
        locked_structures=DEFAULT_LOCKED_STRUCTURES | {StructureKind.STEADY},
        time_tolerance_pct=CARDIO_TIME_TOLERANCE_PCT,
        continuous_scoring=True,
        expects_load=False,
    )
