"""Static pattern packs.

Styles without structural branching use a fixed template. Block minutes are
targets; the fitter rescales them to the requested duration.
"""

from app.generation.invariants import CARDIO_TIME_TOLERANCE_PCT
from app.generation.packs.types import DEFAULT_LOCKED_STRUCTURES, MainBlockSpec, PatternPack, SelectionCriteria
from app.generation.schema.request import Style
from app.generation.schema.structure import BlockStructure, StructureKind
from app.generation.schema.workout import BlockKind, ItemScheme


def _every(seconds: int, label: str | None = None) -> BlockStructure:
    return BlockStructure(kind=StructureKind.EVERY, interval_seconds=seconds, label=label)


_EMOM = BlockStructure(kind=StructureKind.EMOM)
_AMRAP = BlockStructure(kind=StructureKind.AMRAP)


BB_FULL_BODY_PACK = PatternPack(
    name="bb_full_body",
    warmup_minutes=6,
    cooldown_minutes=6,
    hardness_floor=0.80,
    main_blocks=(
        MainBlockSpec(
            kind=BlockKind.STRENGTH,
            minutes=12,
            structure=_every(150),
            select=SelectionCriteria(("bb_full_body",), ("squat", "hinge"), items=2, require_loaded=True, cover_patterns=True),
            scheme=ItemScheme(reps=10, rest_seconds=90),
        ),
        MainBlockSpec(
            kind=BlockKind.STRENGTH,
            minutes=12,
            structure=_every(120),
            select=SelectionCriteria(("bb_full_body",), ("press", "pull"), items=2, require_loaded=True, cover_patterns=True),
            scheme=ItemScheme(reps=12, rest_seconds=60),
        ),
        MainBlockSpec(
            kind=BlockKind.CONDITIONING,
            minutes=10,
            structure=_EMOM,
            select=SelectionCriteria(("bb_full_body",), ("arms", "shoulders", "core"), items=2),
            scheme=ItemScheme(reps=12),
        ),
    ),
)

BB_UPPER_PACK = PatternPack(
    name="bb_upper",
    warmup_minutes=6,
    cooldown_minutes=6,
    hardness_floor=0.80,
    main_blocks=(
        MainBlockSpec(
            kind=BlockKind.STRENGTH,
            minutes=12,
            structure=_every(120),
            select=SelectionCriteria(("bb_upper",), ("press", "pull"), items=2, require_loaded=True, cover_patterns=True),
            scheme=ItemScheme(reps=10, rest_seconds=60),
        ),
        MainBlockSpec(
            kind=BlockKind.CONDITIONING,
            minutes=12,
            structure=_EMOM,
            select=SelectionCriteria(("bb_upper",), ("shoulders", "arms", "pull"), items=2),
            scheme=ItemScheme(reps=12),
        ),
    ),
)

BB_LOWER_PACK = PatternPack(
    name="bb_lower",
    warmup_minutes=6,
    cooldown_minutes=6,
    hardness_floor=0.80,
    main_blocks=(
        MainBlockSpec(
            kind=BlockKind.STRENGTH,
            minutes=12,
            structure=_every(120),
            select=SelectionCriteria(("bb_lower",), ("squat", "lunge"), items=2, require_loaded=True, cover_patterns=True),
            scheme=ItemScheme(reps=10, rest_seconds=90),
        ),
        MainBlockSpec(
            kind=BlockKind.STRENGTH,
            minutes=12,
            structure=_every(120),
            select=SelectionCriteria(("bb_lower",), ("hinge", "glute", "calf"), items=2, require_loaded=True),
            scheme=ItemScheme(reps=12, rest_seconds=60),
        ),
    ),
)

AEROBIC_PACK = PatternPack(
    name="aerobic",
    warmup_minutes=6,
    cooldown_minutes=6,
    hardness_floor=0.70,
    main_blocks=(
        MainBlockSpec(
            kind=BlockKind.CONDITIONING,
            minutes=16,
            structure=BlockStructure(
                kind=StructureKind.INTERVALS, work_seconds=180, rest_seconds=60, effort="cruise", label="Threshold"
            ),
            select=SelectionCriteria(("aerobic",), ("cardio",), items=1),
        ),
        MainBlockSpec(
            kind=BlockKind.CONDITIONING,
            minutes=12,
            structure=BlockStructure(
                kind=StructureKind.INTERVALS, work_seconds=40, rest_seconds=20, effort="vo2", label="Speed"
            ),
            select=SelectionCriteria(("aerobic",), ("cardio",), items=1),
        ),
    ),
    time_tolerance_pct=CARDIO_TIME_TOLERANCE_PCT,
    continuous_scoring=True,
    expects_load=False,
)

GYMNASTICS_PACK = PatternPack(
    name="gymnastics",
    warmup_minutes=6,
    cooldown_minutes=6,
    hardness_floor=0.60,
    main_blocks=(
        MainBlockSpec(
            kind=BlockKind.SKILL,
            minutes=12,
            structure=_EMOM,
            select=SelectionCriteria(("gymnastics",), ("gym_pull", "gym_push", "inversion"), items=2, cover_patterns=True),
            scheme=ItemScheme(reps=5),
        ),
        MainBlockSpec(
            kind=BlockKind.CORE,
            minutes=10,
            structure=_AMRAP,
            select=SelectionCriteria(("gymnastics",), ("core", "gym_pull"), items=2),
            scheme=ItemScheme(reps=10),
        ),
    ),
    expects_load=False,
)

MOBILITY_PACK = PatternPack(
    name="mobility",
    warmup_minutes=4,
    cooldown_minutes=4,
    hardness_floor=0.40,
    main_blocks=(
        MainBlockSpec(
            kind=BlockKind.SKILL,
            minutes=12,
            structure=BlockStructure(kind=StructureKind.CIRCUIT, rounds=3, effort="circuit", label="Mobility Flow"),
            select=SelectionCriteria(("mobility",), ("mobility_dynamic", "mobility_static"), items=4),
            scheme=ItemScheme(duration_seconds=45),
        ),
        MainBlockSpec(
            kind=BlockKind.CORE,
            minutes=10,
            structure=BlockStructure(kind=StructureKind.CIRCUIT, rounds=2, effort="circuit", label="Stability Circuit"),
            select=SelectionCriteria(("mobility",), ("mobility_static", "core"), items=4),
            scheme=ItemScheme(duration_seconds=40),
        ),
    ),
    locked_structures=DEFAULT_LOCKED_STRUCTURES | {StructureKind.CIRCUIT, StructureKind.FLOW},
    time_tolerance_pct=CARDIO_TIME_TOLERANCE_PCT,
    continuous_scoring=True,
    expects_load=False,
)


STATIC_PACKS: dict[Style, PatternPack] = {
    Style.BB_FULL_BODY: BB_FULL_BODY_PACK,
    Style.BB_UPPER: BB_UPPER_PACK,
    Style.BB_LOWER: BB_LOWER_PACK,
    Style.AEROBIC: AEROBIC_PACK,
    Style.GYMNASTICS: GYMNASTICS_PACK,
    Style.MOBILITY: MOBILITY_PACK,
}
