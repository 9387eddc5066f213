"""Warmup, cooldown and item builders.

Warmup and cooldown content is fixed per style family and carries no
registry ids; policy and sanitization only ever look at main blocks.
"""

from app.generation.context import GenerationContext
from app.generation.packs.resolver import CROSSFIT_FAMILY
from app.generation.packs.types import MainBlockSpec
from app.generation.registry.movement import Movement
from app.generation.schema.request import Style
from app.generation.schema.structure import BlockStructure, StructureKind
from app.generation.schema.workout import BlockKind, ItemScheme, WorkoutBlock, WorkoutItem

CARDIO_STYLES: frozenset[Style] = frozenset({Style.AEROBIC, Style.ENDURANCE, Style.MOBILITY})

WORKOUT_TITLES: dict[Style, str] = {
    Style.CROSSFIT: "CrossFit HIIT Session",
    Style.CONDITIONING: "Conditioning Session",
    Style.MIXED: "Mixed Training Session",
    Style.OLYMPIC_WEIGHTLIFTING: "Olympic Weightlifting Session",
    Style.POWERLIFTING: "Powerlifting Session",
    Style.STRENGTH: "Strength Session",
    Style.BB_FULL_BODY: "Bodybuilding Full Body Session",
    Style.BB_UPPER: "Bodybuilding Upper Body Session",
    Style.BB_LOWER: "Bodybuilding Lower Body Session",
    Style.AEROBIC: "Aerobic Intervals Session",
    Style.ENDURANCE: "Endurance Session",
    Style.GYMNASTICS: "Gymnastics Skill Session",
    Style.MOBILITY: "Mobility & Recovery Session",
}


def _item(name: str, notes: str, *, reps: int | None = None, seconds: int | None = None) -> WorkoutItem:
    return WorkoutItem(exercise_name=name, scheme=ItemScheme(reps=reps, duration_seconds=seconds), notes=notes)


def _flow(label: str) -> BlockStructure:
    return BlockStructure(kind=StructureKind.FLOW, label=label)


def build_warmup(ctx: GenerationContext, minutes: int) -> WorkoutBlock:
    style = ctx.style
    has_barbell = "barbell" in ctx.equipment

    if style == Style.OLYMPIC_WEIGHTLIFTING and has_barbell:
        label = "Barbell Warm-up Complex"
        items = [
            _item("PVC Pass-Through", "Shoulder mobility", reps=10),
            _item("Burgener Warm-up", "Down-up, elbows high, muscle snatch, snatch balance", reps=5),
            _item("Empty Bar Snatch", "Focus on positions", reps=5),
            _item("Empty Bar Clean & Jerk", "Focus on timing", reps=5),
        ]
    elif style == Style.GYMNASTICS:
        label = "Gymnastics Warm-up"
        items = [
            _item("Wrist Circles", "Prep for hand balancing", reps=20),
            _item("Shoulder Pass-Through", "PVC or band", reps=15),
            _item("Cat-Cow", "Spinal mobility", reps=15),
            _item("Hip Circles", "Dynamic hip prep", reps=10),
            _item("Scapular Push-Up", "Shoulder blade control", reps=10),
        ]
    elif style in CARDIO_STYLES:
        label = "Dynamic Warm-up"
        items = [
            _item("Light Bike or Walk", "Gradually increase heart rate", seconds=150),
            _item("Arm Circles", "Forward and backward", reps=20),
            _item("Leg Swings", "Front-back and side-side", reps=10),
            _item("Cat-Cow", "Spinal mobility", reps=10),
        ]
    else:
        label = "Dynamic Warm-Up"
        items = [
            _item("Foam Roll", "Upper back, lats, IT bands, quads", seconds=120),
            _item("Cat-Cow", "Spinal mobility, controlled breathing", reps=10),
            _item("World's Greatest Stretch", "Hip mobility, thoracic rotation", reps=5),
            _item("PVC Pass-Through", "Shoulder mobility", reps=12),
            _item("Leg Swings", "Hip mobility prep", reps=10),
            _item("Arm Circles", "Shoulder activation", reps=20),
            _item("Empty Bar Technique", "Deadlift, hang clean, front squat, press - bar only", reps=5)
            if has_barbell
            else _item("Inchworm", "Hamstring + shoulder prep", reps=8),
        ]
    return WorkoutBlock(kind=BlockKind.WARMUP, structure=_flow(label), time_minutes=minutes, items=items)


def build_cooldown(ctx: GenerationContext, minutes: int) -> WorkoutBlock:
    style = ctx.style
    if style == Style.OLYMPIC_WEIGHTLIFTING:
        label = "Mobility & Recovery"
        items = [
            _item("T-Spine Foam Roll", "Upper back extension", seconds=90),
            _item("Hip Flexor Stretch", "Couch stretch or lunge", seconds=60),
            _item("Overhead Reach", "Shoulder flexibility", seconds=60),
            _item("Child's Pose", "Deep breathing", seconds=90),
        ]
    elif style == Style.MOBILITY:
        label = "Breathing & Final Relaxation"
        items = [
            _item("Supine Breathing", "4-7-8 breathing pattern", seconds=180),
            _item("Child's Pose", "Deep relaxation, arms extended", seconds=120),
            _item("Savasana (Corpse Pose)", "Complete body relaxation, mental reset", seconds=180),
        ]
    else:
        label = "Cool Down & Recovery"
        items = [
            _item("Walk or Light Bike", "Gradually lower heart rate", seconds=180),
            _item("Child's Pose", "Deep breathing, lat stretch", seconds=60),
            _item("Pigeon Stretch", "Hip flexor and glute release", seconds=45),
            _item("Hamstring Stretch", "Seated or standing, relaxed", seconds=45),
            _item("Spinal Twist", "Supine or seated, gentle rotation", seconds=45),
            _item("Shoulder + Chest Stretch", "Doorway or wall-assisted", seconds=60),
        ]
    return WorkoutBlock(kind=BlockKind.COOLDOWN, structure=_flow(label), time_minutes=minutes, items=items)


def item_scheme(spec: MainBlockSpec, movement: Movement) -> ItemScheme:
    """Prescription for a main item.

    Percent-of-1RM only makes sense for loaded movements; interval blocks
    without an explicit scheme inherit work/rest from the structure.
    """
    scheme = spec.scheme
    structure = spec.structure
    if scheme is None:
        if structure.kind == StructureKind.INTERVALS:
            return ItemScheme(duration_seconds=structure.work_seconds, rest_seconds=structure.rest_seconds)
        return ItemScheme(reps=10)
    if scheme.percent_1rm is not None and not movement.is_loaded:
        return scheme.model_copy(update={"percent_1rm": None, "reps": (scheme.reps or 5) * 3})
    return scheme


def item_notes(structure: BlockStructure, index: int) -> str | None:
    if structure.kind == StructureKind.EMOM:
        return "Odd minutes" if index % 2 == 0 else "Even minutes"
    if structure.alternating:
        return "Odd rounds" if index % 2 == 0 else "Even rounds"
    return None


def main_item(spec: MainBlockSpec, movement: Movement, index: int) -> WorkoutItem:
    return WorkoutItem(
        exercise_name=movement.name,
        registry_id=movement.id,
        scheme=item_scheme(spec, movement),
        notes=item_notes(spec.structure, index),
    )


def workout_title(ctx: GenerationContext, pack_name: str) -> str:
    if ctx.style in CROSSFIT_FAMILY and len(ctx.request.focus_areas) > 0:
        focus = " + ".join(f.value.title() for f in ctx.request.focus_areas)
        return f"{WORKOUT_TITLES[ctx.style]}: {focus}"
    if ctx.style == Style.ENDURANCE:
        effort = pack_name.removeprefix("endurance_").title()
        return f"{effort} Endurance Session"
    return WORKOUT_TITLES[ctx.style]
