"""Style-aware composer.

Assembles warmup -> main blocks -> cooldown from a resolved pattern pack.
Main-block items always come from registry queries and carry their
registry id. Hybrid styles get one main per declared focus, plus a
21-15-9 finisher when warmup, mains and cooldown leave a full finisher's
worth of minutes.
"""

from loguru import logger

from app.generation.compose.builders import build_cooldown, build_warmup, main_item, workout_title
from app.generation.compose.notes import coaching_note
from app.generation.compose.selection import pick_movements
from app.generation.context import GenerationContext
from app.generation.errors import SelectionInfeasible
from app.generation.invariants import FINISHER_MAX_MINUTES
from app.generation.packs.resolver import CROSSFIT_FAMILY
from app.generation.packs.types import PatternPack, SelectionCriteria
from app.generation.schema.structure import BlockStructure, StructureKind, resize_structure
from app.generation.schema.workout import (
    BlockKind,
    ItemScheme,
    Workout,
    WorkoutBlock,
    WorkoutItem,
    WorkoutMeta,
    total_minutes,
)

CROSSFIT_FINISHER_SELECT = SelectionCriteria(("crossfit",), ("press", "squat"), items=2)
CROSSFIT_FINISHER_SCHEME = "21-15-9"


def _with_notes(block: WorkoutBlock) -> WorkoutBlock:
    return block.model_copy(update={"notes": coaching_note(block)})


def _crossfit_finisher(ctx: GenerationContext, used_ids: list[str]) -> WorkoutBlock | None:
    try:
        movements = pick_movements(ctx, CROSSFIT_FINISHER_SELECT, ctx.seed_for("finisher"), used_ids)
    except SelectionInfeasible as e:
        logger.debug("Skipping crossfit finisher, no candidates", code=e.code, style=str(ctx.style))
        return None
    items = [
        WorkoutItem(exercise_name=m.name, registry_id=m.id, scheme=ItemScheme(reps=21), notes="21-15-9 reps for time")
        for m in movements
    ]
    return WorkoutBlock(
        kind=BlockKind.CONDITIONING,
        structure=BlockStructure(kind=StructureKind.FOR_TIME, rep_scheme=CROSSFIT_FINISHER_SCHEME),
        time_minutes=FINISHER_MAX_MINUTES,
        items=items,
        finisher=True,
    )


def compose(pack: PatternPack, ctx: GenerationContext) -> Workout:
    """Compose the pre-fit workout for a request.

    Args:
        pack: Resolved pattern pack
        ctx: Request context

    Returns:
        Workout with warmup, mains and cooldown in order; scores and flags
        are filled in by later stages

    Raises:
        SelectionInfeasible: If any main block cannot be filled
    """
    blocks: list[WorkoutBlock] = [build_warmup(ctx, pack.warmup_minutes)]
    used_ids: list[str] = []

    for index, spec in enumerate(pack.main_blocks):
        movements = pick_movements(ctx, spec.select, ctx.seed_for("main", index), used_ids)
        used_ids.extend(m.id for m in movements)
        blocks.append(
            WorkoutBlock(
                kind=spec.kind,
                structure=resize_structure(spec.structure, spec.minutes),
                time_minutes=spec.minutes,
                items=[main_item(spec, m, i) for i, m in enumerate(movements)],
                notes=spec.notes,
            )
        )

    room = ctx.duration_minutes - total_minutes(blocks) - pack.cooldown_minutes
    if ctx.style in CROSSFIT_FAMILY and room >= FINISHER_MAX_MINUTES:
        finisher = _crossfit_finisher(ctx, used_ids)
        if finisher is not None:
            blocks.append(finisher)

    blocks.append(build_cooldown(ctx, pack.cooldown_minutes))
    blocks = [b if b.notes else _with_notes(b) for b in blocks]

    logger.debug(
        "Workout composed",
        style=str(ctx.style),
        pack=pack.name,
        blocks=[b.title for b in blocks],
        total_minutes=total_minutes(blocks),
    )
    return Workout(
        title=workout_title(ctx, pack.name),
        style=ctx.style,
        duration_minutes=ctx.duration_minutes,
        intensity=ctx.intensity,
        description=f"{pack.name.replace('_', ' ')} session: {ctx.duration_minutes} min at intensity {ctx.intensity}/10",
        blocks=blocks,
        meta=WorkoutMeta(
            style=ctx.style,
            pack_name=pack.name,
            seed=ctx.rng_seed,
            working_intensity=ctx.intensity,
            constraints_applied=list(ctx.readiness.constraints),
        ),
    )
