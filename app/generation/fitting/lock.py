"""Required-pattern lock.

Packs that declare required pattern groups (Olympic lifting) must still
carry every group after budget fitting, which may have dropped a main block.
When a group went missing, the mains are merged into one alternating block
that covers every group; when even that cannot fit, strict requests fail
and non-strict requests keep the approximation and record the repair.
"""

from loguru import logger

from app.generation.compose.builders import main_item
from app.generation.compose.notes import coaching_note
from app.generation.compose.selection import pick_movements
from app.generation.context import GenerationContext
from app.generation.errors import BudgetInfeasible, SelectionInfeasible
from app.generation.items import main_patterns, missing_groups
from app.generation.packs.builders import OLYMPIC_MAX_BLOCK_MINUTES, OLYMPIC_MIN_BLOCK_MINUTES, clamp
from app.generation.packs.types import MainBlockSpec, PatternPack, SelectionCriteria
from app.generation.repairs import record_repair
from app.generation.schema.structure import BlockStructure, StructureKind, resize_structure
from app.generation.schema.workout import BlockKind, ItemScheme, Workout, WorkoutBlock

LOCK_STAGE = "pattern_lock"
ALTERNATING_INTERVAL_SECONDS = 90


def _edge_minutes(blocks: list[WorkoutBlock], kind: BlockKind) -> int:
    return sum(b.time_minutes for b in blocks if b.kind == kind)


def _alternating_spec(pack: PatternPack, minutes: int) -> MainBlockSpec:
    patterns = tuple(dict.fromkeys(p for group in pack.required_pattern_groups for p in group))
    categories = tuple(dict.fromkeys(c for spec in pack.main_blocks for c in spec.select.categories))
    return MainBlockSpec(
        kind=BlockKind.STRENGTH,
        minutes=minutes,
        structure=BlockStructure(
            kind=StructureKind.EVERY,
            interval_seconds=ALTERNATING_INTERVAL_SECONDS,
            alternating=True,
            label="Snatch / Clean & Jerk",
        ),
        select=SelectionCriteria(
            categories, patterns, items=len(pack.required_pattern_groups), require_loaded=True, cover_patterns=True
        ),
        scheme=ItemScheme(reps=2, percent_1rm=70),
    )


def _fail(workout: Workout, ctx: GenerationContext, reason: str, **details: str | float | bool | None) -> Workout:
    code = f"oly_required_patterns:{reason}"
    if ctx.strict:
        raise BudgetInfeasible(
            code,
            [f"Required pattern groups cannot be satisfied ({reason})"],
            {"style": str(ctx.style), "duration_minutes": ctx.duration_minutes, **details},
        )
    return record_repair(workout, code, LOCK_STAGE, **details)


def lock_required_patterns(workout: Workout, pack: PatternPack, ctx: GenerationContext) -> Workout:
    """Guarantee the pack's required pattern groups after fitting.

    Args:
        workout: Fitted workout
        pack: Resolved pattern pack
        ctx: Request context (strictness, registry)

    Returns:
        Workout whose mains cover every required group, or (non-strict) the
        unchanged workout with a recorded repair

    Raises:
        BudgetInfeasible: Strict mode, when no alternating block can fit
    """
    groups = pack.required_pattern_groups
    if not groups:
        return workout
    missing = missing_groups(groups, main_patterns(workout.blocks, ctx.registry))
    if not missing:
        return workout

    blocks = workout.blocks
    budget = ctx.duration_minutes - _edge_minutes(blocks, BlockKind.WARMUP) - _edge_minutes(blocks, BlockKind.COOLDOWN)
    if budget < OLYMPIC_MIN_BLOCK_MINUTES:
        return _fail(workout, ctx, "cannot_satisfy_budget", budget_minutes=budget)

    spec = _alternating_spec(pack, clamp(budget, OLYMPIC_MIN_BLOCK_MINUTES, OLYMPIC_MAX_BLOCK_MINUTES))
    try:
        movements = pick_movements(ctx, spec.select, ctx.seed_for("pattern-lock"))
    except SelectionInfeasible as e:
        return _fail(workout, ctx, "no_candidates", selection_code=e.code)

    block = WorkoutBlock(
        kind=spec.kind,
        structure=resize_structure(spec.structure, spec.minutes),
        time_minutes=spec.minutes,
        items=[main_item(spec, m, i) for i, m in enumerate(movements)],
    )
    block = block.model_copy(update={"notes": coaching_note(block)})
    if missing_groups(groups, {p for m in movements for p in m.patterns}):
        return _fail(workout, ctx, "no_candidates", budget_minutes=budget)

    merged = [b for b in blocks if b.kind == BlockKind.WARMUP]
    merged.append(block)
    merged.extend(b for b in blocks if b.kind == BlockKind.COOLDOWN)

    logger.info(
        "Required patterns restored with alternating block",
        style=str(ctx.style),
        missing=missing,
        block_minutes=spec.minutes,
    )
    return workout.model_copy(update={"blocks": merged})
