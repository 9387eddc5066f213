"""Acceptance flags, variety score and selection trace.

Everything here is derived from the finished workout; nothing is carried
over from earlier stages except meta fields they already wrote.
"""

from app.generation.context import GenerationContext
from app.generation.fitting.duration import within_tolerance
from app.generation.invariants import MIN_COOLDOWN_MINUTES, MIN_WARMUP_MINUTES
from app.generation.items import iter_main_items, main_patterns, missing_groups
from app.generation.packs.resolver import CROSSFIT_FAMILY
from app.generation.packs.types import PatternPack
from app.generation.registry.query import equipment_ok
from app.generation.schema.workout import (
    AcceptanceFlags,
    BlockKind,
    SelectionTraceEntry,
    TraceItem,
    Workout,
    WorkoutBlock,
)


def _edge_ok(blocks: list[WorkoutBlock], kind: BlockKind, position: int, floor: int) -> bool:
    matching = [b for b in blocks if b.kind == kind]
    return len(matching) == 1 and blocks[position].kind == kind and matching[0].time_minutes >= floor


def variety_score(workout: Workout) -> float:
    """Unique main registry ids over main items."""
    items = [item for block in workout.blocks if block.is_main for item in block.items]
    if not items:
        return 0.0
    unique = {item.registry_id or item.exercise_name.lower() for item in items}
    return round(len(unique) / len(items), 2)


def acceptance_flags(workout: Workout, pack: PatternPack, ctx: GenerationContext) -> AcceptanceFlags:
    blocks = workout.blocks
    entries = list(iter_main_items(blocks, ctx.registry))
    movements = [e.movement for e in entries if e.movement is not None]

    mixed_rule_ok = True
    if ctx.style in CROSSFIT_FAMILY and pack.focus_count is not None:
        mixed_rule_ok = sum(1 for b in blocks if b.is_main and not b.finisher) == pack.focus_count

    patterns_locked = all(b.structure.kind in pack.locked_structures for b in blocks if b.is_main)
    if pack.required_pattern_groups:
        patterns_locked = patterns_locked and not missing_groups(
            pack.required_pattern_groups, main_patterns(blocks, ctx.registry)
        )

    return AcceptanceFlags(
        time_fit=within_tolerance(blocks, ctx.duration_minutes, pack.time_tolerance_pct),
        has_warmup=bool(blocks) and _edge_ok(blocks, BlockKind.WARMUP, 0, MIN_WARMUP_MINUTES),
        has_cooldown=bool(blocks) and _edge_ok(blocks, BlockKind.COOLDOWN, -1, MIN_COOLDOWN_MINUTES),
        mixed_rule_ok=mixed_rule_ok,
        equipment_ok=all(equipment_ok(m, ctx.equipment) for m in movements),
        injury_safe=not any(m.has_pattern(ctx.avoid_patterns) for m in movements),
        readiness_mod_applied=ctx.readiness.mod_applied,
        hardness_ok=workout.hardness_score >= (workout.meta.effective_floor or pack.hardness_floor),
        patterns_locked=patterns_locked,
        no_banned_in_mains=not (ctx.has_gear and any(m.banned_in_main_when_equipment for m in movements)),
    )


def selection_trace(workout: Workout) -> list[SelectionTraceEntry]:
    return [
        SelectionTraceEntry(
            title=block.title,
            kind=block.kind,
            time_minutes=block.time_minutes,
            items=[TraceItem(name=item.exercise_name, id=item.registry_id) for item in block.items],
        )
        for block in workout.blocks
    ]


def enrich(workout: Workout, pack: PatternPack, ctx: GenerationContext, generator_version: str) -> Workout:
    """Attach flags, variety score and trace to a finished workout."""
    meta = workout.meta.model_copy(
        update={
            "generator_version": generator_version,
            "pack_name": pack.name,
            "selection_trace": selection_trace(workout),
        }
    )
    return workout.model_copy(
        update={
            "variety_score": variety_score(workout),
            "acceptance_flags": acceptance_flags(workout, pack, ctx),
            "meta": meta,
        }
    )
