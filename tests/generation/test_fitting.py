"""Tests for budget scaling, delta correction and the required-pattern lock."""

import pytest

from app.generation.compose import compose
from app.generation.errors import BudgetInfeasible
from app.generation.fitting import correct_duration, fit_to_budget, lock_required_patterns, time_tolerance
from app.generation.items import main_patterns, missing_groups
from app.generation.schema.structure import BlockStructure, StructureKind, resize_structure, structure_matches_minutes
from app.generation.schema.workout import BlockKind, ItemScheme, WorkoutBlock, WorkoutItem, total_minutes


def _block(
    kind: BlockKind,
    minutes: int,
    structure: StructureKind = StructureKind.EMOM,
    items: list[WorkoutItem] | None = None,
) -> WorkoutBlock:
    items = items or [
        WorkoutItem(exercise_name="Barbell Thruster", registry_id="thrusters"),
        WorkoutItem(exercise_name="Burpee", registry_id="burpees"),
    ]
    return WorkoutBlock(
        kind=kind,
        structure=resize_structure(BlockStructure(kind=structure), minutes),
        time_minutes=minutes,
        items=items,
    )


def _session(*mains: WorkoutBlock, warmup: int = 8, cooldown: int = 6) -> list[WorkoutBlock]:
    return [
        _block(BlockKind.WARMUP, warmup, StructureKind.FLOW),
        *mains,
        _block(BlockKind.COOLDOWN, cooldown, StructureKind.FLOW),
    ]


def test_time_tolerance_has_two_minute_floor():
    """Test the tolerance formula."""
    assert time_tolerance(30, 0.05) == 2
    assert time_tolerance(100, 0.05) == 5
    assert time_tolerance(60, 0.10) == 6


def test_fit_to_budget_scales_mains_and_keeps_edges():
    """Test the 30 minute fit of a 54 minute session."""
    blocks = _session(_block(BlockKind.STRENGTH, 20), _block(BlockKind.CONDITIONING, 20, StructureKind.AMRAP))
    fitted = fit_to_budget(blocks, 30)
    assert [b.time_minutes for b in fitted] == [8, 8, 8, 6]
    assert total_minutes(fitted) == 30
    assert fitted[1].title == "EMOM 8"
    assert all(structure_matches_minutes(b.structure, b.time_minutes) for b in fitted)


def test_fit_to_budget_drops_smallest_main_when_over():
    """Test that the smallest main goes only after every main is at its floor."""
    blocks = _session(
        _block(BlockKind.STRENGTH, 20),
        _block(BlockKind.CORE, 6, StructureKind.AMRAP),
        _block(BlockKind.CONDITIONING, 20),
    )
    fitted = fit_to_budget(blocks, 24)
    mains = [b for b in fitted if b.is_main]
    assert [b.time_minutes for b in mains] == [4, 4]
    assert all(b.kind != BlockKind.CORE for b in mains)
    assert fitted[0].time_minutes == 8
    assert fitted[-1].time_minutes == 6
    assert total_minutes(fitted) <= 24


def test_fit_to_budget_trims_before_dropping():
    """Test that mains shrink toward the floor before any block is removed."""
    blocks = _session(
        _block(BlockKind.STRENGTH, 20),
        _block(BlockKind.CORE, 6, StructureKind.AMRAP),
        _block(BlockKind.CONDITIONING, 20),
    )
    fitted = fit_to_budget(blocks, 30)
    assert len([b for b in fitted if b.is_main]) == 3
    assert total_minutes(fitted) == 30


def test_fit_to_budget_keeps_last_carrier_of_required_group(registry):
    """Test that no main is dropped when each one carries a required pattern group."""

    def lift(registry_id: str, name: str) -> WorkoutBlock:
        return _block(
            BlockKind.STRENGTH,
            20,
            StructureKind.EVERY,
            items=[WorkoutItem(exercise_name=name, registry_id=registry_id)],
        )

    blocks = _session(lift("back-squat", "Back Squat"), lift("bench-press", "Bench Press"), lift("deadlift", "Deadlift"))
    groups = (("squat",), ("bench",), ("hinge",))
    fitted = fit_to_budget(blocks, 24, groups, registry)
    assert not missing_groups(groups, main_patterns(fitted, registry))
    assert [b.time_minutes for b in fitted] == [6, 4, 4, 4, 6]
    assert total_minutes(fitted) == 24


def test_fit_to_budget_shrinks_interval_cycle_to_fit():
    """Test that a short interval block keeps work and rest consistent with one round."""
    work = WorkoutItem(exercise_name="Run", scheme=ItemScheme(duration_seconds=180, rest_seconds=120))
    cruise = WorkoutBlock(
        kind=BlockKind.CONDITIONING,
        structure=resize_structure(
            BlockStructure(kind=StructureKind.INTERVALS, work_seconds=180, rest_seconds=120, effort="cruise"), 20
        ),
        time_minutes=20,
        items=[work],
    )
    fitted = fit_to_budget(_session(cruise, warmup=6, cooldown=4), 14)
    block = fitted[1]
    assert block.time_minutes == 4
    assert block.structure.rounds == 1
    assert block.structure.work_seconds + block.structure.rest_seconds <= 240
    assert block.items[0].scheme.duration_seconds == block.structure.work_seconds
    assert block.items[0].scheme.rest_seconds == block.structure.rest_seconds
    assert structure_matches_minutes(block.structure, block.time_minutes)


def test_fit_to_budget_leaves_short_sessions_alone():
    """Test that nothing changes when the mains already fit."""
    blocks = _session(_block(BlockKind.STRENGTH, 10))
    assert fit_to_budget(blocks, 40) == blocks


def test_fit_to_budget_does_not_mutate_input():
    """Test that fitting returns new blocks."""
    blocks = _session(_block(BlockKind.STRENGTH, 30))
    before = [b.time_minutes for b in blocks]
    fit_to_budget(blocks, 20)
    assert [b.time_minutes for b in blocks] == before


def test_correct_duration_stretches_emom():
    """Test that a deficit goes to the longest EMOM/Every block."""
    blocks = _session(_block(BlockKind.CONDITIONING, 10))
    corrected = correct_duration(blocks, 40, 0.05)
    assert total_minutes(corrected) == 40
    assert corrected[1].time_minutes == 26
    assert corrected[1].title == "EMOM 26"


def test_correct_duration_inserts_finisher_before_cooldown():
    """Test the For Time finisher when no block can stretch."""
    blocks = _session(_block(BlockKind.CONDITIONING, 10, StructureKind.AMRAP))
    corrected = correct_duration(blocks, 40, 0.05)
    assert total_minutes(corrected) == 40
    finisher = corrected[-2]
    assert finisher.finisher
    assert finisher.title == "For Time 30-20-10"
    assert finisher.time_minutes == 8
    assert corrected[-1].kind == BlockKind.COOLDOWN


def test_correct_duration_without_finisher_extends_longest():
    """Test that continuous packs only stretch their mains."""
    blocks = _session(_block(BlockKind.CONDITIONING, 10, StructureKind.AMRAP))
    corrected = correct_duration(blocks, 40, 0.10, allow_finisher=False)
    assert len(corrected) == 3
    assert corrected[1].time_minutes == 26


def test_correct_duration_trims_excess():
    """Test that an overrun shrinks the longest main."""
    blocks = _session(_block(BlockKind.STRENGTH, 30))
    corrected = correct_duration(blocks, 30, 0.05)
    assert corrected[1].time_minutes == 16
    assert total_minutes(corrected) == 30


def test_correct_duration_within_tolerance_is_noop():
    """Test that small deltas are left alone."""
    blocks = _session(_block(BlockKind.STRENGTH, 15))
    assert correct_duration(blocks, 30, 0.05) == blocks


def _olympic_missing_clean_jerk(make_request, make_ctx, pack_for):
    ctx = make_ctx(make_request(style="olympic_weightlifting", duration_minutes=40, equipment=["barbell"]))
    pack = pack_for(ctx)
    workout = compose(pack, ctx)
    mains = [i for i, b in enumerate(workout.blocks) if b.is_main]
    blocks = [b for i, b in enumerate(workout.blocks) if i != mains[-1]]
    return workout.model_copy(update={"blocks": blocks}), pack


def test_lock_restores_missing_pattern_group(make_request, make_ctx, pack_for, registry):
    """Test that a dropped lift is restored with one alternating block."""
    workout, pack = _olympic_missing_clean_jerk(make_request, make_ctx, pack_for)
    assert missing_groups(pack.required_pattern_groups, main_patterns(workout.blocks, registry))

    ctx = make_ctx(make_request(style="olympic_weightlifting", duration_minutes=40, equipment=["barbell"]), strict=True)
    locked = lock_required_patterns(workout, pack, ctx)
    mains = [b for b in locked.blocks if b.is_main]
    assert len(mains) == 1
    assert mains[0].structure.alternating
    assert mains[0].time_minutes == 16
    assert not missing_groups(pack.required_pattern_groups, main_patterns(locked.blocks, registry))


def test_lock_strict_raises_when_budget_too_small(make_request, make_ctx, pack_for):
    """Test that strict requests fail when no alternating block fits."""
    workout, pack = _olympic_missing_clean_jerk(make_request, make_ctx, pack_for)
    ctx = make_ctx(make_request(style="olympic_weightlifting", duration_minutes=20, equipment=["barbell"]), strict=True)
    with pytest.raises(BudgetInfeasible) as exc_info:
        lock_required_patterns(workout, pack, ctx)
    assert exc_info.value.code == "oly_required_patterns:cannot_satisfy_budget"


def test_lock_non_strict_records_repair(make_request, make_ctx, pack_for):
    """Test that non-strict requests keep the approximation and record it."""
    workout, pack = _olympic_missing_clean_jerk(make_request, make_ctx, pack_for)
    ctx = make_ctx(make_request(style="olympic_weightlifting", duration_minutes=20, equipment=["barbell"]))
    locked = lock_required_patterns(workout, pack, ctx)
    assert locked.blocks == workout.blocks
    repair = locked.meta.policy_repairs[-1]
    assert repair.code == "oly_required_patterns:cannot_satisfy_budget"
    assert repair.stage == "pattern_lock"


def test_lock_ignores_packs_without_groups(make_request, make_ctx, pack_for):
    """Test that packs without required groups pass through."""
    ctx = make_ctx(make_request())
    pack = pack_for(ctx)
    workout = compose(pack, ctx)
    assert lock_required_patterns(workout, pack, ctx) is workout


def test_resize_structure_shrinks_interval_cycle():
    """Test that a block shorter than one work/rest cycle still holds one round."""
    cruise = BlockStructure(kind=StructureKind.INTERVALS, work_seconds=180, rest_seconds=120, rounds=4)
    resized_cruise = resize_structure(cruise, 4)
    assert (resized_cruise.work_seconds, resized_cruise.rest_seconds) == (135, 90)
    assert resized_cruise.rounds == 1
    assert structure_matches_minutes(resized_cruise, 4)
    assert resize_structure(cruise, 20).work_seconds == 180
