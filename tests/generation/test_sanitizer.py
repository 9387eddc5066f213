"""Tests for the sanitizer: banned filler, hardness floor and loaded ratio."""

import pytest

from app.generation.compose import compose
from app.generation.errors import PolicyViolation
from app.generation.items import replace_item
from app.generation.sanitize import effective_floor, enforce_hardness_floor, hardness_score, replace_banned_filler, sanitize
from app.generation.sanitize.sanitizer import hardness_finisher
from app.generation.schema.structure import StructureKind
from app.generation.schema.workout import WorkoutItem


def _with_filler(workout):
    blocks = replace_item(workout.blocks, 1, 0, WorkoutItem(exercise_name="Wall Sit", registry_id="wall-sit"))
    blocks = replace_item(blocks, 2, 0, WorkoutItem(exercise_name="High Knees", registry_id="high-knees"))
    return workout.model_copy(update={"blocks": blocks})


def test_banned_filler_replaced_in_ladder_order(make_request, make_ctx, pack_for):
    """Test that banned filler is swapped for the ladder rungs in order."""
    ctx = make_ctx(make_request())
    workout = _with_filler(compose(pack_for(ctx), ctx))
    cleaned, replaced = replace_banned_filler(workout, ctx)
    assert replaced == 2
    assert cleaned.blocks[1].items[0].registry_id == "db-box-step-overs"
    assert cleaned.blocks[2].items[0].registry_id == "kb-swings"
    assert "(auto-upgrade)" in cleaned.blocks[1].items[0].notes


def test_banned_filler_kept_without_gear(make_request, make_ctx, pack_for):
    """Test that the ladder only runs when loaded gear is available."""
    gym_ctx = make_ctx(make_request())
    workout = _with_filler(compose(pack_for(gym_ctx), gym_ctx))
    bare_ctx = make_ctx(make_request(equipment=[]))
    cleaned, replaced = replace_banned_filler(workout, bare_ctx)
    assert replaced == 0
    assert cleaned is workout


def test_effective_floor_relaxes_never_raises(make_request, make_ctx, pack_for):
    """Test floor relaxation for low readiness and gear-free requests."""
    ctx = make_ctx(make_request())
    pack = pack_for(ctx)
    assert effective_floor(pack, ctx) == pack.hardness_floor

    tired = make_ctx(make_request(health={"sleep_score": 40}))
    assert effective_floor(pack_for(tired), tired) == 0.55

    bare = make_ctx(make_request(equipment=[]))
    assert effective_floor(pack_for(bare), bare) == 0.55

    mobility = make_ctx(make_request(style="mobility", equipment=[]))
    assert effective_floor(pack_for(mobility), mobility) == 0.40


def test_hardness_score_is_bounded(make_request, make_ctx, pack_for):
    """Test that hardness stays in [0, 1] with two decimals."""
    for style in ("crossfit", "powerlifting", "aerobic", "mobility", "gymnastics"):
        ctx = make_ctx(make_request(style=style))
        pack = pack_for(ctx)
        score = hardness_score(compose(pack, ctx).blocks, pack, ctx)
        assert 0.0 <= score <= 1.0
        assert score == round(score, 2)


def test_sanitize_fills_score_floor_and_ratio(make_request, make_ctx, pack_for):
    """Test that sanitize records hardness, effective floor and loaded ratio."""
    ctx = make_ctx(make_request(style="powerlifting", duration_minutes=60))
    pack = pack_for(ctx)
    workout = sanitize(compose(pack, ctx), pack, ctx)
    assert workout.meta.effective_floor == pack.hardness_floor
    assert workout.hardness_score >= workout.meta.effective_floor
    assert 0.0 < workout.meta.main_loaded_ratio <= 1.0


def test_continuous_pack_below_floor_strict_raises(make_request, make_ctx, pack_for):
    """Test that strict requests fail when a continuous pack misses its floor."""
    ctx = make_ctx(make_request(style="mobility", duration_minutes=30, equipment=[]), strict=True)
    pack = pack_for(ctx).with_overrides(hardness_floor=1.0)
    with pytest.raises(PolicyViolation) as exc_info:
        enforce_hardness_floor(compose(pack, ctx), pack, ctx)
    assert exc_info.value.code == "hardness_floor"


def test_continuous_pack_below_floor_non_strict_records_repair(make_request, make_ctx, pack_for):
    """Test that non-strict requests keep the workout and record the shortfall."""
    ctx = make_ctx(make_request(style="mobility", duration_minutes=30, equipment=[]))
    pack = pack_for(ctx).with_overrides(hardness_floor=1.0)
    workout = enforce_hardness_floor(compose(pack, ctx), pack, ctx)
    repair = workout.meta.policy_repairs[-1]
    assert repair.code == "hardness_floor"
    assert repair.stage == "sanitize"
    assert repair.details["reason"] == "continuous_pack"
    assert workout.meta.effective_floor == 0.55


def test_hardness_finisher_shape(registry):
    """Test the injected finisher block."""
    movements = [registry.get("thrusters"), registry.get("kb-swings")]
    block = hardness_finisher(movements)
    assert block.finisher
    assert block.structure.kind == StructureKind.FOR_TIME
    assert block.title == "For Time 21-15-9"
    assert block.time_minutes == 6
    assert [item.registry_id for item in block.items] == ["thrusters", "kb-swings"]
    assert block.notes


def test_barbell_bonus_follows_main_movements_not_equipment(make_request, make_ctx, pack_for):
    """Test that a bodyweight workout scores the same with a barbell or a dumbbell on hand."""
    ctx = make_ctx(make_request())
    pack = pack_for(ctx)
    bodyweight = [
        WorkoutItem(exercise_name="Burpee", registry_id="burpees"),
        WorkoutItem(exercise_name="Air Squat", registry_id="air-squat"),
    ]
    blocks = [
        block.model_copy(update={"items": bodyweight}) if block.is_main else block for block in compose(pack, ctx).blocks
    ]

    with_barbell = make_ctx(make_request(equipment=["barbell"]))
    with_dumbbell = make_ctx(make_request(equipment=["dumbbell"]))
    assert hardness_score(blocks, pack, with_barbell) == hardness_score(blocks, pack, with_dumbbell)

    loaded = hardness_score(compose(pack, ctx).blocks, pack, with_barbell)
    assert loaded > hardness_score(blocks, pack, with_barbell)
