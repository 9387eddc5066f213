"""End-to-end tests for the deterministic build and the async pipeline."""

import dataclasses
import json

import pytest

from app.config.settings import settings
from app.generation.critic import CritiqueSource
from app.generation.errors import BudgetInfeasible, PolicyViolation, SchemaInvalid, SelectionInfeasible
from app.generation.fitting import time_tolerance
from app.generation.fitting.budget import resized
from app.generation.items import main_patterns, missing_groups
from app.generation.pipeline import CriticMode, _check_time_fit, build_workout, run_pipeline
from app.generation.schema.structure import StructureKind, structure_matches_minutes
from app.generation.schema.workout import WorkoutItem, total_minutes
from app.generation.validate import validate_invariants, validate_workout


async def good_critic(prompt: str) -> str:
    return json.dumps({"score": 91, "issues": [], "patch": None})


async def broken_critic(prompt: str) -> str:
    raise ConnectionError("critic offline")


def test_same_seed_same_workout(make_request, registry):
    """Test that the deterministic build is a function of (request, seed)."""
    request = make_request()
    first = build_workout(request, "fixed-seed", registry=registry)
    second = build_workout(request, "fixed-seed", registry=registry)
    assert first.workout == second.workout
    assert first.workout.meta.seed == "fixed-seed"


@pytest.mark.parametrize(
    ("style", "minutes"),
    [
        ("crossfit", 45),
        ("powerlifting", 60),
        ("olympic_weightlifting", 40),
        ("bb_full_body", 45),
        ("gymnastics", 30),
        ("aerobic", 30),
        ("endurance", 45),
        ("mobility", 20),
    ],
)
def test_time_fit_across_styles(make_request, registry, style, minutes):
    """Test that every supported style lands within its time tolerance."""
    built = build_workout(make_request(style=style, duration_minutes=minutes), f"fit-{style}", registry=registry)
    workout = built.workout
    tolerance = time_tolerance(minutes, built.pack.time_tolerance_pct)
    assert abs(total_minutes(workout.blocks) - minutes) <= tolerance
    assert workout.acceptance_flags.time_fit
    assert workout.acceptance_flags.has_warmup
    assert workout.acceptance_flags.has_cooldown
    assert all(r.code != "time_fit_out_of_tolerance" for r in workout.meta.policy_repairs)


def test_olympic_strict_keeps_both_lifts(make_request, registry):
    """Test the 40 minute olympic session: two lift blocks, both patterns, strict."""
    request = make_request(style="olympic_weightlifting", duration_minutes=40, equipment=["barbell"])
    built = build_workout(request, "oly-40", strict=True, registry=registry)
    workout = built.workout
    mains = [b for b in workout.blocks if b.is_main and not b.finisher]
    assert len(mains) == 2
    assert not missing_groups(built.pack.required_pattern_groups, main_patterns(workout.blocks, registry))
    assert workout.acceptance_flags.patterns_locked
    assert workout.meta.policy_repairs == []


@pytest.mark.parametrize("seed", ["a", "b", "c", "d", "e", "f"])
def test_no_banned_filler_with_gear(make_request, registry, seed):
    """Test that mains never carry banned filler when loaded gear is available."""
    workout = build_workout(make_request(duration_minutes=60), seed, registry=registry).workout
    banned = [
        item
        for block in workout.blocks
        if block.is_main
        for item in block.items
        if registry.get(item.registry_id) and registry.get(item.registry_id).banned_in_main_when_equipment
    ]
    assert len(banned) <= 1
    assert workout.acceptance_flags.no_banned_in_mains


def test_main_items_come_from_registry(make_request, registry):
    """Test that every main item carries a registry id."""
    workout = build_workout(make_request(style="powerlifting", duration_minutes=60), "ids", registry=registry).workout
    for block in workout.blocks:
        if block.is_main:
            assert all(item.registry_id in registry for item in block.items)
    assert workout.meta.selection_trace[0].title == workout.blocks[0].title


def test_selection_failure_is_raised(make_request, registry):
    """Test that an empty registry selection surfaces as a typed error."""
    request = make_request(style="olympic_weightlifting", duration_minutes=40, equipment=[])
    with pytest.raises(SelectionInfeasible):
        build_workout(request, "no-bar", strict=False, registry=registry)


def test_time_fit_check_strict_and_non_strict(make_request, registry):
    """Test the post-fit tolerance check in both modes."""
    built = build_workout(make_request(), "time-check", registry=registry)
    blocks = list(built.workout.blocks)
    blocks[1] = resized(blocks[1], blocks[1].time_minutes + 20)
    overrun = built.workout.model_copy(update={"blocks": blocks})

    relaxed = _check_time_fit(overrun, built.pack, dataclasses.replace(built.context, strict=False))
    assert relaxed.meta.policy_repairs[-1].code == "time_fit_out_of_tolerance"

    with pytest.raises(BudgetInfeasible) as exc_info:
        _check_time_fit(overrun, built.pack, dataclasses.replace(built.context, strict=True))
    assert exc_info.value.code == "TIME_FIT"


def test_validate_workout_rejects_structural_problems(make_request, registry):
    """Test the final structural gate."""
    workout = build_workout(make_request(), "structure", registry=registry).workout
    no_cooldown = workout.model_copy(update={"blocks": workout.blocks[:-1]})
    with pytest.raises(SchemaInvalid) as exc_info:
        validate_workout(no_cooldown)
    assert exc_info.value.code == "STRUCTURE_INVALID"

    blocks = list(workout.blocks)
    blocks[1] = blocks[1].model_copy(update={"time_minutes": blocks[1].time_minutes + 3})
    with pytest.raises(SchemaInvalid):
        validate_workout(workout.model_copy(update={"blocks": blocks}))


@pytest.mark.asyncio
async def test_critic_outage_returns_pre_critic_workout(make_request, registry):
    """Test that a dead critic never blocks generation."""
    outcome, built = await run_pipeline(
        make_request(), "outage", critic_mode=CriticMode.LIVE, critic_runner=broken_critic, registry=registry
    )
    assert outcome.workout == built.workout
    assert outcome.critique.score == 75
    assert outcome.critique.source == CritiqueSource.FALLBACK


@pytest.mark.asyncio
async def test_critic_off_skips_stage(make_request, registry):
    """Test that critic mode OFF returns the deterministic build."""
    outcome, built = await run_pipeline(make_request(), "off", critic_mode=CriticMode.OFF, registry=registry)
    assert outcome.critique is None
    assert outcome.workout == built.workout


@pytest.mark.asyncio
async def test_patched_workout_is_reenriched(make_request, registry):
    """Test that a critic patch flows through enrichment and validation."""

    async def patching_critic(prompt: str) -> str:
        return json.dumps({"score": 70, "issues": ["lower intensity"], "patch": {"intensity": 4}})

    outcome, built = await run_pipeline(
        make_request(), "patched", critic_mode=CriticMode.LIVE, critic_runner=patching_critic, registry=registry
    )
    assert outcome.critique.was_patched
    assert outcome.workout.intensity == 4
    assert outcome.workout.acceptance_flags == built.workout.acceptance_flags
    assert outcome.workout.meta.selection_trace


@pytest.mark.asyncio
async def test_llm_notes_failure_keeps_deterministic_notes(make_request, registry, monkeypatch):
    """Test that a failing notes model leaves the workout untouched."""
    monkeypatch.setattr(settings, "notes_mode", "llm")

    async def broken_notes(prompt: str) -> list[str]:
        raise TimeoutError("notes model timed out")

    outcome, built = await run_pipeline(
        make_request(),
        "notes",
        critic_mode=CriticMode.LIVE,
        critic_runner=good_critic,
        notes_runner=broken_notes,
        registry=registry,
    )
    assert [b.notes for b in outcome.workout.blocks] == [b.notes for b in built.workout.blocks]
    assert outcome.critique.score == 91


def test_crossfit_45_keeps_warmup_and_two_mains(make_request, registry):
    """Test that a 45 minute crossfit session gets no finisher and a full warmup."""
    request = make_request(duration_minutes=45, focus_areas=["strength", "conditioning"])
    built = build_workout(request, "cf-45", registry=registry)
    workout = built.workout
    assert workout.blocks[0].time_minutes == built.pack.warmup_minutes
    assert len([b for b in workout.blocks if b.is_main and not b.finisher]) == 2
    assert workout.acceptance_flags.time_fit


@pytest.mark.parametrize(
    "style",
    ["crossfit", "powerlifting", "olympic_weightlifting", "bb_full_body", "gymnastics", "aerobic", "endurance", "mobility"],
)
def test_thirty_minute_sessions_keep_required_patterns(make_request, registry, style):
    """Test that budget fitting at 30 minutes never costs a required pattern or the time fit."""
    built = build_workout(make_request(style=style, duration_minutes=30), f"thirty-{style}", registry=registry)
    workout = built.workout
    assert not missing_groups(built.pack.required_pattern_groups, main_patterns(workout.blocks, registry))
    assert all(not r.code.startswith("required_patterns") for r in workout.meta.policy_repairs)
    assert all(r.code != "time_fit_out_of_tolerance" for r in workout.meta.policy_repairs)
    assert workout.acceptance_flags.time_fit


def test_powerlifting_30_strict_keeps_all_lifts(make_request, registry):
    """Test that a short strict powerlifting session keeps squat, bench and hinge."""
    built = build_workout(make_request(style="powerlifting", duration_minutes=30), "pl-30", strict=True, registry=registry)
    patterns = main_patterns(built.workout.blocks, registry)
    assert {"squat", "bench", "hinge"} <= patterns
    assert len([b for b in built.workout.blocks if b.is_main]) == 3
    assert built.workout.meta.policy_repairs == []


@pytest.mark.parametrize("minutes", [10, 12, 15])
def test_short_endurance_intervals_stay_consistent(make_request, registry, minutes):
    """Test that short hard endurance sessions keep interval work and rest inside the block."""
    request = make_request(style="endurance", duration_minutes=minutes, intensity=7)
    workout = build_workout(request, f"endurance-{minutes}", registry=registry).workout
    for block in workout.blocks:
        assert structure_matches_minutes(block.structure, block.time_minutes)
        if block.structure.kind == StructureKind.INTERVALS:
            assert block.structure.work_seconds + (block.structure.rest_seconds or 0) <= block.time_minutes * 60


def test_low_readiness_relaxes_strict_hardness_floor(make_request, registry):
    """Test that poor sleep lowers the floor enough for a strict short aerobic build."""
    request = make_request(style="aerobic", duration_minutes=20, intensity=5)
    with pytest.raises(PolicyViolation) as exc_info:
        build_workout(request, "readiness", strict=True, registry=registry)
    assert exc_info.value.code == "hardness_floor"

    tired = make_request(style="aerobic", duration_minutes=20, intensity=5, health={"sleep_score": 50})
    built = build_workout(tired, "readiness", strict=True, registry=registry)
    assert built.workout.meta.effective_floor == 0.55
    assert built.workout.hardness_score >= 0.55
    assert built.context.readiness.low_readiness


def _patching_critic(patch: dict):
    async def critic(prompt: str) -> str:
        return json.dumps({"score": 50, "issues": ["needs work"], "patch": patch})

    return critic


@pytest.mark.asyncio
async def test_critic_patch_breaking_time_fit_is_rejected(make_request, registry):
    """Test that a structurally valid patch that overruns the request keeps the original."""
    built = build_workout(make_request(), "overrun", registry=registry)
    blocks = list(built.workout.blocks)
    blocks[1] = resized(blocks[1], blocks[1].time_minutes + 70)
    patch = {"blocks": [b.model_dump(mode="json") for b in blocks]}

    outcome, built = await run_pipeline(
        make_request(), "overrun", critic_mode=CriticMode.LIVE, critic_runner=_patching_critic(patch), registry=registry
    )
    assert not outcome.critique.was_patched
    assert outcome.workout == built.workout
    assert outcome.critique.issues[-1].startswith("Critic patch rejected")


@pytest.mark.asyncio
async def test_critic_patch_adding_banned_filler_is_rejected(make_request, registry):
    """Test that a patch slipping Wall Sit into a main block keeps the original."""
    built = build_workout(make_request(), "filler", registry=registry)
    blocks = list(built.workout.blocks)
    items = [WorkoutItem(exercise_name="Wall Sit", registry_id="wall-sit"), *blocks[1].items[1:]]
    blocks[1] = blocks[1].model_copy(update={"items": items})
    patch = {"blocks": [b.model_dump(mode="json") for b in blocks]}

    outcome, built = await run_pipeline(
        make_request(), "filler", critic_mode=CriticMode.LIVE, critic_runner=_patching_critic(patch), registry=registry
    )
    assert not outcome.critique.was_patched
    assert all(item.registry_id != "wall-sit" for block in outcome.workout.blocks for item in block.items)
    assert outcome.critique.issues[-1] == "Critic patch rejected: SchemaInvalid"


def test_validate_invariants_tolerates_only_known_problems(make_request, registry):
    """Test the request-level gate against a fresh build and an overrun copy."""
    built = build_workout(make_request(), "invariants", registry=registry)
    assert validate_invariants(built.workout, built.pack, built.context) == built.workout

    blocks = list(built.workout.blocks)
    blocks[1] = resized(blocks[1], blocks[1].time_minutes + 30)
    overrun = built.workout.model_copy(update={"blocks": blocks})
    with pytest.raises(SchemaInvalid) as exc_info:
        validate_invariants(overrun, built.pack, built.context)
    assert exc_info.value.code == "INVARIANT_VIOLATION"
    assert validate_invariants(overrun, built.pack, built.context, baseline=overrun) == overrun
