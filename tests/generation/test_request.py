"""Tests for request validation, style normalisation and readiness."""

import pytest
from pydantic import ValidationError

from app.generation.errors import ConfigurationError
from app.generation.readiness import HEAVY_LEGS_CONSTRAINT, RECOVERY_CONSTRAINT, assess_readiness
from app.generation.schema.request import GenerationRequest, Style, normalize_style


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("cf", Style.CROSSFIT),
        ("OLY", Style.OLYMPIC_WEIGHTLIFTING),
        ("Olympic Lifting", Style.OLYMPIC_WEIGHTLIFTING),
        ("pl", Style.POWERLIFTING),
        ("bodybuilding split", Style.BB_FULL_BODY),
        ("endurance", Style.ENDURANCE),
        ("", Style.MIXED),
        (None, Style.MIXED),
    ],
)
def test_normalize_style(raw, expected):
    """Test alias and fuzzy style mapping."""
    assert normalize_style(raw) == expected


def test_unknown_style_is_configuration_error():
    """Test that unsupported styles are rejected, never silently mapped."""
    with pytest.raises(ConfigurationError) as exc_info:
        GenerationRequest(style="underwater basket weaving", duration_minutes=30, intensity=5)
    assert exc_info.value.code == "STYLE_UNSUPPORTED"


def test_request_normalizes_equipment_and_constraints():
    """Test that equipment aliases collapse and duplicates are dropped."""
    request = GenerationRequest(
        style="crossfit",
        duration_minutes=30,
        intensity=5,
        equipment=["Dumbbells", "db", "KB", "barbell"],
        constraints=["  Knee ", ""],
    )
    assert request.equipment == ["dumbbell", "kettlebell", "barbell"]
    assert request.constraints == ["knee"]


def test_request_rejects_out_of_range_values():
    """Test duration and intensity bounds."""
    with pytest.raises(ValidationError):
        GenerationRequest(style="crossfit", duration_minutes=2, intensity=5)
    with pytest.raises(ValidationError):
        GenerationRequest(style="crossfit", duration_minutes=30, intensity=11)


def test_request_rejects_unknown_fields():
    """Test that the request schema is closed."""
    with pytest.raises(ValidationError):
        GenerationRequest(style="crossfit", duration_minutes=30, intensity=5, location="gym")


def test_readiness_without_health_keeps_intensity(make_request):
    """Test that no health data means no adjustment."""
    readiness = assess_readiness(make_request(intensity=7))
    assert readiness.working_intensity == 7
    assert readiness.caution_flags == ()
    assert readiness.mod_applied
    assert not readiness.low_readiness


def test_readiness_two_flags_lower_intensity_by_two(make_request):
    """Test that two caution flags drop intensity and add the recovery constraint."""
    request = make_request(intensity=8, health={"hrv": 25, "resting_hr": 85})
    readiness = assess_readiness(request)
    assert readiness.working_intensity == 6
    assert RECOVERY_CONSTRAINT in readiness.constraints
    assert readiness.mod_applied


def test_readiness_one_flag_lowers_intensity_by_one(make_request):
    """Test that a single caution flag drops intensity by one."""
    readiness = assess_readiness(make_request(intensity=6, health={"stress_flag": True}))
    assert readiness.working_intensity == 5
    assert RECOVERY_CONSTRAINT not in readiness.constraints


def test_readiness_poor_sleep_marks_low_readiness(make_request):
    """Test that a sleep score below 60 marks low readiness."""
    readiness = assess_readiness(make_request(health={"sleep_score": 50}))
    assert readiness.low_readiness
    assert "poor_sleep" in readiness.caution_flags


def test_readiness_heavy_legs_yesterday_avoids_leg_patterns(make_request):
    """Test that yesterday's heavy legs session avoids squat and hinge."""
    readiness = assess_readiness(make_request(yesterday={"type": "heavy_legs", "intensity": 8}))
    assert HEAVY_LEGS_CONSTRAINT in readiness.constraints
    assert "squat" in readiness.avoid_patterns
    assert "hinge" in readiness.avoid_patterns


def test_readiness_maps_constraint_tags_to_patterns(make_request):
    """Test constraint tag to avoided pattern mapping."""
    readiness = assess_readiness(make_request(constraints=["knee_pain", "shoulder"]))
    assert {"jump", "lunge", "gym_push", "overhead"} <= set(readiness.avoid_patterns)
