"""Tests for the critic & repair loop, patch merging and the outcome cache."""

import asyncio
import json

import pytest
from pydantic import ValidationError

from app.generation.critic import (
    CritiqueSource,
    clear_critic_cache,
    critic_cache_key,
    critique,
    fallback_result,
    get_cached_critique,
    merge_patch,
    parse_critic_response,
    set_cached_critique,
)
from app.generation.critic.critic import CRITIC_UNAVAILABLE_ISSUE, strip_fences
from app.generation.errors import SchemaInvalid
from app.generation.pipeline import build_workout
from app.generation.schema.workout import Workout


class FakeCritic:
    """Scripted critic: each call pops the next answer (or raises it)."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts: list[str] = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer


@pytest.fixture
def request_and_workout(make_request, registry):
    request = make_request()
    built = build_workout(request, "critic-seed", strict=False, registry=registry, generator_version="test")
    return request, built.workout


def test_strip_fences():
    """Test removal of markdown code fences."""
    assert strip_fences('```json\n{"score": 90}\n```') == '{"score": 90}'
    assert strip_fences('```\n{"score": 90}\n```') == '{"score": 90}'
    assert strip_fences('{"score": 90}') == '{"score": 90}'


def test_parse_critic_response_rejects_garbage():
    """Test that non-JSON and out-of-range answers are parse errors."""
    assert parse_critic_response('{"score": 88, "issues": ["ok"]}').score == 88
    with pytest.raises(ValueError):
        parse_critic_response("Looks great to me!")
    with pytest.raises(ValueError):
        parse_critic_response('{"score": 140}')


@pytest.mark.asyncio
async def test_good_answer_keeps_workout(request_and_workout):
    """Test a passing score without a patch."""
    request, workout = request_and_workout
    runner = FakeCritic('```json\n{"score": 92, "issues": [], "patch": null}\n```')
    result = await critique(workout, request, runner=runner)
    assert result.score == 92
    assert result.workout == workout
    assert not result.was_patched
    assert result.source == CritiqueSource.MODEL
    assert len(runner.prompts) == 1
    assert "WORKOUT TO REVIEW" in runner.prompts[0]


@pytest.mark.asyncio
async def test_malformed_then_repaired(request_and_workout):
    """Test that one malformed answer triggers a repair prompt."""
    request, workout = request_and_workout
    runner = FakeCritic("not json at all", '{"score": 85, "issues": ["minor"], "patch": null}')
    result = await critique(workout, request, runner=runner)
    assert result.score == 85
    assert result.issues == ["minor"]
    assert len(runner.prompts) == 2
    assert "not json at all" in runner.prompts[1]


@pytest.mark.asyncio
async def test_malformed_twice_falls_back(request_and_workout):
    """Test that a second malformed answer ends in the fallback result."""
    request, workout = request_and_workout
    runner = FakeCritic("nope", "still nope")
    result = await critique(workout, request, runner=runner)
    assert result.source == CritiqueSource.FALLBACK
    assert result.score == 75
    assert result.issues == [CRITIC_UNAVAILABLE_ISSUE]
    assert result.workout == workout


@pytest.mark.asyncio
async def test_network_error_retries_once_then_falls_back(request_and_workout):
    """Test that outages retry once and never raise."""
    request, workout = request_and_workout
    runner = FakeCritic(ConnectionError("down"), ConnectionError("still down"), '{"score": 99}')
    result = await critique(workout, request, runner=runner)
    assert result.source == CritiqueSource.FALLBACK
    assert len(runner.prompts) == 2


@pytest.mark.asyncio
async def test_network_error_then_success(request_and_workout):
    """Test that the retry can succeed."""
    request, workout = request_and_workout
    runner = FakeCritic(ConnectionError("blip"), '{"score": 81, "issues": []}')
    result = await critique(workout, request, runner=runner)
    assert result.score == 81
    assert result.source == CritiqueSource.MODEL


@pytest.mark.asyncio
async def test_retry_then_malformed_stays_within_two_calls(request_and_workout):
    """Test that the loop never makes a third call."""
    request, workout = request_and_workout
    runner = FakeCritic(ConnectionError("blip"), "garbage", '{"score": 90}')
    result = await critique(workout, request, runner=runner)
    assert result.source == CritiqueSource.FALLBACK
    assert len(runner.prompts) == 2


@pytest.mark.asyncio
async def test_timeout_falls_back(request_and_workout):
    """Test that slow critics are cut off by the per-call timeout."""
    request, workout = request_and_workout
    calls = []

    async def slow(prompt: str) -> str:
        calls.append(prompt)
        await asyncio.sleep(5)
        return '{"score": 90}'

    result = await critique(workout, request, runner=slow, timeout_seconds=0.01)
    assert result.source == CritiqueSource.FALLBACK
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_low_score_patch_applied(request_and_workout):
    """Test that a valid patch below the threshold is merged and revalidated."""
    request, workout = request_and_workout
    answer = json.dumps({"score": 62, "issues": ["too hard"], "patch": {"intensity": 4, "description": "Easier day"}})
    result = await critique(workout, request, runner=FakeCritic(answer))
    assert result.was_patched
    assert result.workout.intensity == 4
    assert result.workout.description == "Easier day"
    assert result.workout.blocks == workout.blocks


@pytest.mark.asyncio
async def test_patch_ignored_at_or_above_threshold(request_and_workout):
    """Test that patches are only taken below a score of 80."""
    request, workout = request_and_workout
    answer = json.dumps({"score": 80, "issues": [], "patch": {"intensity": 2}})
    result = await critique(workout, request, runner=FakeCritic(answer))
    assert not result.was_patched
    assert result.workout.intensity == workout.intensity


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("patch", "error_name"),
    [({"intensity": 42}, "ValidationError"), ({"blocks": []}, "SchemaInvalid")],
)
async def test_invalid_patch_rejected(request_and_workout, patch, error_name):
    """Test that an invalid patched workout is discarded."""
    request, workout = request_and_workout
    answer = json.dumps({"score": 50, "issues": ["bad"], "patch": patch})
    result = await critique(workout, request, runner=FakeCritic(answer))
    assert not result.was_patched
    assert result.workout == workout
    assert result.issues == ["bad", f"Critic patch rejected: {error_name}"]


@pytest.mark.asyncio
async def test_patch_must_pass_gate(request_and_workout):
    """Test that a patch the gate refuses leaves the original workout in place."""
    request, workout = request_and_workout
    seen: list[Workout] = []

    def refuse(patched: Workout) -> Workout:
        seen.append(patched)
        raise SchemaInvalid("INVARIANT_VIOLATION", ["policy: category:gymnastics"])

    answer = json.dumps({"score": 55, "issues": ["swap"], "patch": {"intensity": 5}})
    result = await critique(workout, request, runner=FakeCritic(answer), gate=refuse)
    assert seen[0].intensity == 5
    assert not result.was_patched
    assert result.workout == workout
    assert result.issues == ["swap", "Critic patch rejected: SchemaInvalid"]


def test_merge_patch_maps_known_fields_only(request_and_workout):
    """Test that unknown patch keys are ignored and known ones renamed."""
    _, workout = request_and_workout
    merged = merge_patch(workout, {"name": "Renamed", "unknown": 1, "description": None, "blocks": "nope"})
    assert merged.title == "Renamed"
    assert merged.description == workout.description
    assert merged.blocks == workout.blocks
    assert workout.title != "Renamed"
    with pytest.raises(ValidationError):
        merge_patch(workout, {"category": "knitting"})


def test_critic_cache_round_trip(request_and_workout):
    """Test get/set/clear on the outcome cache."""
    _, workout = request_and_workout
    key = critic_cache_key("seed-1", "v1", workout)
    assert get_cached_critique(key) is None
    result = fallback_result(workout, "test")
    set_cached_critique(key, result)
    assert get_cached_critique(key) == result
    assert critic_cache_key("seed-2", "v1", workout) != key
    clear_critic_cache()
    assert get_cached_critique(key) is None
