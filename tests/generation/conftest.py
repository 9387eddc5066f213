"""Fixtures for generation pipeline tests."""

from collections.abc import Callable

import pytest

from app.generation.context import GenerationContext
from app.generation.packs import PatternPack, resolve_pack
from app.generation.readiness import assess_readiness
from app.generation.registry import MovementRegistry
from app.generation.schema.request import GenerationRequest

GYM_EQUIPMENT = ["barbell", "dumbbell", "kettlebell", "box", "pull_up_bar", "rower"]


@pytest.fixture
def make_request() -> Callable[..., GenerationRequest]:
    def _make(style: str = "crossfit", duration_minutes: int = 45, intensity: int = 6, **overrides) -> GenerationRequest:
        data = {
            "style": style,
            "duration_minutes": duration_minutes,
            "intensity": intensity,
            "equipment": list(GYM_EQUIPMENT),
            **overrides,
        }
        return GenerationRequest.model_validate(data)

    return _make


@pytest.fixture
def make_ctx(registry: MovementRegistry) -> Callable[..., GenerationContext]:
    def _make(request: GenerationRequest, rng_seed: str = "test-seed", strict: bool = False) -> GenerationContext:
        return GenerationContext(
            request=request,
            readiness=assess_readiness(request),
            registry=registry,
            rng_seed=rng_seed,
            strict=strict,
        )

    return _make


@pytest.fixture
def pack_for() -> Callable[[GenerationContext], PatternPack]:
    def _resolve(ctx: GenerationContext) -> PatternPack:
        request = ctx.request
        return resolve_pack(request.style, request.duration_minutes, ctx.intensity, ctx.equipment, request.focus_areas)

    return _resolve
