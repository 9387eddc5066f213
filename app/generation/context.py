from dataclasses import dataclass

from app.generation.readiness import Readiness
from app.generation.registry.movement import MovementRegistry, has_loaded_gear
from app.generation.schema.request import GenerationRequest, Style


@dataclass(frozen=True)
class GenerationContext:
    """Per-request, read-only inputs shared by every pipeline stage."""

    request: GenerationRequest
    readiness: Readiness
    registry: MovementRegistry
    rng_seed: str
    strict: bool

    @property
    def style(self) -> Style:
        return self.request.style

    @property
    def equipment(self) -> tuple[str, ...]:
        return tuple(self.request.equipment)

    @property
    def intensity(self) -> int:
        return self.readiness.working_intensity

    @property
    def duration_minutes(self) -> int:
        return self.request.duration_minutes

    @property
    def avoid_patterns(self) -> tuple[str, ...]:
        return self.readiness.avoid_patterns

    @property
    def has_gear(self) -> bool:
        return has_loaded_gear(self.request.equipment)

    def seed_for(self, *parts: object) -> str:
        """Derive a stage-local seed string from the request seed."""
        return "-".join([self.rng_seed, *(str(p) for p in parts)])
