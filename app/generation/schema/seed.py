from pydantic import BaseModel, ConfigDict, Field

from app.generation.schema.request import GenerationRequest


class HealthModifiers(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    axle_score: float | None = Field(None, ge=0, le=100)
    vitality: float | None = Field(None, ge=0, le=100)
    performance_potential: float | None = Field(None, ge=0, le=100)
    circadian: float | None = Field(None, ge=0, le=100)


class SeedContext(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    date_iso: str
    user_id: str
    health_modifiers: HealthModifiers | None = None


class SeedChoices(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    template_id: str
    movement_pool_ids: list[str] = Field(default_factory=list)
    scheme_id: str


class GeneratorSeed(BaseModel):
    """Reproducibility token plus the full input snapshot that produced a workout."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    rng_seed: str = Field(..., min_length=1)
    generator_version: str
    inputs: GenerationRequest
    context: SeedContext
    choices: SeedChoices | None = None
