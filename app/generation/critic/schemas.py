from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.generation.schema.workout import Workout


class CriticResponse(BaseModel):
    """Raw critic answer after fence stripping."""

    model_config = ConfigDict(extra="ignore")

    score: float = Field(..., ge=0, le=100)
    issues: list[str] = Field(default_factory=list)
    patch: dict[str, Any] | None = None


class CritiqueSource(StrEnum):
    MODEL = "model"
    CACHE = "cache"
    FALLBACK = "fallback"


class CritiqueResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    workout: Workout
    score: float
    issues: list[str] = Field(default_factory=list)
    was_patched: bool = False
    source: CritiqueSource = CritiqueSource.MODEL
