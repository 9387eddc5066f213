from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from app.generation.schema.request import Style
from app.generation.schema.structure import BlockStructure, render_title


class BlockKind(StrEnum):
    WARMUP = "warmup"
    STRENGTH = "strength"
    CONDITIONING = "conditioning"
    SKILL = "skill"
    CORE = "core"
    COOLDOWN = "cooldown"


class ItemScheme(BaseModel):
    """Prescription for one item. Every field is optional and checked on its own."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    reps: int | None = Field(None, gt=0)
    duration_seconds: int | None = Field(None, gt=0)
    distance_m: int | None = Field(None, gt=0)
    percent_1rm: float | None = Field(None, gt=0, le=110)
    rest_seconds: int | None = Field(None, ge=0)


class WorkoutItem(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    exercise_name: str = Field(..., min_length=1)
    registry_id: str | None = None  # lookup only, the registry owns the Movement
    scheme: ItemScheme = Field(default_factory=ItemScheme)
    notes: str | None = None


class WorkoutBlock(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: BlockKind
    structure: BlockStructure
    time_minutes: int = Field(..., gt=0)
    items: list[WorkoutItem] = Field(default_factory=list)
    notes: str | None = None
    finisher: bool = False

    @model_validator(mode="before")
    @classmethod
    def drop_rendered_title(cls, data: Any) -> Any:
        """Titles are derived from the structure; a serialized title is ignored on input."""
        if isinstance(data, dict) and "title" in data:
            return {k: v for k, v in data.items() if k != "title"}
        return data

    @computed_field  # type: ignore[prop-decorator]
    @property
    def title(self) -> str:
        return render_title(self.structure, self.time_minutes)

    @property
    def is_main(self) -> bool:
        return self.kind not in (BlockKind.WARMUP, BlockKind.COOLDOWN)


class AcceptanceFlags(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    time_fit: bool = False
    has_warmup: bool = False
    has_cooldown: bool = False
    mixed_rule_ok: bool = True
    equipment_ok: bool = True
    injury_safe: bool = True
    readiness_mod_applied: bool = True
    hardness_ok: bool = False
    patterns_locked: bool = True
    no_banned_in_mains: bool = True


class PolicyRepair(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str
    stage: str
    details: dict[str, str | float | bool | None] = Field(default_factory=dict)


class TraceItem(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    id: str | None = None


class SelectionTraceEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str
    kind: BlockKind
    time_minutes: int
    items: list[TraceItem] = Field(default_factory=list)


class WorkoutMeta(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    generator: str = "registry"
    generator_version: str | None = None
    style: Style
    pack_name: str
    seed: str
    working_intensity: int | None = None
    constraints_applied: list[str] = Field(default_factory=list)
    effective_floor: float | None = None
    main_loaded_ratio: float = 0.0
    selection_trace: list[SelectionTraceEntry] = Field(default_factory=list)
    policy_repairs: list[PolicyRepair] = Field(default_factory=list)


class Workout(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str = Field(..., min_length=1)
    style: Style
    duration_minutes: int = Field(..., gt=0)
    intensity: int = Field(..., ge=1, le=10)
    description: str | None = None
    blocks: list[WorkoutBlock]
    hardness_score: float = Field(0.0, ge=0, le=1)
    variety_score: float = Field(0.0, ge=0, le=1)
    acceptance_flags: AcceptanceFlags = Field(default_factory=AcceptanceFlags)
    meta: WorkoutMeta


def main_blocks(blocks: list[WorkoutBlock]) -> list[WorkoutBlock]:
    return [b for b in blocks if b.is_main]


def total_minutes(blocks: list[WorkoutBlock]) -> int:
    return sum(b.time_minutes for b in blocks)


def replace_block(blocks: list[WorkoutBlock], index: int, block: WorkoutBlock) -> list[WorkoutBlock]:
    return [block if i == index else b for i, b in enumerate(blocks)]


def insert_before_cooldown(blocks: list[WorkoutBlock], block: WorkoutBlock) -> list[WorkoutBlock]:
    """Insert `block` immediately before the cooldown (or at the end when there is none)."""
    for i, existing in enumerate(blocks):
        if existing.kind == BlockKind.COOLDOWN:
            return [*blocks[:i], block, *blocks[i:]]
    return [*blocks, block]
