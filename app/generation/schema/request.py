"""Closed request schema for workout generation.

The request is validated once at the pipeline boundary. Internal stages only
ever see a frozen `GenerationRequest` with a canonical `Style`.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.generation.errors import ConfigurationError


class Style(StrEnum):
    CROSSFIT = "crossfit"
    OLYMPIC_WEIGHTLIFTING = "olympic_weightlifting"
    POWERLIFTING = "powerlifting"
    BB_FULL_BODY = "bb_full_body"
    BB_UPPER = "bb_upper"
    BB_LOWER = "bb_lower"
    AEROBIC = "aerobic"
    ENDURANCE = "endurance"
    CONDITIONING = "conditioning"
    STRENGTH = "strength"
    MIXED = "mixed"
    GYMNASTICS = "gymnastics"
    MOBILITY = "mobility"


class FocusArea(StrEnum):
    STRENGTH = "strength"
    CONDITIONING = "conditioning"
    SKILL = "skill"
    CORE = "core"


STYLE_ALIASES: dict[str, Style] = {
    "cf": Style.CROSSFIT,
    "oly": Style.OLYMPIC_WEIGHTLIFTING,
    "olympic": Style.OLYMPIC_WEIGHTLIFTING,
    "pl": Style.POWERLIFTING,
    "bb full body": Style.BB_FULL_BODY,
    "bbfull": Style.BB_FULL_BODY,
}

EQUIPMENT_ALIASES: dict[str, str] = {
    "barbells": "barbell",
    "dumbbells": "dumbbell",
    "kettlebells": "kettlebell",
    "db": "dumbbell",
    "kb": "kettlebell",
    "bb": "barbell",
}


def normalize_style(raw: object) -> Style:
    """Map free-text style input onto a supported style.

    Args:
        raw: Style value as received from the caller

    Returns:
        Canonical Style

    Raises:
        ConfigurationError: If the style is not supported
    """
    text = str(raw or "").strip().lower()
    if not text:
        return Style.MIXED
    if text in Style._value2member_map_:
        return Style(text)
    if text in STYLE_ALIASES:
        return STYLE_ALIASES[text]
    if "olympic" in text:
        return Style.OLYMPIC_WEIGHTLIFTING
    if "bodybuilding" in text:
        return Style.BB_FULL_BODY
    raise ConfigurationError(
        "STYLE_UNSUPPORTED",
        [f"Unsupported style '{raw}'"],
        {"style": text, "supported": [s.value for s in Style]},
    )


def normalize_equipment(tags: list[str]) -> list[str]:
    seen: list[str] = []
    for tag in tags:
        key = str(tag).strip().lower().replace("-", "_")
        key = EQUIPMENT_ALIASES.get(key, key)
        if key and key not in seen:
            seen.append(key)
    return seen


class HealthSnapshot(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    hrv: float | None = Field(None, ge=0)
    resting_hr: float | None = Field(None, ge=0)
    sleep_score: float | None = Field(None, ge=0, le=100)
    stress_flag: bool = False


class YesterdaySummary(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    category: str | None = None
    intensity: int | None = Field(None, ge=1, le=10)
    type: str | None = None
    movements: list[str] = Field(default_factory=list)


class GenerationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    style: Style
    duration_minutes: int = Field(..., ge=5, le=120)
    intensity: int = Field(..., ge=1, le=10)
    equipment: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    focus_areas: list[FocusArea] = Field(default_factory=list)
    health: HealthSnapshot | None = None
    yesterday: YesterdaySummary | None = None

    @field_validator("style", mode="before")
    @classmethod
    def validate_style(cls, value: object) -> Style:
        """Resolve aliases before enum validation."""
        return normalize_style(value)

    @field_validator("equipment")
    @classmethod
    def validate_equipment(cls, value: list[str]) -> list[str]:
        return normalize_equipment(value)

    @field_validator("constraints")
    @classmethod
    def validate_constraints(cls, value: list[str]) -> list[str]:
        return [c.strip().lower() for c in value if c.strip()]
