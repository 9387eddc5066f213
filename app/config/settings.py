from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    generator_version: str = Field(
        default="v0.3.0",
        validation_alias="GENERATOR_VERSION",
        description="Version string stamped into every generator seed",
    )
    critic_enabled: bool = Field(
        default=True,
        validation_alias="CRITIC_ENABLED",
        description="Run the external critic stage after policy validation",
    )
    critic_model: str = Field(default="gpt-4o", validation_alias="CRITIC_MODEL")
    critic_timeout_seconds: float = Field(
        default=20.0,
        validation_alias="CRITIC_TIMEOUT_SECONDS",
        description="Per-call timeout for the critic, in seconds",
    )
    notes_mode: str = Field(
        default="local",
        validation_alias="NOTES_MODE",
        description="Coaching notes source: 'local' (deterministic) or 'llm'",
    )
    notes_model: str = Field(default="gpt-4o-mini", validation_alias="NOTES_MODEL")
    policy_strict_default: bool = Field(
        default=False,
        validation_alias="POLICY_STRICT_DEFAULT",
        description="Strictness used when a caller does not pass strict explicitly",
    )
    movement_registry_path: str = Field(
        default="",
        validation_alias="MOVEMENT_REGISTRY_PATH",
        description="Override movement catalog file (empty uses the bundled YAML)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("critic_timeout_seconds")
    @classmethod
    def validate_critic_timeout(cls, value: float) -> float:
        if value <= 0:
            logger.warning(f"Invalid CRITIC_TIMEOUT_SECONDS '{value}'. Must be positive. Defaulting to 20.0.")
            return 20.0
        return value

    @field_validator("notes_mode")
    @classmethod
    def validate_notes_mode(cls, value: str) -> str:
        lowered = value.strip().lower()
        if lowered not in {"local", "llm"}:
            logger.warning(f"Invalid NOTES_MODE '{value}'. Valid modes are: local, llm. Defaulting to local.")
            return "local"
        return lowered

    @field_validator("movement_registry_path")
    @classmethod
    def validate_registry_path(cls, value: str) -> str:
        """Warn early when an override catalog does not exist."""
        if value and not Path(value).exists():
            logger.warning(f"MOVEMENT_REGISTRY_PATH '{value}' does not exist. Registry loading will fail.")
        return value


settings = Settings()
