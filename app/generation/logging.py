from typing import Any

from loguru import logger

from app.generation.errors import GenerationError


def log_generation_failure(err: GenerationError, context: dict[str, Any]) -> None:
    fields = {**err.context, **context}
    logger.error(
        "GENERATION_FAILED",
        error_type=type(err).__name__,
        code=err.code,
        details=err.details,
        **fields,
    )
