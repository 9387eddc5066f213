"""Typed errors raised by the workout generation pipeline.

Every error carries a short machine-readable code, a list of human-readable
details and an optional context mapping (style, offending item, numeric
deltas) so callers can log and alert without parsing messages.
"""

from typing import Any


class GenerationError(RuntimeError):
    def __init__(self, code: str, details: list[str], context: dict[str, Any] | None = None):
        self.code = code
        self.details = details
        self.context = context or {}
        super().__init__(f"{code}: {details}")


class ConfigurationError(GenerationError):
    """Unsupported style or missing pattern pack. Raised before composition."""


class SelectionInfeasible(GenerationError):
    """Registry query produced no usable candidates for a block."""


class BudgetInfeasible(GenerationError):
    """Required pattern groups cannot fit inside the time budget."""


class PolicyViolation(GenerationError):
    """A style policy rule is broken and could not be auto-fixed."""


class CriticUnavailable(GenerationError):
    """The external critic timed out, failed, or answered with garbage."""


class SchemaInvalid(GenerationError):
    """The final workout failed structural validation."""
