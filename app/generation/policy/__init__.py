from app.generation.policy.autofix import auto_fix
from app.generation.policy.enforce import enforce_policy, upgrade_crossfit_loaded
from app.generation.policy.table import STYLE_POLICIES, StylePolicy, get_policy
from app.generation.policy.validator import PolicyResult, ViolationKind, validate_policy

__all__ = [
    "STYLE_POLICIES",
    "PolicyResult",
    "StylePolicy",
    "ViolationKind",
    "auto_fix",
    "enforce_policy",
    "get_policy",
    "upgrade_crossfit_loaded",
    "validate_policy",
]
