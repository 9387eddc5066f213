"""Policy stage.

Validate -> ok, or Validate -> AutoFix -> Revalidate -> Fixed | Unfixed.
Unfixed raises PolicyViolation for strict requests and is recorded in
meta.policy_repairs for non-strict ones. There is exactly one auto-fix pass.
"""

from loguru import logger

from app.generation.context import GenerationContext
from app.generation.errors import PolicyViolation
from app.generation.items import main_loaded_ratio
from app.generation.invariants import CROSSFIT_LOADED_UPGRADE_RATIO
from app.generation.packs.resolver import CROSSFIT_FAMILY
from app.generation.policy.autofix import auto_fix, uplift_loaded_ratio
from app.generation.policy.table import get_policy
from app.generation.policy.validator import PolicyResult, validate_policy
from app.generation.repairs import record_repair
from app.generation.schema.workout import Workout

POLICY_STAGE = "policy"
UPGRADE_MARKER = "(upgraded to loaded)"


def _with_ratio(workout: Workout, ctx: GenerationContext) -> Workout:
    ratio = round(main_loaded_ratio(workout.blocks, ctx.registry), 2)
    return workout.model_copy(update={"meta": workout.meta.model_copy(update={"main_loaded_ratio": ratio})})


def _unfixed(workout: Workout, ctx: GenerationContext, result: PolicyResult, fix_attempted: bool) -> Workout:
    reason = result.reason or "unknown"
    if ctx.strict:
        logger.error(
            "Policy violation could not be fixed",
            style=str(ctx.style),
            reason=reason,
            offender=result.offender,
        )
        raise PolicyViolation(
            reason,
            [f"Style policy violated: {reason}"],
            {"style": str(ctx.style), "offender": result.offender, "auto_fix_attempted": fix_attempted},
        )
    return record_repair(
        workout,
        reason,
        POLICY_STAGE,
        offender=result.offender,
        auto_fix_attempted=fix_attempted,
        auto_fix_succeeded=False,
    )


def enforce_policy(workout: Workout, ctx: GenerationContext) -> Workout:
    """Validate the sanitized workout against its style policy and auto-fix once.

    Args:
        workout: Sanitized workout
        ctx: Request context (strictness, equipment, registry)

    Returns:
        The validated (possibly auto-fixed) workout. Non-strict requests may
        get a best-effort workout with the violation recorded in meta.

    Raises:
        PolicyViolation: Strict mode, when the violation survives auto-fix
    """
    policy = get_policy(ctx.style)
    if policy is None:
        return workout

    result = validate_policy(workout, policy, ctx.registry, ctx.equipment)
    if result.ok:
        return workout

    logger.info(
        "Policy violation detected, attempting auto-fix",
        style=str(ctx.style),
        reason=result.reason,
        offender=result.offender,
    )
    fixed = auto_fix(workout, policy, ctx)
    if fixed is None:
        return _with_ratio(_unfixed(workout, ctx, result, fix_attempted=True), ctx)

    recheck = validate_policy(fixed, policy, ctx.registry, ctx.equipment)
    if not recheck.ok:
        return _with_ratio(_unfixed(fixed, ctx, recheck, fix_attempted=True), ctx)

    if not ctx.strict:
        fixed = record_repair(
            fixed,
            f"{result.reason}_auto_fixed",
            POLICY_STAGE,
            offender=result.offender,
            auto_fix_attempted=True,
            auto_fix_succeeded=True,
        )
    return _with_ratio(fixed, ctx)


def upgrade_crossfit_loaded(workout: Workout, ctx: GenerationContext) -> Workout:
    """Lift crossfit-family mains to the loaded target when gear is available."""
    if ctx.style not in CROSSFIT_FAMILY or not ctx.has_gear:
        return workout
    policy = get_policy(ctx.style)
    if policy is None or main_loaded_ratio(workout.blocks, ctx.registry) >= CROSSFIT_LOADED_UPGRADE_RATIO:
        return workout

    upgraded = uplift_loaded_ratio(
        workout, policy, ctx, CROSSFIT_LOADED_UPGRADE_RATIO, marker=UPGRADE_MARKER, seed_prefix="cf-upgrade"
    )
    ratio = main_loaded_ratio(upgraded.blocks, ctx.registry)
    if ratio < CROSSFIT_LOADED_UPGRADE_RATIO:
        logger.warning("Crossfit loaded upgrade below target", ratio=round(ratio, 2), style=str(ctx.style))
    return _with_ratio(upgraded, ctx)
