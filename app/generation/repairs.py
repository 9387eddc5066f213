from loguru import logger

from app.generation.schema.workout import PolicyRepair, Workout


def record_repair(workout: Workout, code: str, stage: str, **details: str | float | bool | None) -> Workout:
    """Append a non-strict repair record to the workout meta."""
    logger.warning("Repair recorded", code=code, stage=stage, style=str(workout.style), **details)
    repairs = [*workout.meta.policy_repairs, PolicyRepair(code=code, stage=stage, details=details)]
    return workout.model_copy(update={"meta": workout.meta.model_copy(update={"policy_repairs": repairs})})
