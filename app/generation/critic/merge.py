"""Critic patch merging.

Only recognized top-level fields are taken from a patch. The merged workout
is re-validated in full by the caller; the original is never modified.
"""

from typing import Any

from app.generation.schema.workout import Workout

# patch key -> Workout field
PATCHABLE_FIELDS: dict[str, str] = {
    "blocks": "blocks",
    "intensity": "intensity",
    "name": "title",
    "description": "description",
    "category": "style",
}


def merge_patch(workout: Workout, patch: dict[str, Any]) -> Workout:
    """Field-by-field merge of a critic patch into a workout.

    Args:
        workout: Pre-critic workout
        patch: Partial workout proposed by the critic

    Returns:
        New, validated Workout

    Raises:
        pydantic.ValidationError: If the merged data is not a valid Workout
    """
    data = workout.model_dump()
    for key, value in patch.items():
        target = PATCHABLE_FIELDS.get(key)
        if target is None or value is None:
            continue
        if key == "blocks" and not isinstance(value, list):
            continue
        data[target] = value
    return Workout.model_validate(data)
