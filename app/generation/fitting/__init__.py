from app.generation.fitting.budget import fit_to_budget
from app.generation.fitting.duration import correct_duration, time_tolerance, within_tolerance
from app.generation.fitting.fitter import fit_workout
from app.generation.fitting.lock import lock_required_patterns

__all__ = [
    "correct_duration",
    "fit_to_budget",
    "fit_workout",
    "lock_required_patterns",
    "time_tolerance",
    "within_tolerance",
]
