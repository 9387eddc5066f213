from app.generation.sanitize.hardness import effective_floor, hardness_score
from app.generation.sanitize.sanitizer import enforce_hardness_floor, replace_banned_filler, sanitize

__all__ = ["effective_floor", "enforce_hardness_floor", "hardness_score", "replace_banned_filler", "sanitize"]
