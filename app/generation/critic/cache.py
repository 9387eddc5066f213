import hashlib

from loguru import logger

from app.generation.critic.schemas import CritiqueResult
from app.generation.schema.workout import Workout

CriticCacheKey = tuple[str, str, str]

_critic_cache: dict[CriticCacheKey, CritiqueResult] = {}


def workout_fingerprint(workout: Workout) -> str:
    """Stable short hash of a workout's serialized form."""
    return hashlib.sha256(workout.model_dump_json().encode()).hexdigest()[:16]


def critic_cache_key(rng_seed: str, generator_version: str, workout: Workout) -> CriticCacheKey:
    return (rng_seed, generator_version, workout_fingerprint(workout))


def get_cached_critique(key: CriticCacheKey) -> CritiqueResult | None:
    """Get a cached critic outcome.

    Args:
        key: (rng seed, generator version, workout fingerprint)

    Returns:
        Cached CritiqueResult or None if not found
    """
    cached = _critic_cache.get(key)
    if cached:
        logger.debug("critic_cache: Cache hit", rng_seed=key[0], fingerprint=key[2])
    return cached


def set_cached_critique(key: CriticCacheKey, result: CritiqueResult) -> None:
    _critic_cache[key] = result
    logger.debug("critic_cache: Cache set", rng_seed=key[0], fingerprint=key[2], score=result.score)


def clear_critic_cache() -> None:
    """Clear the critic outcome cache."""
    _critic_cache.clear()
    logger.debug("critic_cache: Cache cleared")
