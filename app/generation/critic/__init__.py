from app.generation.critic.cache import clear_critic_cache, critic_cache_key, get_cached_critique, set_cached_critique
from app.generation.critic.critic import CriticRunner, critique, fallback_result, parse_critic_response
from app.generation.critic.merge import merge_patch
from app.generation.critic.schemas import CriticResponse, CritiqueResult, CritiqueSource

__all__ = [
    "CriticResponse",
    "CriticRunner",
    "CritiqueResult",
    "CritiqueSource",
    "clear_critic_cache",
    "critic_cache_key",
    "critique",
    "fallback_result",
    "get_cached_critique",
    "merge_patch",
    "parse_critic_response",
    "set_cached_critique",
]
