from app.generation.registry.loader import clear_registry_cache, get_registry, load_registry
from app.generation.registry.movement import Modality, Movement, MovementCategory, MovementRegistry, has_loaded_gear
from app.generation.registry.query import MovementQuery, filter_movements, query_movements
from app.generation.registry.rng import SeededRandom, hash_seed

__all__ = [
    "Modality",
    "Movement",
    "MovementCategory",
    "MovementQuery",
    "MovementRegistry",
    "SeededRandom",
    "clear_registry_cache",
    "filter_movements",
    "get_registry",
    "has_loaded_gear",
    "hash_seed",
    "load_registry",
    "query_movements",
]
