from app.generation.packs.resolver import CROSSFIT_FAMILY, resolve_pack
from app.generation.packs.types import MainBlockSpec, PatternPack, SelectionCriteria

__all__ = ["CROSSFIT_FAMILY", "MainBlockSpec", "PatternPack", "SelectionCriteria", "resolve_pack"]
