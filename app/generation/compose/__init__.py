from app.generation.compose.composer import compose
from app.generation.compose.notes import apply_llm_notes, coaching_note
from app.generation.compose.selection import pick_movements

__all__ = ["apply_llm_notes", "coaching_note", "compose", "pick_movements"]
