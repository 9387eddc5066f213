from app.generation.schema.request import FocusArea, GenerationRequest, HealthSnapshot, Style, YesterdaySummary
from app.generation.schema.seed import GeneratorSeed, HealthModifiers, SeedChoices, SeedContext
from app.generation.schema.structure import BlockStructure, StructureKind
from app.generation.schema.workout import (
    AcceptanceFlags,
    BlockKind,
    ItemScheme,
    PolicyRepair,
    SelectionTraceEntry,
    TraceItem,
    Workout,
    WorkoutBlock,
    WorkoutItem,
    WorkoutMeta,
)

__all__ = [
    "AcceptanceFlags",
    "BlockKind",
    "BlockStructure",
    "FocusArea",
    "GenerationRequest",
    "GeneratorSeed",
    "HealthModifiers",
    "HealthSnapshot",
    "ItemScheme",
    "PolicyRepair",
    "SeedChoices",
    "SeedContext",
    "SelectionTraceEntry",
    "StructureKind",
    "Style",
    "TraceItem",
    "Workout",
    "WorkoutBlock",
    "WorkoutItem",
    "WorkoutMeta",
    "YesterdaySummary",
]
