from dataclasses import dataclass, field, replace

from app.generation.invariants import DEFAULT_TIME_TOLERANCE_PCT
from app.generation.schema.structure import BlockStructure, StructureKind
from app.generation.schema.workout import BlockKind, ItemScheme

# Structures a main block may use unless a pack says otherwise
DEFAULT_LOCKED_STRUCTURES: frozenset[StructureKind] = frozenset(
    {
        StructureKind.EVERY,
        StructureKind.EMOM,
        StructureKind.AMRAP,
        StructureKind.FOR_TIME,
        StructureKind.CHIPPER,
        StructureKind.INTERVALS,
    }
)


@dataclass(frozen=True)
class SelectionCriteria:
    """How a main block's items are drawn from the registry.

    With ``cover_patterns`` the selector takes one movement per pattern (in
    order) before filling remaining slots, so an alternating block with two
    patterns and two items always carries both.
    """

    categories: tuple[str, ...]
    patterns: tuple[str, ...]
    items: int
    modality: tuple[str, ...] | None = None
    require_loaded: bool = False
    cover_patterns: bool = False


@dataclass(frozen=True)
class MainBlockSpec:
    kind: BlockKind
    minutes: int
    structure: BlockStructure
    select: SelectionCriteria
    scheme: ItemScheme | None = None
    notes: str | None = None


@dataclass(frozen=True)
class PatternPack:
    """Budgeted template for one style."""

    name: str
    warmup_minutes: int
    cooldown_minutes: int
    hardness_floor: float
    main_blocks: tuple[MainBlockSpec, ...]
    required_pattern_groups: tuple[tuple[str, ...], ...] = ()
    locked_structures: frozenset[StructureKind] = DEFAULT_LOCKED_STRUCTURES
    time_tolerance_pct: float = DEFAULT_TIME_TOLERANCE_PCT
    continuous_scoring: bool = False  # cardio/mobility hardness formula
    expects_load: bool = True
    focus_count: int | None = None  # hybrid styles: one main per declared focus

    @property
    def main_minutes(self) -> int:
        return sum(b.minutes for b in self.main_blocks)

    @property
    def total_minutes(self) -> int:
        return self.warmup_minutes + self.cooldown_minutes + self.main_minutes

    def with_overrides(self, **changes: object) -> "PatternPack":
        return replace(self, **changes)


@dataclass(frozen=True)
class CyclicalModality:
    name: str
    patterns: tuple[str, ...] = field(default_factory=tuple)
