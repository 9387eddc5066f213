"""Main-block movement selection.

Turns a block's SelectionCriteria into concrete registry movements for one
request. Empty or under-loaded selections are surfaced as
SelectionInfeasible; they are never papered over with fallback names.
"""

import math
from collections.abc import Sequence

from loguru import logger

from app.generation.context import GenerationContext
from app.generation.errors import SelectionInfeasible
from app.generation.invariants import REQUIRED_LOADED_SHARE
from app.generation.packs.types import SelectionCriteria
from app.generation.registry.movement import Movement
from app.generation.registry.query import MovementQuery, query_movements

COVER_QUERY_LIMIT = 2


def _query(ctx: GenerationContext, select: SelectionCriteria, patterns: tuple[str, ...], seed: str, limit: int, exclude_ids: Sequence[str]) -> list[Movement]:
    return query_movements(
        ctx.registry,
        MovementQuery(
            seed=seed,
            categories=select.categories,
            patterns=patterns,
            modality=select.modality,
            equipment=ctx.equipment,
            exclude_banned_mains=True,
            avoid_patterns=ctx.avoid_patterns,
            exclude_ids=tuple(exclude_ids),
            limit=limit,
        ),
    )


def required_loaded(items: int) -> int:
    return math.ceil(items * REQUIRED_LOADED_SHARE)


def _promote_loaded(selected: list[Movement], candidates: list[Movement], needed: int) -> list[Movement]:
    """Swap bodyweight picks for spare loaded candidates until `needed` are loaded."""
    result = list(selected)
    spare = [m for m in candidates if m.is_loaded and m not in result]
    for i in range(len(result) - 1, -1, -1):
        if sum(1 for m in result if m.is_loaded) >= needed or not spare:
            break
        if not result[i].is_loaded:
            result[i] = spare.pop(0)
    return result


def pick_movements(
    ctx: GenerationContext,
    select: SelectionCriteria,
    seed: str,
    exclude_ids: Sequence[str] = (),
) -> list[Movement]:
    """Select the movements for one main block.

    Args:
        ctx: Request context (registry, equipment, avoided patterns)
        select: Block selection criteria
        seed: Block-local seed string
        exclude_ids: Registry ids already used elsewhere in the workout

    Returns:
        Up to ``select.items`` movements in seeded order

    Raises:
        SelectionInfeasible: If nothing matches, or a loaded block cannot
            find enough loaded candidates
    """
    candidates = _query(ctx, select, select.patterns, seed, select.items * 2, exclude_ids)
    if not candidates and exclude_ids:
        # pool exhausted by earlier blocks, allow repeats
        candidates = _query(ctx, select, select.patterns, seed, select.items * 2, ())
    if not candidates:
        raise SelectionInfeasible(
            "NO_CANDIDATES",
            [f"No movements match categories={list(select.categories)} patterns={list(select.patterns)}"],
            {
                "style": str(ctx.style),
                "categories": list(select.categories),
                "patterns": list(select.patterns),
                "equipment": list(ctx.equipment),
            },
        )

    needed = required_loaded(select.items) if select.require_loaded and ctx.has_gear else 0
    loaded_available = sum(1 for m in candidates if m.is_loaded)
    if needed and loaded_available < needed:
        raise SelectionInfeasible(
            "LOADED_CANDIDATES_SHORT",
            [f"Block requires {needed} loaded movements, found {loaded_available}"],
            {
                "style": str(ctx.style),
                "patterns": list(select.patterns),
                "equipment": list(ctx.equipment),
                "required": needed,
                "found": loaded_available,
            },
        )

    selected: list[Movement] = []
    if select.cover_patterns:
        for pattern in select.patterns:
            if len(selected) >= select.items:
                break
            taken = [m.id for m in selected]
            hits = _query(ctx, select, (pattern,), f"{seed}-{pattern}", COVER_QUERY_LIMIT, [*exclude_ids, *taken])
            if needed:
                hits = sorted(hits, key=lambda m: not m.is_loaded)
            if hits:
                selected.append(hits[0])
            else:
                logger.debug("No movement covers pattern", pattern=pattern, style=str(ctx.style), seed=seed)

    for movement in candidates:
        if len(selected) >= select.items:
            break
        if movement not in selected:
            selected.append(movement)

    if needed:
        selected = _promote_loaded(selected, candidates, needed)

    logger.debug(
        "Movements selected",
        seed=seed,
        patterns=list(select.patterns),
        selected=[m.id for m in selected],
    )
    return selected
