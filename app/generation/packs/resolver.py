"""Pattern pack resolution.

Maps a validated style onto its budgeted template. Every supported style has
either a static pack or a dynamic builder; anything else is a configuration
error raised before composition starts.
"""

from collections.abc import Sequence

from loguru import logger

from app.generation.errors import ConfigurationError
from app.generation.invariants import (
    COOLDOWN_COMPRESS_FLOOR,
    MAX_COMPRESS_MINUTES,
    TIGHT_BUDGET_SLACK_MINUTES,
    WARMUP_COMPRESS_FLOOR,
)
from app.generation.packs.builders import (
    build_crossfit_pack,
    build_endurance_pack,
    build_olympic_pack,
    build_powerlifting_pack,
)
from app.generation.packs.table import STATIC_PACKS
from app.generation.packs.types import PatternPack
from app.generation.schema.request import FocusArea, Style

CROSSFIT_FAMILY: frozenset[Style] = frozenset({Style.CROSSFIT, Style.CONDITIONING, Style.MIXED})
SELF_SIZING_STYLES: frozenset[Style] = frozenset({Style.OLYMPIC_WEIGHTLIFTING, Style.ENDURANCE})


def compress_warmup_cooldown(pack: PatternPack, duration_minutes: int) -> PatternPack:
    """Shave up to two minutes off warmup and cooldown when the budget is tight.

    Never shaves below the compress floors and never lengthens either block.
    """
    warmup = pack.warmup_minutes
    cooldown = pack.cooldown_minutes
    if duration_minutes > warmup + cooldown + TIGHT_BUDGET_SLACK_MINUTES:
        return pack

    new_warmup = max(warmup - MAX_COMPRESS_MINUTES, min(warmup, WARMUP_COMPRESS_FLOOR))
    new_cooldown = max(cooldown - MAX_COMPRESS_MINUTES, min(cooldown, COOLDOWN_COMPRESS_FLOOR))
    if (new_warmup, new_cooldown) == (warmup, cooldown):
        return pack

    logger.debug(
        "Compressed warmup/cooldown for tight budget",
        pack=pack.name,
        duration_minutes=duration_minutes,
        warmup_minutes=new_warmup,
        cooldown_minutes=new_cooldown,
    )
    return pack.with_overrides(warmup_minutes=new_warmup, cooldown_minutes=new_cooldown)


def resolve_pack(
    style: Style,
    duration_minutes: int,
    intensity: int,
    equipment: Sequence[str],
    focus_areas: Sequence[FocusArea] = (),
) -> PatternPack:
    """Resolve the pattern pack for a request.

    Args:
        style: Canonical style
        duration_minutes: Requested total duration
        intensity: Working intensity (1-10)
        equipment: Normalized equipment tags
        focus_areas: Sub-focuses for hybrid styles

    Returns:
        PatternPack sized for the request

    Raises:
        ConfigurationError: If the style has no pack and no builder
    """
    if style in CROSSFIT_FAMILY:
        pack = build_crossfit_pack(intensity, focus_areas)
    elif style == Style.OLYMPIC_WEIGHTLIFTING:
        pack = build_olympic_pack(duration_minutes)
    elif style == Style.POWERLIFTING:
        pack = build_powerlifting_pack(intensity)
    elif style == Style.STRENGTH:
        pack = build_powerlifting_pack(intensity, name="strength")
    elif style == Style.ENDURANCE:
        pack = build_endurance_pack(duration_minutes, intensity, equipment)
    elif style in STATIC_PACKS:
        pack = STATIC_PACKS[style]
    else:
        raise ConfigurationError(
            "PACK_MISSING",
            [f"No pattern pack or builder for style '{style}'"],
            {"style": str(style)},
        )

    if style not in SELF_SIZING_STYLES:
        pack = compress_warmup_cooldown(pack, duration_minutes)

    logger.debug(
        "Pattern pack resolved",
        style=str(style),
        pack=pack.name,
        warmup_minutes=pack.warmup_minutes,
        cooldown_minutes=pack.cooldown_minutes,
        main_blocks=len(pack.main_blocks),
        hardness_floor=pack.hardness_floor,
    )
    return pack
