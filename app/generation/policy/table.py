"""Style-specific content policies.

Declarative rules each style's main blocks must satisfy: allowed movement
categories, required pattern groups, banned exercise names and patterns,
loaded-ratio thresholds and single-equipment requirements.
"""

import re
from dataclasses import dataclass

from app.generation.schema.request import Style

OLYMPIC_LIFTS: tuple[str, ...] = ("olympic_snatch", "olympic_cleanjerk")
BB_CATEGORIES: tuple[str, ...] = ("bb_full_body", "bb_upper", "bb_lower")


def _banned(*names: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(re.escape(name), re.IGNORECASE) for name in names)


@dataclass(frozen=True)
class StylePolicy:
    allowed_categories: tuple[str, ...]
    required_any: tuple[tuple[str, ...], ...] = ()
    banned_names: tuple[re.Pattern[str], ...] = ()
    banned_main_patterns: tuple[str, ...] = ()
    require_loaded_ratio: float | None = None
    require_equipment: str | None = None  # e.g. barbell-only mains

    def bans_name(self, name: str) -> bool:
        return any(rx.search(name) for rx in self.banned_names)


_POWERLIFTING_BANNED = _banned("thruster", "burpee", "double under")
_CROSSFIT_POLICY = StylePolicy(
    allowed_categories=("crossfit",),
    banned_names=_banned("wall sit", "star jump", "high knees", "jumping jacks"),
    require_loaded_ratio=0.60,
)
_BB_POLICY = StylePolicy(allowed_categories=BB_CATEGORIES, require_loaded_ratio=0.70)

STYLE_POLICIES: dict[Style, StylePolicy] = {
    Style.OLYMPIC_WEIGHTLIFTING: StylePolicy(
        allowed_categories=("olympic_weightlifting",),
        required_any=(OLYMPIC_LIFTS,),
        banned_names=_banned("db snatch", "thruster", "bear crawl", "star jump", "burpee", "mountain climber"),
        require_loaded_ratio=0.85,
        require_equipment="barbell",
    ),
    Style.POWERLIFTING: StylePolicy(
        allowed_categories=("powerlifting",),
        required_any=(("squat",), ("bench",), ("hinge",)),
        banned_names=_POWERLIFTING_BANNED,
        require_loaded_ratio=0.85,
    ),
    Style.STRENGTH: StylePolicy(
        allowed_categories=("powerlifting",),
        required_any=(("squat",), ("hinge",)),
        banned_names=_POWERLIFTING_BANNED,
        banned_main_patterns=OLYMPIC_LIFTS,
        require_loaded_ratio=0.70,
    ),
    Style.CROSSFIT: _CROSSFIT_POLICY,
    Style.CONDITIONING: _CROSSFIT_POLICY,
    Style.MIXED: _CROSSFIT_POLICY,
    Style.BB_FULL_BODY: _BB_POLICY,
    Style.BB_UPPER: _BB_POLICY,
    Style.BB_LOWER: _BB_POLICY,
    Style.AEROBIC: StylePolicy(allowed_categories=("aerobic",), banned_main_patterns=OLYMPIC_LIFTS),
    Style.ENDURANCE: StylePolicy(
        allowed_categories=("aerobic",),
        banned_main_patterns=(*OLYMPIC_LIFTS, "hinge", "squat", "press", "pull", "bench"),
    ),
    Style.GYMNASTICS: StylePolicy(allowed_categories=("gymnastics",)),
    Style.MOBILITY: StylePolicy(allowed_categories=("mobility",)),
}


def get_policy(style: Style) -> StylePolicy | None:
    return STYLE_POLICIES.get(style)
