"""Generation Invariants - Single Source of Truth.

Numeric thresholds and tag sets shared by the composer, fitter, sanitizer
and policy stages. Every stage imports its constants from here.

ARCHITECTURAL COMMITMENT: MINUTES ARE THE BUDGET CURRENCY
=========================================================
Block durations are whole minutes. Round counts embedded in block titles are
always derived from minutes, never the other way around.
"""

# Equipment tags that count as external load
LOADED_EQUIPMENT: frozenset[str] = frozenset(
    {"barbell", "dumbbell", "kettlebell", "machine", "cable", "sandbag", "sled"}
)

# Loaded tags that switch on the banned-filler rules and gear penalties
GEAR_EQUIPMENT: frozenset[str] = frozenset({"barbell", "dumbbell", "kettlebell"})

# Equipment tags that never need to be "available"
FREE_EQUIPMENT: frozenset[str] = frozenset({"bodyweight", "mobility"})

# Preference order when picking loaded finisher movements
FINISHER_EQUIPMENT_PREFERENCE: tuple[str, ...] = ("barbell", "dumbbell", "kettlebell")

# Replacement ladder for banned filler in mains (registry ids), cycled in order
BANNED_FILLER_LADDER: tuple[str, ...] = (
    "db-box-step-overs",
    "kb-swings",
    "wall-balls",
    "burpees",
)

# Warmup / cooldown floors
MIN_WARMUP_MINUTES = 4
MIN_COOLDOWN_MINUTES = 4
WARMUP_COMPRESS_FLOOR = 6  # resolver never shaves a warmup below this
COOLDOWN_COMPRESS_FLOOR = 4
MAX_COMPRESS_MINUTES = 2  # resolver shaves at most this much off each

# Main block sizing
MIN_MAIN_BLOCK_MINUTES = 4
MAX_MIN_BLOCK_MINUTES = 8  # adaptive per-block minimum is capped here
TIGHT_BUDGET_SLACK_MINUTES = 10  # duration <= warmup + cooldown + slack => compress

# Time tolerance: max(floor, pct * duration)
TIME_TOLERANCE_FLOOR_MINUTES = 2
DEFAULT_TIME_TOLERANCE_PCT = 0.05
CARDIO_TIME_TOLERANCE_PCT = 0.10

# Finishers
FINISHER_MIN_MINUTES = 6
FINISHER_MAX_MINUTES = 8
FINISHER_LONG_SESSION_MINUTES = 40  # at or above => 30-20-10, else 21-15-9
HARDNESS_FINISHER_MINUTES = 6

# Hardness floors
LOW_READINESS_FLOOR = 0.55
NO_GEAR_FLOOR = 0.55
LOW_READINESS_SLEEP_SCORE = 60

# Loaded-ratio targets
CROSSFIT_LOADED_UPGRADE_RATIO = 0.60

# Selection: share of requireLoaded items that must be loaded
REQUIRED_LOADED_SHARE = 0.5

# Readiness caution thresholds
CAUTION_HRV_BELOW = 30
CAUTION_RESTING_HR_ABOVE = 80
CAUTION_SLEEP_BELOW = 60

# Critic
CRITIC_PATCH_THRESHOLD = 80  # patches are only accepted below this score
CRITIC_FALLBACK_SCORE = 75
CRITIC_MAX_RETRIES = 1
