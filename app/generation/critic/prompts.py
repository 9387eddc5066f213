from app.generation.invariants import CRITIC_PATCH_THRESHOLD
from app.generation.schema.request import GenerationRequest
from app.generation.schema.workout import Workout

CRITIC_SYSTEM_PROMPT = "You are a precise workout critic. Respond only with valid JSON in the exact format specified."

CRITIC_RUBRIC = f"""Score this workout draft 0-100 on these weighted criteria:

1) Safety & constraints (injuries/equipment) - 40%
   - Are movements safe for the user's constraints?
   - Does equipment match what's available?
   - Are load prescriptions reasonable?

2) Recovery fit (yesterday + health snapshot) - 20%
   - Does intensity match health indicators?
   - Respects yesterday's session type?

3) Goal & category alignment - 20%
   - Movements match the declared category?
   - Logical block progression?

4) Time & intensity precision - 10%
   - Block durations sum within 10% of target?
   - Proper rest intervals?

5) Variety & movement balance - 10%
   - Appropriate movement diversity?
   - Avoids excessive repetition?

RESPONSE FORMAT (JSON only):
{{
  "score": number (0-100),
  "issues": string[],
  "patch": object | null
}}

PATCH RULES:
- Only when score < {CRITIC_PATCH_THRESHOLD}
- Minimal changes addressing the highest-impact issues
- Allowed top-level fields: blocks, intensity, name, description, category
- Blocks must keep the exact block schema shown in the draft
- Focus on safety and recovery fit first"""

REPAIR_PROMPT = """Your previous answer was not valid JSON for the required format.

Error: {error}

Previous answer:
{raw}

Return ONLY the corrected JSON object with keys "score", "issues" and "patch"."""


def _context_lines(request: GenerationRequest) -> list[str]:
    lines = [
        f"- Target: {request.style}, {request.duration_minutes}min, {request.intensity}/10 intensity",
        f"- Equipment: {', '.join(request.equipment) or 'none'}",
        f"- Constraints: {', '.join(request.constraints) or 'none'}",
    ]
    health = request.health
    if health is not None:
        stressed = ", STRESSED" if health.stress_flag else ""
        lines.append(f"- Health: HRV {health.hrv}, RHR {health.resting_hr}, Sleep {health.sleep_score}{stressed}")
    yesterday = request.yesterday
    if yesterday is not None:
        lines.append(f"- Yesterday: {yesterday.category} ({yesterday.intensity}/10, {yesterday.type})")
    return lines


def build_critic_prompt(workout: Workout, request: GenerationRequest) -> str:
    draft = workout.model_dump_json(indent=2, exclude={"meta", "acceptance_flags"})
    return "\n".join(
        [
            "You are AXLE QA coach.",
            CRITIC_RUBRIC,
            "",
            "WORKOUT TO REVIEW:",
            draft,
            "",
            "CONTEXT:",
            *_context_lines(request),
            f"- Keep duration within 10% of {request.duration_minutes}min and the category {request.style}",
        ]
    )


def build_repair_prompt(raw: str, error: str) -> str:
    return REPAIR_PROMPT.format(error=error, raw=raw)
