"""Workout critic & repair loop.

Bounded state machine around an external scoring model:

    REQUEST -> (malformed answer) -> REPAIR -> FALLBACK
    REQUEST -> (network error / timeout) -> REQUEST retry -> FALLBACK

Every call is timeout-bounded, the whole loop makes at most two calls, and
every failure lands in FALLBACK: the pre-critic workout with a default
passing score and a recorded issue. Nothing here ever raises to the caller.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from enum import StrEnum

from loguru import logger
from pydantic import ValidationError
from pydantic_ai import Agent

from app.config.settings import settings
from app.generation.critic.merge import merge_patch
from app.generation.critic.prompts import CRITIC_SYSTEM_PROMPT, build_critic_prompt, build_repair_prompt
from app.generation.critic.schemas import CriticResponse, CritiqueResult, CritiqueSource
from app.generation.errors import CriticUnavailable, SchemaInvalid
from app.generation.invariants import CRITIC_FALLBACK_SCORE, CRITIC_MAX_RETRIES, CRITIC_PATCH_THRESHOLD
from app.generation.schema.request import GenerationRequest
from app.generation.schema.workout import Workout
from app.generation.validate import validate_workout
from app.services.llm.model import get_model

CRITIC_UNAVAILABLE_ISSUE = "Critic system unavailable"

CriticRunner = Callable[[str], Awaitable[str]]
# Validates a merged workout and returns the version to keep; raises on failure
PatchGate = Callable[[Workout], Workout]


class CriticState(StrEnum):
    REQUEST = "request"
    REPAIR = "repair"
    FALLBACK = "fallback"


async def _agent_runner(prompt: str) -> str:
    agent = Agent(
        model=get_model("openai", settings.critic_model),
        system_prompt=CRITIC_SYSTEM_PROMPT,
        output_type=str,
    )
    result = await agent.run(prompt)
    return result.output


def strip_fences(raw: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""
    text = raw.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_critic_response(raw: str) -> CriticResponse:
    """Parse a raw critic answer.

    Raises:
        ValueError: If the answer is not JSON or does not match the format
    """
    try:
        return CriticResponse.model_validate(json.loads(strip_fences(raw)))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ValueError(f"Failed to parse critic response: {e}") from e


def fallback_result(workout: Workout, reason: str) -> CritiqueResult:
    logger.warning("Critic unavailable, keeping pre-critic workout", reason=reason)
    return CritiqueResult(
        workout=workout,
        score=CRITIC_FALLBACK_SCORE,
        issues=[CRITIC_UNAVAILABLE_ISSUE],
        was_patched=False,
        source=CritiqueSource.FALLBACK,
    )


def apply_critique(workout: Workout, response: CriticResponse, gate: PatchGate = validate_workout) -> CritiqueResult:
    """Merge the patch when the score is below threshold and it passes `gate`.

    The default gate only checks structure; the pipeline passes one that also
    checks time fit and style policy for the request.
    """
    issues = list(response.issues)
    if response.score >= CRITIC_PATCH_THRESHOLD or not response.patch:
        return CritiqueResult(workout=workout, score=response.score, issues=issues)

    try:
        patched = gate(merge_patch(workout, response.patch))
    except (ValidationError, SchemaInvalid) as e:
        logger.warning(
            "Critic patch created invalid workout, using original",
            error_type=type(e).__name__,
            code=getattr(e, "code", None),
        )
        issues.append(f"Critic patch rejected: {type(e).__name__}")
        return CritiqueResult(workout=workout, score=response.score, issues=issues)

    logger.info("Critic patch applied", score=response.score, fields=sorted(response.patch))
    return CritiqueResult(workout=patched, score=response.score, issues=issues, was_patched=True)


class CriticLoop:
    """One critique, driven through the bounded state machine."""

    def __init__(
        self,
        runner: CriticRunner,
        timeout_seconds: float,
        max_calls: int = 1 + CRITIC_MAX_RETRIES,
        gate: PatchGate = validate_workout,
    ):
        self.runner = runner
        self.gate = gate
        self.timeout_seconds = timeout_seconds
        self.max_calls = max_calls
        self.calls = 0

    async def _call(self, prompt: str) -> str:
        if self.calls >= self.max_calls:
            raise CriticUnavailable("CRITIC_CALL_BUDGET", ["Critic call budget exhausted"], {"calls": self.calls})
        self.calls += 1
        try:
            return await asyncio.wait_for(self.runner(prompt), timeout=self.timeout_seconds)
        except TimeoutError as e:
            raise CriticUnavailable("CRITIC_TIMEOUT", [f"Critic timed out after {self.timeout_seconds}s"]) from e
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise CriticUnavailable("CRITIC_NETWORK", [f"{type(e).__name__}: {e}"]) from e

    async def run(self, workout: Workout, prompt: str) -> CritiqueResult:
        state = CriticState.REQUEST
        raw = ""
        error = ""
        while True:
            try:
                if state == CriticState.REQUEST:
                    try:
                        raw = await self._call(prompt)
                    except CriticUnavailable as e:
                        if self.calls < self.max_calls:
                            logger.debug("Critic call failed, retrying", code=e.code)
                            continue
                        raise
                elif state == CriticState.REPAIR:
                    raw = await self._call(build_repair_prompt(raw, error))
                else:
                    return fallback_result(workout, error or "unknown")

                try:
                    response = parse_critic_response(raw)
                except ValueError as e:
                    if state == CriticState.REPAIR:
                        raise CriticUnavailable("CRITIC_MALFORMED", [str(e)]) from e
                    error = str(e)
                    state = CriticState.REPAIR
                    continue
                return apply_critique(workout, response, self.gate)
            except CriticUnavailable as e:
                error = e.code
                state = CriticState.FALLBACK


async def critique(
    workout: Workout,
    request: GenerationRequest,
    runner: CriticRunner | None = None,
    timeout_seconds: float | None = None,
    gate: PatchGate = validate_workout,
) -> CritiqueResult:
    """Score a workout and apply the critic's patch when warranted.

    Args:
        workout: Validated pre-critic workout
        request: Request the workout was generated for
        runner: Async callable taking a prompt and returning the raw model
            answer; defaults to a pydantic-ai agent
        timeout_seconds: Per-call timeout; defaults to settings
        gate: Validation a merged patch must pass before it replaces the
            workout

    Returns:
        CritiqueResult. Outages and malformed answers yield the fallback
        result, never an exception.
    """
    loop = CriticLoop(runner or _agent_runner, timeout_seconds or settings.critic_timeout_seconds, gate=gate)
    result = await loop.run(workout, build_critic_prompt(workout, request))
    logger.info(
        "Critic finished",
        score=result.score,
        was_patched=result.was_patched,
        source=str(result.source),
        calls=loop.calls,
    )
    return result
