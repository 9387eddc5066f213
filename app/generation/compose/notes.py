"""Coaching notes for composed blocks.

Deterministic notes keyed by structure kind are always available. When
NOTES_MODE=llm the pipeline may ask a bounded LLM for one short note per
block; the LLM writes text only and any failure keeps the deterministic notes.
"""

import asyncio
import re
from collections.abc import Awaitable, Callable

from loguru import logger
from pydantic import BaseModel
from pydantic_ai import Agent

from app.config.settings import settings
from app.generation.schema.structure import StructureKind
from app.generation.schema.workout import BlockKind, Workout, WorkoutBlock
from app.services.llm.model import get_model

NOTES_BY_STRUCTURE: dict[StructureKind, str] = {
    StructureKind.EMOM: "Hit consistent splits; leave a few seconds of rest each minute.",
    StructureKind.EVERY: "Quality first; steady pacing per interval, no misses.",
    StructureKind.AMRAP: "Sustainable pace; break before failure.",
    StructureKind.FOR_TIME: "Fast but controlled transitions; avoid redline early.",
    StructureKind.CHIPPER: "Fast but controlled transitions; avoid redline early.",
    StructureKind.INTERVALS: "Hold the target effort on every work bout; recover fully on the easy portion.",
    StructureKind.STEADY: "Conversational pace; stay in control the whole way.",
}

WARMUP_NOTE = "For quality: tempo, positions, and ROM."
COOLDOWN_NOTE = "Down-regulate breathing; restore ROM."
DEFAULT_NOTE = "Move well; align intent with block goal."

NOTES_SYSTEM_PROMPT = """You are a strength and conditioning coach writing block notes.
You may ONLY write one short coaching cue per block.
You may NOT introduce numbers, durations, loads, reps, or new exercises.
You may NOT change the workout.

Return exactly one note per block, in block order."""

NotesRunner = Callable[[str], Awaitable[list[str]]]


def coaching_note(block: WorkoutBlock) -> str:
    if block.kind == BlockKind.WARMUP:
        return WARMUP_NOTE
    if block.kind == BlockKind.COOLDOWN:
        return COOLDOWN_NOTE
    return NOTES_BY_STRUCTURE.get(block.structure.kind, DEFAULT_NOTE)


class BlockNotesOutput(BaseModel):
    """LLM output schema for block notes."""

    notes: list[str]


def build_notes_prompt(workout: Workout) -> str:
    lines = [f"Workout: {workout.title} ({workout.style}, intensity {workout.intensity}/10)", ""]
    for index, block in enumerate(workout.blocks, start=1):
        names = ", ".join(item.exercise_name for item in block.items)
        lines.append(f"{index}. [{block.kind}] {block.title}: {names}")
    lines.append("")
    lines.append(f"Write {len(workout.blocks)} notes, one per block.")
    return "\n".join(lines)


async def _agent_runner(prompt: str) -> list[str]:
    agent = Agent(
        model=get_model("openai", settings.notes_model),
        system_prompt=NOTES_SYSTEM_PROMPT,
        output_type=BlockNotesOutput,
    )
    result = await agent.run(prompt)
    return result.output.notes


def _contains_numbers(text: str) -> bool:
    return bool(re.search(r"\b\d+\.?\d*\b", text))


async def apply_llm_notes(
    workout: Workout,
    runner: NotesRunner | None = None,
    timeout_seconds: float | None = None,
) -> Workout:
    """Replace block notes with LLM-written cues.

    Args:
        workout: Fully validated workout
        runner: Async callable returning one note per block; defaults to a
            pydantic-ai agent
        timeout_seconds: Call timeout; defaults to the critic timeout setting

    Returns:
        Workout with new notes, or the input unchanged on any failure
        (timeouts included)
    """
    prompt = build_notes_prompt(workout)
    try:
        notes = await asyncio.wait_for(
            (runner or _agent_runner)(prompt),
            timeout=timeout_seconds or settings.critic_timeout_seconds,
        )
    except Exception as e:
        logger.warning(
            "LLM notes failed, keeping deterministic notes",
            error_type=type(e).__name__,
            error=str(e),
        )
        return workout

    cleaned = [n.strip() for n in notes]
    if len(cleaned) != len(workout.blocks) or any(not n or _contains_numbers(n) for n in cleaned):
        logger.warning(
            "LLM notes rejected, keeping deterministic notes",
            expected=len(workout.blocks),
            received=len(cleaned),
        )
        return workout

    blocks = [block.model_copy(update={"notes": note}) for block, note in zip(workout.blocks, cleaned, strict=True)]
    logger.debug("LLM notes applied", blocks=len(blocks))
    return workout.model_copy(update={"blocks": blocks})
