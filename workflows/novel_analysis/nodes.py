"""Node implementations for the novel analysis graph.

Every node streams into the run's Transcript, which is passed in through
the graph config (configurable["transcript"]) together with the generation
backend and the AnalysisSettings. Graph state carries only plain values.
"""

import logging
from typing import Any

from langchain_core.runnables import RunnableConfig

from core.config import AnalysisSettings
from workflows.novel_analysis.chunking import split_text
from workflows.novel_analysis.prompts import (
    CHUNK_HEADER,
    CHUNK_SEPARATOR,
    CHUNKED_NOTICE,
    DIGEST_NOTICE,
    SAMPLING_NOTICE,
    SYNTHESIS_HEADER,
    SYNTHESIS_KINDS,
    format_user_prompt,
    synthesis_instruction,
)
from workflows.novel_analysis.sampling import sample_text
from workflows.novel_analysis.state import AnalysisKind, AnalysisState, Strategy, Transcript
from workflows.shared.llm_utils import GenerationBackend, ReasoningBudget, stream_generation

logger = logging.getLogger(__name__)

# Kinds that always read the document itself, never the digest
DIGEST_EXCLUDED_KINDS = frozenset({AnalysisKind.STYLE, AnalysisKind.SUMMARY})


def choose_strategy(kind: AnalysisKind, digest: str) -> Strategy:
    """Pick how a run reads the document.

    1. digest: a non-empty digest exists and the kind may use it
    2. sampled: style analysis
    3. chunked: everything else
    """
    if digest and digest.strip() and kind not in DIGEST_EXCLUDED_KINDS:
        return "digest"
    if kind is AnalysisKind.STYLE:
        return "sampled"
    return "chunked"


def needs_synthesis(
    kind: AnalysisKind,
    chunk_count: int,
    accumulated_chars: int,
    max_chars: int,
) -> bool:
    """Whether a chunked run gets a whole-book synthesis pass."""
    return (
        kind in SYNTHESIS_KINDS
        and chunk_count > 1
        and accumulated_chars < max_chars
    )


def _runtime(config: RunnableConfig) -> tuple[GenerationBackend, Transcript, AnalysisSettings]:
    configurable = config.get("configurable", {})
    return (
        configurable["backend"],
        configurable["transcript"],
        configurable.get("settings") or AnalysisSettings(),
    )


async def select_strategy(state: AnalysisState) -> dict[str, Any]:
    strategy = choose_strategy(state["kind"], state.get("digest", ""))
    logger.info(
        f"Analyzing '{state['document_name']}' ({state['kind'].value}) "
        f"with {strategy} strategy"
    )
    return {"strategy": strategy, "current_status": f"strategy_{strategy}"}


async def digest_pass(state: AnalysisState, config: RunnableConfig) -> dict[str, Any]:
    """One call over the pre-computed digest instead of the document."""
    backend, transcript, _ = _runtime(config)
    digest = state["digest"]

    transcript.append(DIGEST_NOTICE.format(length=len(digest)))
    await stream_generation(
        backend,
        system=state["system_prompt"],
        instruction=state["user_prompt"],
        content=digest,
        reasoning=ReasoningBudget.HIGH,
        on_delta=transcript.append,
    )

    return {
        "calls_made": state["calls_made"] + 1,
        "current_status": "digest_pass_complete",
    }


async def sampled_pass(state: AnalysisState, config: RunnableConfig) -> dict[str, Any]:
    """One call over head/middle/tail samples of the document."""
    backend, transcript, settings = _runtime(config)
    content = state["content"]

    sampled = sample_text(
        content,
        threshold=settings.sample_threshold_chars,
        part_size=settings.sample_part_chars,
        look_around=settings.sample_look_around,
    )
    if len(content) > settings.sample_threshold_chars:
        transcript.append(SAMPLING_NOTICE)

    await stream_generation(
        backend,
        system=state["system_prompt"],
        instruction=format_user_prompt(state["user_prompt"]),
        content=sampled,
        reasoning=ReasoningBudget.HIGH,
        on_delta=transcript.append,
    )

    return {
        "calls_made": state["calls_made"] + 1,
        "current_status": "sampled_pass_complete",
    }


async def chunked_pass(state: AnalysisState, config: RunnableConfig) -> dict[str, Any]:
    """Split the document and analyze each chunk in order, one call at a time.

    Chunk i+1 is not sent until chunk i's stream has finished, so the
    transcript reads in document order and the backend sees one request
    per run at a time.
    """
    backend, transcript, settings = _runtime(config)

    chunks = split_text(
        state["content"],
        target_size=settings.chunk_target_chars,
        min_size=settings.chunk_min_chars,
        search_window=settings.boundary_search_window,
    )
    total = len(chunks)
    calls_made = state["calls_made"]

    if total == 1:
        await stream_generation(
            backend,
            system=state["system_prompt"],
            instruction=format_user_prompt(state["user_prompt"]),
            content=chunks[0],
            reasoning=ReasoningBudget.HIGH,
            on_delta=transcript.append,
        )
        calls_made += 1
    else:
        transcript.append(CHUNKED_NOTICE.format(total=total))

        for position, chunk in enumerate(chunks, 1):
            transcript.append(CHUNK_HEADER.format(position=position, total=total))
            logger.info(f"Analyzing part {position}/{total} ({len(chunk):,} chars)")

            await stream_generation(
                backend,
                system=state["system_prompt"],
                instruction=format_user_prompt(state["user_prompt"], position, total),
                content=chunk,
                reasoning=ReasoningBudget.HIGH,
                on_delta=transcript.append,
            )
            calls_made += 1

            transcript.append(CHUNK_SEPARATOR)

    return {
        "chunk_count": total,
        "accumulated_chars": len(transcript),
        "calls_made": calls_made,
        "current_status": "chunked_pass_complete",
    }


async def synthesis_pass(state: AnalysisState, config: RunnableConfig) -> dict[str, Any]:
    """Second pass over the per-part output for a whole-book conclusion."""
    backend, transcript, _ = _runtime(config)
    accumulated = transcript.text

    logger.info(
        f"Synthesizing {state['chunk_count']} parts ({len(accumulated):,} chars) "
        f"for {state['kind'].value}"
    )

    transcript.append(SYNTHESIS_HEADER)
    await stream_generation(
        backend,
        system=state["system_prompt"],
        instruction=synthesis_instruction(state["kind"], state["user_prompt"]),
        content=accumulated,
        reasoning=ReasoningBudget.HIGH,
        on_delta=transcript.append,
    )

    return {
        "calls_made": state["calls_made"] + 1,
        "current_status": "synthesis_complete",
    }
