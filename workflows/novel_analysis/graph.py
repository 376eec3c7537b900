"""
Novel analysis workflow graph.

One graph invocation is one AnalysisRun:
1. select_strategy picks digest, sampled or chunked reading
2. the matching pass streams its output into the run's Transcript
3. multi-part outline/theme/summary runs get a synthesis pass

Generation calls within a run are strictly sequential. Independent runs
(different kinds) may be awaited concurrently with run_analyses().
"""

import asyncio
import logging
from typing import Callable, Iterable, Optional

from langgraph.graph import END, START, StateGraph
from langsmith import traceable

from core.config import AnalysisSettings
from workflows.novel_analysis.errors import ConcurrentRunError, DocumentTooLongError
from workflows.novel_analysis.nodes import (
    chunked_pass,
    digest_pass,
    needs_synthesis,
    sampled_pass,
    select_strategy,
    synthesis_pass,
)
from workflows.novel_analysis.prompts import DEFAULT_PROMPTS, SYNTHESIS_KINDS
from workflows.novel_analysis.state import (
    AnalysisKind,
    AnalysisRun,
    AnalysisState,
    Document,
    PromptSpec,
    RunStatus,
    Transcript,
)
from workflows.shared.llm_utils import AnthropicBackend, GenerationBackend, GenerationError

logger = logging.getLogger(__name__)


def route_by_strategy(state: AnalysisState) -> str:
    return state["strategy"]


def route_after_chunked(state: AnalysisState) -> str:
    """Decide whether the chunked run gets a synthesis pass."""
    if needs_synthesis(
        kind=state["kind"],
        chunk_count=state["chunk_count"],
        accumulated_chars=state["accumulated_chars"],
        max_chars=state["synthesis_max_chars"],
    ):
        return "synthesize"
    if state["kind"] in SYNTHESIS_KINDS and state["chunk_count"] > 1:
        logger.info(
            f"Skipping synthesis: {state['accumulated_chars']:,} chars accumulated "
            f"(ceiling {state['synthesis_max_chars']:,})"
        )
    return "done"


def create_analysis_graph():
    """
    Create the analysis graph.

    Workflow:
    START -> select_strategy -> digest_pass | sampled_pass | chunked_pass
    chunked_pass -> synthesis_pass | END
    digest_pass, sampled_pass, synthesis_pass -> END
    """
    builder = StateGraph(AnalysisState)

    builder.add_node("select_strategy", select_strategy)
    builder.add_node("digest_pass", digest_pass)
    builder.add_node("sampled_pass", sampled_pass)
    builder.add_node("chunked_pass", chunked_pass)
    builder.add_node("synthesis_pass", synthesis_pass)

    builder.add_edge(START, "select_strategy")
    builder.add_conditional_edges(
        "select_strategy",
        route_by_strategy,
        {
            "digest": "digest_pass",
            "sampled": "sampled_pass",
            "chunked": "chunked_pass",
        },
    )
    builder.add_conditional_edges(
        "chunked_pass",
        route_after_chunked,
        {
            "synthesize": "synthesis_pass",
            "done": END,
        },
    )
    builder.add_edge("digest_pass", END)
    builder.add_edge("sampled_pass", END)
    builder.add_edge("synthesis_pass", END)

    return builder.compile()


analysis_graph = create_analysis_graph()


@traceable(run_type="chain", name="NovelAnalysis")
async def run_analysis(
    run: AnalysisRun,
    document: Document,
    prompt: PromptSpec,
    *,
    backend: Optional[GenerationBackend] = None,
    digest: str = "",
    settings: Optional[AnalysisSettings] = None,
) -> AnalysisRun:
    """
    Execute one analysis run, streaming into run.transcript.

    The transcript is cleared at the start. On failure the run is marked
    failed, its partial content is kept, and the error is re-raised. A
    length-exceeded generation failure is re-raised as DocumentTooLongError.

    Args:
        run: Run to execute; must not already be running
        document: Document to analyze
        prompt: System and user instructions for run.kind
        backend: Generation backend (default: AnthropicBackend from settings)
        digest: Pre-computed digest; only used when complete and applicable
        settings: Chunking/sampling/synthesis settings

    Returns:
        The same run, completed

    Raises:
        ConcurrentRunError: run is already in progress
        EmptyInputError: document has no content (no call is made)
        DocumentTooLongError: a call exceeded the model's input limit
        GenerationError: any other generation failure
    """
    if run.status is RunStatus.RUNNING:
        raise ConcurrentRunError(
            f"A {run.kind.value} run is already in progress",
            document_name=document.name,
        )

    settings = settings or AnalysisSettings()
    run.transcript.reset()
    run.error = None
    run.status = RunStatus.RUNNING

    try:
        content = document.require_content()
        backend = backend or AnthropicBackend.from_settings(settings)

        initial_state = {
            "document_name": document.name,
            "content": content,
            "kind": run.kind,
            "system_prompt": prompt.system,
            "user_prompt": prompt.user,
            "digest": digest or "",
            "strategy": None,
            "chunk_count": 0,
            "accumulated_chars": 0,
            "synthesis_max_chars": settings.synthesis_max_chars,
            "calls_made": 0,
            "current_status": "starting",
        }
        result = await analysis_graph.ainvoke(
            initial_state,
            config={
                "configurable": {
                    "backend": backend,
                    "transcript": run.transcript,
                    "settings": settings,
                }
            },
        )
    except GenerationError as e:
        run.status = RunStatus.FAILED
        if e.is_length_exceeded:
            too_long = DocumentTooLongError(document_name=document.name)
            run.error = too_long.message
            logger.error(f"{run.kind.value} analysis of '{document.name}' exceeded the input limit: {e}")
            raise too_long from e
        run.error = e.message
        logger.error(f"{run.kind.value} analysis of '{document.name}' failed: {e}")
        raise
    except Exception as e:
        run.status = RunStatus.FAILED
        run.error = str(e)
        logger.error(f"{run.kind.value} analysis of '{document.name}' failed: {e}")
        raise

    run.status = RunStatus.COMPLETED
    logger.info(
        f"{run.kind.value} analysis complete: {result['calls_made']} calls, "
        f"{len(run.transcript):,} chars"
    )
    return run


async def analyze_document(
    document: Document,
    kind: AnalysisKind,
    prompt: Optional[PromptSpec] = None,
    *,
    backend: Optional[GenerationBackend] = None,
    digest: str = "",
    settings: Optional[AnalysisSettings] = None,
    on_stream: Optional[Callable[[str], None]] = None,
) -> AnalysisRun:
    """
    Analyze a document and return the completed run.

    Args:
        document: Document to analyze
        kind: Analysis to perform
        prompt: Instructions (default: DEFAULT_PROMPTS[kind])
        backend: Generation backend (default: AnthropicBackend)
        digest: Pre-computed digest, see DigestSession.usable_digest()
        settings: Chunking/sampling/synthesis settings
        on_stream: Called with the cumulative output after every increment

    Returns:
        Completed AnalysisRun

    Example:
        run = await analyze_document(
            Document.from_path("novel.txt"),
            AnalysisKind.OUTLINE,
            on_stream=lambda text: print(len(text)),
        )
        print(run.content)
    """
    run = AnalysisRun(kind=kind, transcript=Transcript(sink=on_stream))
    return await run_analysis(
        run,
        document,
        prompt or DEFAULT_PROMPTS[kind],
        backend=backend,
        digest=digest,
        settings=settings,
    )


async def run_analyses(
    document: Document,
    kinds: Iterable[AnalysisKind],
    prompts: Optional[dict[AnalysisKind, PromptSpec]] = None,
    *,
    backend: Optional[GenerationBackend] = None,
    digest: str = "",
    settings: Optional[AnalysisSettings] = None,
    concurrency: int = 3,
) -> dict[AnalysisKind, AnalysisRun]:
    """
    Run several independent analyses of one document concurrently.

    Each kind owns its own run and transcript; calls inside one run stay
    sequential. Failures do not stop the other runs: check each run's
    status and error.

    Args:
        document: Document to analyze
        kinds: Analyses to perform
        prompts: Per-kind instructions (missing kinds use DEFAULT_PROMPTS)
        backend: Shared generation backend
        digest: Pre-computed digest for kinds that may use it
        settings: Chunking/sampling/synthesis settings
        concurrency: Max runs in flight at once

    Returns:
        Mapping of kind to its (completed or failed) run
    """
    prompts = prompts or {}
    settings = settings or AnalysisSettings()
    backend = backend or AnthropicBackend.from_settings(settings)
    semaphore = asyncio.Semaphore(concurrency)
    runs = {kind: AnalysisRun(kind=kind) for kind in dict.fromkeys(kinds)}

    async def run_with_limit(run: AnalysisRun) -> None:
        async with semaphore:
            await run_analysis(
                run,
                document,
                prompts.get(run.kind, DEFAULT_PROMPTS[run.kind]),
                backend=backend,
                digest=digest,
                settings=settings,
            )

    logger.info(f"Starting {len(runs)} analyses of '{document.name}' (concurrency: {concurrency})")
    results = await asyncio.gather(
        *(run_with_limit(run) for run in runs.values()),
        return_exceptions=True,
    )

    for run, result in zip(runs.values(), results):
        if isinstance(result, Exception):
            logger.error(f"{run.kind.value} analysis failed: {result}")

    succeeded = sum(1 for run in runs.values() if run.status is RunStatus.COMPLETED)
    logger.info(f"Analyses complete: {succeeded}/{len(runs)} succeeded")
    return runs
