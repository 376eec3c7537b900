"""
Novel Analysis Workflow.

Streams a long-form analysis of a plain-text novel, one kind at a time:
1. Choose a strategy: digest (pre-condensed), sampled (style) or chunked
2. Chunked runs split at paragraph/line/sentence boundaries and analyze
   each part in order, one generation call at a time
3. Multi-part outline, theme and summary runs end with a synthesis pass
4. Optional digest precomputation condenses every chunk once so later
   runs can read the digest instead of the full text
"""

from workflows.novel_analysis.chunking import split_into_chunks, split_text
from workflows.novel_analysis.digest import Digest, DigestSession
from workflows.novel_analysis.errors import (
    AnalysisError,
    ConcurrentRunError,
    DocumentTooLongError,
    EmptyInputError,
)
from workflows.novel_analysis.graph import (
    analysis_graph,
    analyze_document,
    run_analyses,
    run_analysis,
)
from workflows.novel_analysis.prompts import CONDENSE_PROMPT, DEFAULT_PROMPTS
from workflows.novel_analysis.sampling import sample_text
from workflows.novel_analysis.state import (
    AnalysisKind,
    AnalysisRun,
    Chunk,
    ChunkStatus,
    Document,
    PromptSpec,
    RunStatus,
    Transcript,
)
from workflows.novel_analysis.templates import (
    PromptDrafts,
    PromptTemplate,
    TemplateRegistry,
    save_draft_as_template,
    update_template_from_draft,
)

__all__ = [
    # Entry points
    "analyze_document",
    "run_analysis",
    "run_analyses",
    "analysis_graph",
    "DigestSession",
    "Digest",
    # Data model
    "AnalysisKind",
    "AnalysisRun",
    "Chunk",
    "ChunkStatus",
    "Document",
    "PromptSpec",
    "RunStatus",
    "Transcript",
    # Prompts
    "CONDENSE_PROMPT",
    "DEFAULT_PROMPTS",
    "PromptDrafts",
    "PromptTemplate",
    "TemplateRegistry",
    "save_draft_as_template",
    "update_template_from_draft",
    # Text utilities
    "sample_text",
    "split_text",
    "split_into_chunks",
    # Errors
    "AnalysisError",
    "ConcurrentRunError",
    "DocumentTooLongError",
    "EmptyInputError",
]
