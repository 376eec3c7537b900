"""Shared utilities for long-document analysis workflows."""

from .llm_utils import (
    AnthropicBackend,
    GenerationBackend,
    GenerationError,
    GenerationErrorKind,
    ModelTier,
    ReasoningBudget,
    get_llm,
    stream_generation,
)

__all__ = [
    "AnthropicBackend",
    "GenerationBackend",
    "GenerationError",
    "GenerationErrorKind",
    "ModelTier",
    "ReasoningBudget",
    "get_llm",
    "stream_generation",
]
