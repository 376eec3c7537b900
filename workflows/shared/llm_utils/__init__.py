"""LLM utilities for long-document analysis workflows.

This module provides Anthropic Claude model integration with:
- Tiered model selection (Haiku/Sonnet/Opus)
- Extended thinking toggled per call through ReasoningBudget
- Streaming generation behind the GenerationBackend protocol
- Prompt caching of system instructions
- Tagged GenerationError variants classified at the backend boundary
"""

from .models import ModelTier, get_llm
from .caching import CacheTTL, create_cached_messages
from .errors import GenerationError, GenerationErrorKind, classify_exception
from .response_parsing import extract_text_delta
from .streaming import (
    AnthropicBackend,
    GenerationBackend,
    ReasoningBudget,
    build_user_message,
    stream_generation,
)

__all__ = [
    "ModelTier",
    "get_llm",
    "CacheTTL",
    "create_cached_messages",
    "GenerationError",
    "GenerationErrorKind",
    "classify_exception",
    "extract_text_delta",
    "AnthropicBackend",
    "GenerationBackend",
    "ReasoningBudget",
    "build_user_message",
    "stream_generation",
]
