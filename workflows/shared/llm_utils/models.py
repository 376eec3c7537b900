"""Model tier definitions and LLM initialization."""

import os
from enum import Enum
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

from core.config import configure_langsmith

configure_langsmith()

from langchain_anthropic import ChatAnthropic


class ModelTier(Enum):
    """Model tiers for different task complexities.

    HAIKU: Cheap, fast condensation of short chunks
    SONNET: Default for analysis passes and synthesis
    OPUS: Deepest analysis (supports extended thinking)
    """
    HAIKU = "claude-haiku-4-5-20251001"
    SONNET = "claude-sonnet-4-5-20250929"
    OPUS = "claude-opus-4-5-20251101"

    @classmethod
    def from_name(cls, name: str) -> "ModelTier":
        """Resolve a tier from its name ("sonnet") or model id."""
        normalized = name.strip()
        for tier in cls:
            if normalized.upper() == tier.name or normalized == tier.value:
                return tier
        valid = ", ".join(t.name.lower() for t in cls)
        raise ValueError(f"Unknown model tier {name!r} (expected one of: {valid})")


def get_llm(
    tier: ModelTier = ModelTier.SONNET,
    thinking_budget: Optional[int] = None,
    max_tokens: int = 4096,
) -> ChatAnthropic:
    """
    Get a configured Anthropic Claude LLM instance.

    Args:
        tier: Model tier selection (HAIKU, SONNET, OPUS)
        thinking_budget: Token budget for extended thinking (enables if set).
                        The API minimum is 1024.
        max_tokens: Maximum output tokens (must be > thinking_budget if set)

    Returns:
        ChatAnthropic instance configured for the specified tier

    Example:
        # Literal condensation, no extended thinking
        llm = get_llm(ModelTier.SONNET)

        # Synthesis with extended thinking
        llm = get_llm(ModelTier.SONNET, thinking_budget=8000, max_tokens=16000)
    """
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise ValueError("ANTHROPIC_API_KEY not set")

    kwargs: dict[str, Any] = {
        "model": tier.value,
        "api_key": api_key,
        "max_tokens": max_tokens,
        "streaming": True,
    }

    if thinking_budget is not None:
        if thinking_budget >= max_tokens:
            raise ValueError(
                f"thinking_budget ({thinking_budget}) must be less than max_tokens ({max_tokens})"
            )
        kwargs["thinking"] = {
            "type": "enabled",
            "budget_tokens": thinking_budget,
        }

    return ChatAnthropic(**kwargs)
