"""Streaming generation client.

One call = one system instruction + one combined user message (instruction
followed by delimited content), yielding text increments as they arrive.
Nothing here retries: a failed call raises a GenerationError and the caller
decides what happens next.
"""

import logging
from enum import Enum
from typing import AsyncIterator, Callable, Optional, Protocol

from .caching import CacheTTL, create_cached_messages
from .errors import classify_exception
from .models import ModelTier, get_llm
from .response_parsing import extract_text_delta

logger = logging.getLogger(__name__)

CONTENT_DELIMITER = "--- Text to analyze ---"


class ReasoningBudget(Enum):
    """How much internal deliberation a call gets.

    LOW: Extended thinking disabled; favours literal detail extraction
    HIGH: Extended thinking enabled; used for analysis and synthesis
    """
    LOW = "low"
    HIGH = "high"


class GenerationBackend(Protocol):
    """Anything that can stream a single model response."""

    def stream(
        self,
        system: str,
        message: str,
        reasoning: ReasoningBudget,
    ) -> AsyncIterator[str]:
        """Yield text increments; their concatenation is the full response."""
        ...


def build_user_message(instruction: str, content: str) -> str:
    """Combine an instruction and the text it applies to into one message."""
    return f"{instruction}\n\n{CONTENT_DELIMITER}\n\n{content}"


class AnthropicBackend:
    """GenerationBackend backed by ChatAnthropic streaming.

    Args:
        tier: Model tier used for every call
        thinking_budget: Extended thinking tokens for ReasoningBudget.HIGH
        max_output_tokens: Visible output tokens per call
        cache_ttl: Prompt cache lifetime for the system instruction
    """

    provider = "anthropic"

    def __init__(
        self,
        tier: ModelTier = ModelTier.SONNET,
        thinking_budget: int = 8000,
        max_output_tokens: int = 8192,
        cache_ttl: CacheTTL = "5m",
    ):
        self.tier = tier
        self.thinking_budget = thinking_budget
        self.max_output_tokens = max_output_tokens
        self.cache_ttl = cache_ttl
        self._llms: dict[ReasoningBudget, object] = {}

    @classmethod
    def from_settings(cls, settings) -> "AnthropicBackend":
        """Build a backend from an AnalysisSettings instance."""
        return cls(
            tier=ModelTier.from_name(settings.model_tier),
            thinking_budget=settings.thinking_budget,
            max_output_tokens=settings.max_output_tokens,
        )

    def _get_llm(self, reasoning: ReasoningBudget):
        if reasoning not in self._llms:
            if reasoning is ReasoningBudget.HIGH and self.thinking_budget > 0:
                self._llms[reasoning] = get_llm(
                    tier=self.tier,
                    thinking_budget=self.thinking_budget,
                    max_tokens=self.thinking_budget + self.max_output_tokens,
                )
            else:
                self._llms[reasoning] = get_llm(
                    tier=self.tier,
                    max_tokens=self.max_output_tokens,
                )
        return self._llms[reasoning]

    async def stream(
        self,
        system: str,
        message: str,
        reasoning: ReasoningBudget,
    ) -> AsyncIterator[str]:
        # Configuration errors (missing key, bad budget) surface unchanged
        llm = self._get_llm(reasoning)
        messages = create_cached_messages(
            system_content=system,
            user_content=message,
            cache_ttl=self.cache_ttl,
        )

        logger.debug(
            f"Streaming {self.tier.name} call ({reasoning.value} reasoning, "
            f"{len(message):,} chars)"
        )
        try:
            async for chunk in llm.astream(messages):
                text = extract_text_delta(chunk)
                if text:
                    yield text
        except Exception as e:
            error = classify_exception(e, provider=self.provider)
            logger.warning(f"Generation failed ({error.kind.value}): {error.message}")
            raise error from e


async def stream_generation(
    backend: GenerationBackend,
    system: str,
    instruction: str,
    content: str,
    reasoning: ReasoningBudget = ReasoningBudget.HIGH,
    on_delta: Optional[Callable[[str], None]] = None,
) -> str:
    """Run one generation call to completion.

    Args:
        backend: Backend to call
        system: System instruction (passed through untouched)
        instruction: User instruction, placed before the content
        content: Text the instruction applies to
        reasoning: Reasoning budget for this call
        on_delta: Called with each text increment as it arrives

    Returns:
        The full response text
    """
    message = build_user_message(instruction, content)
    parts: list[str] = []
    async for delta in backend.stream(system, message, reasoning):
        parts.append(delta)
        if on_delta:
            on_delta(delta)
    return "".join(parts)
