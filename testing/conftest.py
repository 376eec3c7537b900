"""
Pytest configuration for workflow tests.

Provides the per-module logging run plus an in-memory generation backend,
so every workflow test runs offline and deterministically.

Usage:
    pytest testing/
    pytest testing/test_analysis_graph.py -k chunked
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Generator
from typing import Optional

import pytest

from core.config import AnalysisSettings
from core.logging import end_run, start_run
from workflows.shared.llm_utils import GenerationError, GenerationErrorKind, ReasoningBudget


@pytest.fixture(autouse=True)
def logging_run(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """Rotate logs at test module boundaries.

    Each test module gets its own logging run, which triggers log rotation
    on first write to each module's log file.
    """
    # Use test module path as run identifier (e.g., "test-testing-test_chunking")
    test_path = request.node.nodeid.split("::")[0]
    test_name = test_path.replace("/", "-").replace(".py", "")
    start_run(f"test-{test_name}")
    yield
    end_run()


class FakeBackend:
    """Scripted GenerationBackend that records every call.

    Args:
        responses: Response text per call, in call order; calls beyond the
            list answer "[response N]"
        fail_on_call: 1-based call number that raises instead of finishing
        error: Exception raised on that call
        partial: Text streamed by the failing call before it raises
    """

    def __init__(
        self,
        responses: Optional[list[str]] = None,
        fail_on_call: Optional[int] = None,
        error: Optional[Exception] = None,
        partial: str = "",
    ):
        self.responses = list(responses or [])
        self.fail_on_call = fail_on_call
        self.error = error or GenerationError("backend unavailable", kind=GenerationErrorKind.TERMINAL)
        self.partial = partial
        self.calls: list[dict] = []
        self.events: list[tuple[str, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def response_for(self, number: int) -> str:
        if number <= len(self.responses):
            return self.responses[number - 1]
        return f"[response {number}]"

    async def stream(
        self,
        system: str,
        message: str,
        reasoning: ReasoningBudget,
    ) -> AsyncIterator[str]:
        number = len(self.calls) + 1
        self.calls.append({"system": system, "message": message, "reasoning": reasoning})
        self.events.append(("start", number))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if number == self.fail_on_call:
                if self.partial:
                    yield self.partial
                raise self.error

            response = self.response_for(number)
            middle = len(response) // 2
            for piece in (response[:middle], response[middle:]):
                if piece:
                    yield piece
                    await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
            self.events.append(("end", number))


@pytest.fixture
def make_backend() -> Callable[..., FakeBackend]:
    """Factory for FakeBackend instances."""
    return FakeBackend


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> AnalysisSettings:
    """Small sizes so short test strings exercise chunking and sampling."""
    return AnalysisSettings(
        chunk_target_chars=100,
        chunk_min_chars=20,
        boundary_search_window=30,
        sample_threshold_chars=300,
        sample_part_chars=60,
        sample_look_around=10,
        synthesis_max_chars=100_000,
        digest_concurrency=1,
        model_tier="sonnet",
        thinking_budget=1_000,
        max_output_tokens=1_000,
    )


@pytest.fixture(scope="session")
def event_loop_policy():
    """Use default event loop policy for async tests."""
    return asyncio.DefaultEventLoopPolicy()
