"""Tests for the novel analysis graph: strategy selection, chunked runs and synthesis."""

from dataclasses import replace

import pytest

from workflows.novel_analysis import (
    AnalysisKind,
    AnalysisRun,
    Document,
    DocumentTooLongError,
    EmptyInputError,
    RunStatus,
    analyze_document,
    run_analyses,
    run_analysis,
)
from workflows.novel_analysis.errors import DOCUMENT_TOO_LONG_MESSAGE, ConcurrentRunError
from workflows.novel_analysis.nodes import choose_strategy, needs_synthesis
from workflows.novel_analysis.prompts import (
    CHUNKED_NOTICE,
    DEFAULT_PROMPTS,
    DIGEST_NOTICE,
    SAMPLING_NOTICE,
    SYNTHESIS_HEADER,
    SYNTHESIS_INSTRUCTIONS,
)
from workflows.shared.llm_utils import GenerationError, GenerationErrorKind, ReasoningBudget

# Three paragraphs of 90 chars: three chunks at a target size of 100
THREE_PARTS = "a" * 88 + "\n\n" + "b" * 88 + "\n\n" + "c" * 88 + "\n\n"
SHORT = "A short tale about a lighthouse keeper.\n"


class TestChooseStrategy:
    """Strategy precedence: digest, then sampled, then chunked."""

    def test_digest_wins_for_eligible_kinds(self):
        for kind in (AnalysisKind.OUTLINE, AnalysisKind.THEME, AnalysisKind.PLOTHOLES):
            assert choose_strategy(kind, "A digest.") == "digest"

    def test_style_and_summary_ignore_digest(self):
        assert choose_strategy(AnalysisKind.STYLE, "A digest.") == "sampled"
        assert choose_strategy(AnalysisKind.SUMMARY, "A digest.") == "chunked"

    def test_blank_digest_is_no_digest(self):
        assert choose_strategy(AnalysisKind.OUTLINE, "  \n") == "chunked"
        assert choose_strategy(AnalysisKind.OUTLINE, "") == "chunked"

    def test_needs_synthesis(self):
        assert needs_synthesis(AnalysisKind.OUTLINE, 3, 500, 1_000)
        assert not needs_synthesis(AnalysisKind.OUTLINE, 1, 500, 1_000)
        assert not needs_synthesis(AnalysisKind.RELATIONSHIPS, 3, 500, 1_000)
        assert not needs_synthesis(AnalysisKind.THEME, 3, 1_000, 1_000)


class TestEmptyInput:
    async def test_empty_document_makes_no_call(self, backend, settings):
        run = AnalysisRun(kind=AnalysisKind.OUTLINE)

        with pytest.raises(EmptyInputError):
            await run_analysis(
                run,
                Document.from_text("blank.txt", "  \n\t"),
                DEFAULT_PROMPTS[AnalysisKind.OUTLINE],
                backend=backend,
                settings=settings,
            )

        assert backend.calls == []
        assert run.status is RunStatus.FAILED
        assert run.content == ""


class TestChunkedRuns:
    async def test_single_chunk_outline_makes_one_call(self, backend, settings):
        run = await analyze_document(
            Document.from_text("short.txt", SHORT),
            AnalysisKind.OUTLINE,
            backend=backend,
            settings=settings,
        )

        assert len(backend.calls) == 1
        assert run.status is RunStatus.COMPLETED
        assert run.content == "[response 1]"
        assert "Currently analyzing" not in backend.calls[0]["message"]
        assert backend.calls[0]["system"] == DEFAULT_PROMPTS[AnalysisKind.OUTLINE].system

    async def test_multi_chunk_outline_ends_with_synthesis(self, backend, settings):
        run = await analyze_document(
            Document.from_text("novel.txt", THREE_PARTS),
            AnalysisKind.OUTLINE,
            backend=backend,
            settings=settings,
        )

        assert len(backend.calls) == 4
        assert all(call["reasoning"] is ReasoningBudget.HIGH for call in backend.calls)
        assert run.content.startswith(CHUNKED_NOTICE.format(total=3))
        for position in (1, 2, 3):
            assert f"### Part {position} of 3" in run.content
            assert f"[response {position}]" in run.content
        assert "(Currently analyzing part 2 of 3.)" in backend.calls[1]["message"]
        assert "b" * 88 in backend.calls[1]["message"]

        synthesis_call = backend.calls[3]
        assert SYNTHESIS_INSTRUCTIONS[AnalysisKind.OUTLINE] in synthesis_call["message"]
        assert "[response 1]" in synthesis_call["message"]
        assert "[response 3]" in synthesis_call["message"]
        assert SYNTHESIS_HEADER not in synthesis_call["message"]
        assert run.content.endswith(SYNTHESIS_HEADER + "[response 4]")

    async def test_calls_are_strictly_sequential(self, backend, settings):
        await analyze_document(
            Document.from_text("novel.txt", THREE_PARTS),
            AnalysisKind.THEME,
            backend=backend,
            settings=settings,
        )

        assert backend.max_in_flight == 1
        assert backend.events == [
            (event, number) for number in (1, 2, 3, 4) for event in ("start", "end")
        ]

    async def test_relationships_get_no_synthesis(self, backend, settings):
        run = await analyze_document(
            Document.from_text("novel.txt", THREE_PARTS),
            AnalysisKind.RELATIONSHIPS,
            backend=backend,
            settings=settings,
        )

        assert len(backend.calls) == 3
        assert SYNTHESIS_HEADER not in run.content

    async def test_summary_synthesis_reuses_base_prompt(self, backend, settings):
        await analyze_document(
            Document.from_text("novel.txt", THREE_PARTS),
            AnalysisKind.SUMMARY,
            backend=backend,
            settings=settings,
        )

        assert len(backend.calls) == 4
        assert backend.calls[3]["message"].startswith(
            DEFAULT_PROMPTS[AnalysisKind.SUMMARY].user + "\n\n--- Text to analyze ---"
        )

    async def test_synthesis_skipped_above_ceiling(self, backend, settings):
        run = await analyze_document(
            Document.from_text("novel.txt", THREE_PARTS),
            AnalysisKind.OUTLINE,
            backend=backend,
            settings=replace(settings, synthesis_max_chars=10),
        )

        assert len(backend.calls) == 3
        assert run.status is RunStatus.COMPLETED
        assert SYNTHESIS_HEADER not in run.content

    async def test_stream_callback_receives_cumulative_text(self, backend, settings):
        updates = []
        run = await analyze_document(
            Document.from_text("novel.txt", THREE_PARTS),
            AnalysisKind.PLOTHOLES,
            backend=backend,
            settings=settings,
            on_stream=updates.append,
        )

        assert updates[-1] == run.content
        for earlier, later in zip(updates, updates[1:]):
            assert later.startswith(earlier)
            assert len(later) > len(earlier)


class TestFailures:
    async def test_failure_mid_run_keeps_partial_output(self, make_backend, settings):
        backend = make_backend(fail_on_call=2, partial="half an ans")
        run = AnalysisRun(kind=AnalysisKind.SETTINGS)

        with pytest.raises(GenerationError):
            await run_analysis(
                run,
                Document.from_text("novel.txt", THREE_PARTS),
                DEFAULT_PROMPTS[AnalysisKind.SETTINGS],
                backend=backend,
                settings=settings,
            )

        assert len(backend.calls) == 2
        assert run.status is RunStatus.FAILED
        assert run.error == "backend unavailable"
        assert "[response 1]" in run.content
        assert run.content.endswith("half an ans")
        assert "### Part 2 of 3" in run.content
        assert "Part 3 of 3" not in run.content

    async def test_length_exceeded_becomes_document_too_long(self, make_backend, settings):
        backend = make_backend(
            fail_on_call=1,
            error=GenerationError(
                "prompt is too long: 250000 tokens > 200000 maximum",
                kind=GenerationErrorKind.LENGTH_EXCEEDED,
            ),
        )
        run = AnalysisRun(kind=AnalysisKind.THEME)

        with pytest.raises(DocumentTooLongError) as excinfo:
            await run_analysis(
                run,
                Document.from_text("huge.txt", SHORT),
                DEFAULT_PROMPTS[AnalysisKind.THEME],
                backend=backend,
                settings=settings,
            )

        assert excinfo.value.message == DOCUMENT_TOO_LONG_MESSAGE
        assert excinfo.value.document_name == "huge.txt"
        assert run.error == DOCUMENT_TOO_LONG_MESSAGE
        assert run.status is RunStatus.FAILED

    async def test_running_run_rejects_second_start(self, backend, settings):
        run = AnalysisRun(kind=AnalysisKind.OUTLINE, status=RunStatus.RUNNING)

        with pytest.raises(ConcurrentRunError):
            await run_analysis(
                run,
                Document.from_text("short.txt", SHORT),
                DEFAULT_PROMPTS[AnalysisKind.OUTLINE],
                backend=backend,
                settings=settings,
            )

        assert backend.calls == []
        assert run.status is RunStatus.RUNNING

    async def test_rerun_replaces_previous_output(self, make_backend, settings):
        backend = make_backend(responses=["first", "second"])
        run = AnalysisRun(kind=AnalysisKind.OUTLINE)
        document = Document.from_text("short.txt", SHORT)
        prompt = DEFAULT_PROMPTS[AnalysisKind.OUTLINE]

        await run_analysis(run, document, prompt, backend=backend, settings=settings)
        await run_analysis(run, document, prompt, backend=backend, settings=settings)

        assert run.content == "second"


class TestDigestAndSampling:
    async def test_digest_replaces_document(self, backend, settings):
        digest = "[Part 1]\nThe keeper finds a letter."
        run = await analyze_document(
            Document.from_text("novel.txt", THREE_PARTS),
            AnalysisKind.THEME,
            backend=backend,
            digest=digest,
            settings=settings,
        )

        assert len(backend.calls) == 1
        assert digest in backend.calls[0]["message"]
        assert "a" * 88 not in backend.calls[0]["message"]
        assert run.content == DIGEST_NOTICE.format(length=len(digest)) + "[response 1]"

    async def test_summary_reads_full_text_despite_digest(self, backend, settings):
        await analyze_document(
            Document.from_text("novel.txt", THREE_PARTS),
            AnalysisKind.SUMMARY,
            backend=backend,
            digest="A digest.",
            settings=settings,
        )

        assert len(backend.calls) == 4
        assert all("A digest." not in call["message"] for call in backend.calls)

    async def test_long_style_run_is_sampled_with_notice(self, backend, settings):
        text = "".join(f"s{i:04d} is a line.\n" for i in range(100))
        run = await analyze_document(
            Document.from_text("long.txt", text),
            AnalysisKind.STYLE,
            backend=backend,
            digest="ignored digest",
            settings=settings,
        )

        assert len(backend.calls) == 1
        assert "characters omitted" in backend.calls[0]["message"]
        assert "ignored digest" not in backend.calls[0]["message"]
        assert run.content == SAMPLING_NOTICE + "[response 1]"

    async def test_short_style_run_has_no_notice(self, backend, settings):
        run = await analyze_document(
            Document.from_text("short.txt", SHORT),
            AnalysisKind.STYLE,
            backend=backend,
            settings=settings,
        )

        assert run.content == "[response 1]"
        assert SHORT in backend.calls[0]["message"]


class TestRunAnalyses:
    async def test_independent_runs(self, backend, settings):
        runs = await run_analyses(
            Document.from_text("novel.txt", THREE_PARTS),
            [AnalysisKind.RELATIONSHIPS, AnalysisKind.STYLE],
            backend=backend,
            settings=settings,
        )

        assert set(runs) == {AnalysisKind.RELATIONSHIPS, AnalysisKind.STYLE}
        assert all(run.status is RunStatus.COMPLETED for run in runs.values())
        assert len(backend.calls) == 4
        assert "### Part 1 of 3" in runs[AnalysisKind.RELATIONSHIPS].content
        assert "### Part" not in runs[AnalysisKind.STYLE].content

    async def test_failed_run_does_not_stop_others(self, backend, settings):
        runs = await run_analyses(
            Document.from_text("blank.txt", ""),
            [AnalysisKind.OUTLINE, AnalysisKind.THEME],
            backend=backend,
            settings=settings,
        )

        assert all(run.status is RunStatus.FAILED for run in runs.values())
        assert backend.calls == []
