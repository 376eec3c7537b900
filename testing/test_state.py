"""Tests for the document, transcript and settings data model."""

import pytest

from core.config import AnalysisSettings
from workflows.novel_analysis import Document, EmptyInputError, Transcript


class TestDocument:
    def test_from_path_reads_utf8(self, tmp_path):
        path = tmp_path / "小说.txt"
        path.write_text("第一章。雨一直下。\n", encoding="utf-8")

        document = Document.from_path(path)

        assert document.name == "小说.txt"
        assert document.content == "第一章。雨一直下。\n"
        assert document.size == len("第一章。雨一直下。\n".encode("utf-8"))

    def test_require_content_rejects_whitespace(self):
        with pytest.raises(EmptyInputError) as excinfo:
            Document.from_text("blank.txt", " \n\t ").require_content()
        assert excinfo.value.document_name == "blank.txt"

    def test_require_content_returns_text(self):
        assert Document.from_text("a.txt", "Call me Ishmael.").require_content() == "Call me Ishmael."


class TestTranscript:
    def test_sink_receives_running_total(self):
        seen = []
        transcript = Transcript(sink=seen.append)

        transcript.append("Part one. ")
        transcript.append("")
        transcript.append("Part two.")

        assert seen == ["Part one. ", "Part one. Part two."]
        assert transcript.text == "Part one. Part two."
        assert len(transcript) == len("Part one. Part two.")

    def test_reset(self):
        transcript = Transcript()
        transcript.append("old output")
        transcript.reset()

        assert transcript.text == ""
        assert len(transcript) == 0


class TestAnalysisSettings:
    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LONGREAD_CHUNK_TARGET_CHARS", "60_000")
        monkeypatch.setenv("LONGREAD_DIGEST_CONCURRENCY", "4")

        settings = AnalysisSettings()

        assert settings.chunk_target_chars == 60_000
        assert settings.digest_concurrency == 4
        assert settings.chunk_min_chars == 20_000

    def test_invalid_integer(self, monkeypatch):
        monkeypatch.setenv("LONGREAD_BOUNDARY_WINDOW", "wide")
        with pytest.raises(ValueError, match="LONGREAD_BOUNDARY_WINDOW"):
            AnalysisSettings()

    def test_target_below_minimum(self):
        with pytest.raises(ValueError):
            AnalysisSettings(chunk_target_chars=100, chunk_min_chars=200)

    def test_concurrency_at_least_one(self):
        with pytest.raises(ValueError):
            AnalysisSettings(digest_concurrency=0)
