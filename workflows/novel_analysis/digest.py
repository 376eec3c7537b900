"""Digest precomputation: split once, condense each chunk, reuse the result.

A DigestSession is driven by two explicit steps:

    session = DigestSession(document)
    session.split()                      # pending chunks
    await session.condense_pending()     # one low-reasoning call per chunk
    digest = session.usable_digest()     # "" until every chunk is completed

The Digest itself is a fold over chunk status events: each transition is
applied as it happens, so the joined text always reflects exactly the
completed chunks.
"""

import asyncio
import logging
from typing import Callable, Optional

from langsmith import traceable

from core.config import AnalysisSettings
from workflows.novel_analysis.chunking import split_into_chunks
from workflows.novel_analysis.errors import ConcurrentRunError, DocumentTooLongError
from workflows.novel_analysis.prompts import CONDENSE_PROMPT, format_user_prompt
from workflows.novel_analysis.state import Chunk, ChunkStatus, Document, PromptSpec
from workflows.shared.llm_utils import (
    AnthropicBackend,
    GenerationBackend,
    GenerationError,
    ReasoningBudget,
    stream_generation,
)

logger = logging.getLogger(__name__)

DIGEST_SEPARATOR = "\n\n---\n\n"
DIGEST_ENTRY = "[Part {position}]\n{summary}"


class Digest:
    """Join of completed chunk summaries, maintained from status events."""

    def __init__(self, chunk_count: int = 0):
        self._chunk_count = chunk_count
        self._completed: dict[int, str] = {}
        self._text: Optional[str] = None

    def reset(self, chunk_count: int) -> None:
        """Start over for a new chunk set."""
        self._chunk_count = chunk_count
        self._completed.clear()
        self._text = None

    def apply(self, chunk: Chunk) -> None:
        """Fold one chunk status transition into the digest."""
        if chunk.status is ChunkStatus.COMPLETED:
            self._completed[chunk.index] = chunk.summary
        else:
            self._completed.pop(chunk.index, None)
        self._text = None

    @property
    def text(self) -> str:
        if self._text is None:
            self._text = DIGEST_SEPARATOR.join(
                DIGEST_ENTRY.format(position=index + 1, summary=self._completed[index])
                for index in sorted(self._completed)
            )
        return self._text

    @property
    def completed_count(self) -> int:
        return len(self._completed)

    @property
    def chunk_count(self) -> int:
        return self._chunk_count

    @property
    def is_complete(self) -> bool:
        return self._chunk_count > 0 and len(self._completed) == self._chunk_count


class DigestSession:
    """Chunk set, per-chunk condensation and the resulting Digest for one document.

    Args:
        document: Document to condense
        prompt: Condensation instructions (default: CONDENSE_PROMPT)
        backend: Generation backend (default: AnthropicBackend from settings)
        settings: Chunk sizes and condensation concurrency
        on_chunk_status: Called with a chunk after every status transition
        on_chunk_stream: Called with (chunk index, cumulative summary) per increment
    """

    def __init__(
        self,
        document: Document,
        prompt: Optional[PromptSpec] = None,
        *,
        backend: Optional[GenerationBackend] = None,
        settings: Optional[AnalysisSettings] = None,
        on_chunk_status: Optional[Callable[[Chunk], None]] = None,
        on_chunk_stream: Optional[Callable[[int, str], None]] = None,
    ):
        self.document = document
        self.prompt = prompt or CONDENSE_PROMPT
        self.settings = settings or AnalysisSettings()
        self.on_chunk_status = on_chunk_status
        self.on_chunk_stream = on_chunk_stream
        self.chunks: list[Chunk] = []
        self.digest = Digest()
        self._backend = backend

    @property
    def backend(self) -> GenerationBackend:
        if self._backend is None:
            self._backend = AnthropicBackend.from_settings(self.settings)
        return self._backend

    def split(self) -> list[Chunk]:
        """Split the document into fresh pending chunks, discarding old ones."""
        if any(chunk.status is ChunkStatus.IN_PROGRESS for chunk in self.chunks):
            raise ConcurrentRunError(
                "Cannot re-split while chunks are being condensed",
                document_name=self.document.name,
            )

        content = self.document.require_content()
        self.chunks = split_into_chunks(
            content,
            target_size=self.settings.chunk_target_chars,
            min_size=self.settings.chunk_min_chars,
            search_window=self.settings.boundary_search_window,
        )
        self.digest.reset(len(self.chunks))
        logger.info(f"Split '{self.document.name}' into {len(self.chunks)} chunks for digest")

        for chunk in self.chunks:
            self._notify(chunk)
        return self.chunks

    def _notify(self, chunk: Chunk) -> None:
        if self.on_chunk_status:
            self.on_chunk_status(chunk)

    def _transition(self, chunk: Chunk, status: ChunkStatus, error: Optional[str] = None) -> None:
        chunk.status = status
        chunk.error = error
        self.digest.apply(chunk)
        self._notify(chunk)

    @traceable(run_type="chain", name="CondenseChunk")
    async def condense_chunk(self, index: int) -> Chunk:
        """
        Condense one chunk with a single low-reasoning call.

        The summary is streamed into chunk.summary. On failure the chunk is
        marked failed, keeps whatever was streamed, and the error is
        re-raised (length-exceeded as DocumentTooLongError).

        Raises:
            IndexError: no chunk at index (call split() first)
            ConcurrentRunError: the chunk is already being condensed
        """
        chunk = self.chunks[index]
        if chunk.status is ChunkStatus.IN_PROGRESS:
            raise ConcurrentRunError(
                f"Chunk {chunk.position} is already being condensed",
                document_name=self.document.name,
            )

        chunk.summary = ""
        self._transition(chunk, ChunkStatus.IN_PROGRESS)

        def on_delta(delta: str) -> None:
            chunk.summary += delta
            if self.on_chunk_stream:
                self.on_chunk_stream(chunk.index, chunk.summary)

        try:
            await stream_generation(
                self.backend,
                system=self.prompt.system,
                instruction=format_user_prompt(self.prompt.user, chunk.position, len(self.chunks)),
                content=chunk.text,
                reasoning=ReasoningBudget.LOW,
                on_delta=on_delta,
            )
        except GenerationError as e:
            if e.is_length_exceeded:
                too_long = DocumentTooLongError(document_name=self.document.name)
                self._transition(chunk, ChunkStatus.FAILED, too_long.message)
                raise too_long from e
            self._transition(chunk, ChunkStatus.FAILED, e.message)
            raise
        except Exception as e:
            self._transition(chunk, ChunkStatus.FAILED, str(e))
            raise

        self._transition(chunk, ChunkStatus.COMPLETED)
        logger.info(
            f"Condensed chunk {chunk.position}/{len(self.chunks)}: "
            f"{len(chunk.text):,} -> {len(chunk.summary):,} chars"
        )
        return chunk

    @traceable(run_type="chain", name="CondensePending")
    async def condense_pending(self) -> list[int]:
        """
        Condense every pending or failed chunk, skipping completed ones.

        Runs strictly in index order, one call at a time, unless
        settings.digest_concurrency > 1, in which case up to that many
        calls run at once. A failed chunk does not stop the batch.

        Returns:
            Indices of chunks that failed in this batch
        """
        targets = [
            chunk.index
            for chunk in self.chunks
            if chunk.status in (ChunkStatus.PENDING, ChunkStatus.FAILED)
        ]
        if not targets:
            return []

        concurrency = self.settings.digest_concurrency
        logger.info(
            f"Condensing {len(targets)}/{len(self.chunks)} chunks "
            f"(concurrency: {concurrency})"
        )

        failed: list[int] = []

        async def condense(index: int) -> None:
            try:
                await self.condense_chunk(index)
            except ConcurrentRunError:
                logger.info(f"Chunk {index + 1} is already in progress, skipping")
            except Exception as e:
                # condense_chunk has already marked the chunk failed
                logger.error(f"Chunk {index + 1} failed: {e}")
                failed.append(index)

        if concurrency <= 1:
            for index in targets:
                await condense(index)
        else:
            semaphore = asyncio.Semaphore(concurrency)

            async def condense_with_limit(index: int) -> None:
                async with semaphore:
                    await condense(index)

            await asyncio.gather(
                *(condense_with_limit(index) for index in targets),
                return_exceptions=True,
            )

        logger.info(
            f"Digest progress: {self.digest.completed_count}/{len(self.chunks)} chunks complete"
        )
        return sorted(failed)

    @property
    def is_complete(self) -> bool:
        return self.digest.is_complete

    def usable_digest(self) -> str:
        """The digest text once every chunk is completed, otherwise ""."""
        return self.digest.text if self.digest.is_complete else ""
