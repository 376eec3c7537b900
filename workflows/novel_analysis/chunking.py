"""Boundary-aware splitting of long documents into model-sized chunks."""

import logging
import re
from typing import Optional

from workflows.novel_analysis.state import Chunk

logger = logging.getLogger(__name__)

# Window searched for a natural boundary on either side of the hard cutoff
BOUNDARY_SEARCH_WINDOW = 5000

# Sentence terminators, full-width and ASCII
SENTENCE_TERMINATORS = "。！？!?.…；;"

_PARAGRAPH_BREAK = re.compile(r"\n[ \t\r　]*\n")
_LINE_BREAK = re.compile(r"\n")
_SENTENCE_END = re.compile(f"[{re.escape(SENTENCE_TERMINATORS)}]")
_WHITESPACE = re.compile(r"\s")

# Highest priority first
BOUNDARY_PATTERNS = (
    ("paragraph", _PARAGRAPH_BREAK),
    ("line", _LINE_BREAK),
    ("sentence", _SENTENCE_END),
    ("whitespace", _WHITESPACE),
)


def _last_boundary(text: str, start: int, end: int, pattern: re.Pattern) -> Optional[int]:
    """Position just after the last match lying entirely within text[start:end]."""
    last = None
    for match in pattern.finditer(text, start, end):
        last = match.end()
    return last


def _first_boundary(text: str, start: int, end: int, pattern: re.Pattern) -> Optional[int]:
    """Position just after the first match lying entirely within text[start:end]."""
    match = pattern.search(text, start, end)
    return match.end() if match else None


def find_split_position(
    text: str,
    cursor: int,
    target_size: int,
    min_size: int,
    search_window: int = BOUNDARY_SEARCH_WINDOW,
) -> int:
    """Choose where the chunk starting at cursor should end.

    Searches backward from the hard cutoff (cursor + target_size), no further
    back than max(cursor + min_size, cutoff - search_window), for a paragraph
    break, then a line break, then a sentence terminator, then whitespace.
    If that window holds no boundary at all, searches forward from the
    cutoff across at most search_window characters in the same priority
    order. Falls back to the cutoff itself.

    Returns:
        Split position; the chunk is text[cursor:position]
    """
    cutoff = cursor + target_size
    window_start = max(cursor + min_size, cutoff - search_window)

    for name, pattern in BOUNDARY_PATTERNS:
        position = _last_boundary(text, window_start, cutoff, pattern)
        if position is not None and position > cursor:
            return position

    forward_end = min(len(text), cutoff + search_window)
    for name, pattern in BOUNDARY_PATTERNS:
        position = _first_boundary(text, cutoff, forward_end, pattern)
        if position is not None:
            logger.debug(
                f"No boundary before cutoff {cutoff}; extended to {name} at {position}"
            )
            return position

    return cutoff


def split_text(
    text: str,
    target_size: int,
    min_size: int,
    search_window: int = BOUNDARY_SEARCH_WINDOW,
) -> list[str]:
    """
    Split text into an ordered, gap-free partition of chunks.

    Chunks are no longer than target_size unless no boundary exists before
    the cutoff, in which case a chunk may extend by up to search_window to
    reach one. "".join(result) == text always holds.

    Args:
        text: Full document text
        target_size: Target chunk size T
        min_size: Minimum chunk size M (0 < M <= T)
        search_window: Boundary search window W

    Returns:
        List of chunk strings (empty for empty text)
    """
    if min_size <= 0:
        raise ValueError("min_size must be positive")
    if target_size < min_size:
        raise ValueError(f"target_size ({target_size}) must be >= min_size ({min_size})")
    if search_window <= 0:
        raise ValueError("search_window must be positive")

    chunks: list[str] = []
    cursor = 0
    length = len(text)

    while cursor < length:
        if length - cursor <= target_size:
            chunks.append(text[cursor:])
            break

        split_pos = find_split_position(text, cursor, target_size, min_size, search_window)
        chunks.append(text[cursor:split_pos])
        cursor = split_pos

    if len(chunks) > 1:
        logger.info(
            f"Split {length:,} chars into {len(chunks)} chunks "
            f"(target {target_size:,}, min {min_size:,})"
        )
    return chunks


def split_into_chunks(
    text: str,
    target_size: int,
    min_size: int,
    search_window: int = BOUNDARY_SEARCH_WINDOW,
) -> list[Chunk]:
    """Split text and wrap each slice as a pending Chunk."""
    return [
        Chunk(index=i, text=piece)
        for i, piece in enumerate(split_text(text, target_size, min_size, search_window))
    ]
