"""Head/middle/tail sampling for whole-document style analysis.

Style is visible in any representative stretch of prose, so rather than
chunking the whole book, the style pass reads three samples: the opening,
the middle and the ending. Cut points are nudged to sentence or line
boundaries so no sample starts or ends mid-sentence.
"""

import logging
import re

from workflows.novel_analysis.chunking import SENTENCE_TERMINATORS

logger = logging.getLogger(__name__)

# Defaults sized for one style call
SAMPLE_THRESHOLD_CHARS = 120_000
SAMPLE_PART_CHARS = 40_000
SAMPLE_LOOK_AROUND = 2_000

ELISION_MARKER = "\n\n...[{omitted:,} characters omitted]...\n\n"

_SAMPLE_BOUNDARY = re.compile(f"[{re.escape(SENTENCE_TERMINATORS)}\n]")


def _snap_forward(text: str, position: int, look_around: int) -> int:
    """Move position forward to just after the next boundary, if one is near."""
    match = _SAMPLE_BOUNDARY.search(text, position, min(len(text), position + look_around))
    return match.end() if match else position


def _snap_backward(text: str, position: int, look_around: int) -> int:
    """Move position back to just after the previous boundary, if one is near."""
    last = None
    for match in _SAMPLE_BOUNDARY.finditer(text, max(0, position - look_around), position):
        last = match
    return last.end() if last else position


def sample_text(
    text: str,
    threshold: int = SAMPLE_THRESHOLD_CHARS,
    part_size: int = SAMPLE_PART_CHARS,
    look_around: int = SAMPLE_LOOK_AROUND,
) -> str:
    """
    Reduce text to its beginning, middle and end.

    Args:
        text: Full document text
        threshold: Texts of this length or shorter are returned unchanged
        part_size: Nominal size of each of the three samples
        look_around: How far a cut may move to land on a boundary

    Returns:
        The text itself, or the three samples joined by elision markers
        stating how many characters were left out
    """
    length = len(text)
    if length <= threshold:
        return text

    head_end = min(length, _snap_forward(text, part_size, look_around))

    middle_nominal = length // 2 - part_size // 2
    middle_start = max(head_end, _snap_backward(text, middle_nominal, look_around))
    middle_end = max(
        middle_start,
        min(length, _snap_forward(text, middle_nominal + part_size, look_around)),
    )

    tail_start = max(middle_end, _snap_backward(text, length - part_size, look_around))

    sampled = text[:head_end]
    for gap_start, gap_end, piece in (
        (head_end, middle_start, text[middle_start:middle_end]),
        (middle_end, tail_start, text[tail_start:]),
    ):
        omitted = gap_end - gap_start
        if omitted > 0:
            sampled += ELISION_MARKER.format(omitted=omitted)
        sampled += piece

    logger.info(
        f"Sampled {length:,} chars down to {len(sampled):,} "
        f"(head/middle/tail of ~{part_size:,})"
    )
    return sampled
