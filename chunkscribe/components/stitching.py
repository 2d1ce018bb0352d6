from __future__ import annotations

import logging
from typing import Sequence


logger = logging.getLogger(__name__)

SEARCH_WINDOW_CHARS = 1000
MIN_OVERLAP_CHARS = 11


def find_overlap_length(prior: str, following: str, *, search_window: int = SEARCH_WINDOW_CHARS) -> int:
    """
    Length of the longest suffix of prior's last `search_window` chars that is also
    a prefix of following. Matches shorter than MIN_OVERLAP_CHARS count as no overlap.
    """
    window = min(len(prior), search_window)
    prior_tail = prior[len(prior) - window:]
    for length in range(min(len(following), window), MIN_OVERLAP_CHARS - 1, -1):
        if prior_tail.endswith(following[:length]):
            return length
    return 0


def stitch(prior: str, following: str) -> str:
    overlap = find_overlap_length(prior, following)
    if overlap:
        logger.debug("stitching with overlap of %d chars: %r", overlap, following[:overlap][:100])
    else:
        logger.debug("no significant overlap found, concatenating")
    return prior + following[overlap:]


def stitch_all(transcripts: Sequence[str]) -> str:
    """Fold stitch() left-to-right over per-segment transcripts in index order."""
    if not transcripts:
        return ""
    result = transcripts[0]
    for following in transcripts[1:]:
        result = stitch(result, following)
    logger.debug("stitched %d transcript(s) into %d chars", len(transcripts), len(result))
    return result


__all__ = ["MIN_OVERLAP_CHARS", "SEARCH_WINDOW_CHARS", "find_overlap_length", "stitch", "stitch_all"]
