"""Segment confirmation across overlapping passes.

Each pass re-decodes the buffer from the end of the last confirmed segment,
so consecutive passes overlap. The trailing segments of a pass may still be
revised once more audio arrives; everything before them is promoted to the
confirmed transcript, which only ever grows.
"""

import logging
from dataclasses import replace
from typing import Sequence

from ..transcribe.models import Segment
from .state import TranscriberState

logger = logging.getLogger(__name__)


def contains_run(haystack: Sequence[Segment], needle: Sequence[Segment]) -> bool:
    """True if ``needle`` occurs in ``haystack`` as a contiguous run."""
    n = len(needle)
    if n == 0:
        return True
    needle = tuple(needle)
    return any(
        tuple(haystack[i:i + n]) == needle
        for i in range(len(haystack) - n + 1)
    )


def confirm_segments(
    state: TranscriberState,
    segments: Sequence[Segment],
    required_segments_for_confirmation: int = 2,
) -> TranscriberState:
    """Fold the output of a completed pass into the transcript.

    Clears the partial text of the pass, promotes all but the trailing
    ``required_segments_for_confirmation`` segments and keeps the trailing
    ones as the new unconfirmed tail.
    """
    segments = tuple(segments)
    state = replace(state, current_text="", unconfirmed_text=())

    if len(segments) <= required_segments_for_confirmation:
        return replace(state, unconfirmed_segments=segments)

    split = len(segments) - required_segments_for_confirmation
    confirmable, remaining = segments[:split], segments[split:]

    last = confirmable[-1]
    if last.end > state.last_confirmed_segment_end_seconds:
        confirmed = state.confirmed_segments
        if contains_run(confirmed, confirmable):
            logger.debug(f"Skipping {len(confirmable)} already confirmed segments")
        else:
            confirmed = confirmed + confirmable
            for segment in confirmable:
                logger.debug(f"Confirmed [{segment.start:.2f}-{segment.end:.2f}]: {segment.text.strip()}")
        state = replace(
            state,
            last_confirmed_segment_end_seconds=last.end,
            confirmed_segments=confirmed,
        )

    return replace(state, unconfirmed_segments=remaining)


def flush_segments(state: TranscriberState, segments: Sequence[Segment]) -> TranscriberState:
    """Promote a silence flush into the transcript and reset the pass window.

    The fresh read of the whole buffer wins; if it came back empty, the last
    unconfirmed segments are kept instead.
    """
    promoted = tuple(segments) or state.unconfirmed_segments
    logger.debug(f"Flushing {len(promoted)} segments")
    return replace(
        state,
        confirmed_segments=state.confirmed_segments + promoted,
        last_confirmed_segment_end_seconds=0.0,
        last_buffer_size=0,
        unconfirmed_segments=(),
    )
