"""Early-stop heuristic for live decoding.

Degenerate decodes (repetition loops) compress unusually well, and
low-confidence decodes carry a low average log-probability. Either one is
reason to abandon the current attempt instead of spending more time on it.
"""

import zlib
from typing import Optional, Sequence

import numpy as np

from .models import DecodingOptions, ProgressAction, TranscriptionProgress


def compression_ratio(tokens: Sequence[int]) -> float:
    """Ratio of raw to zlib-compressed size of a token id sequence."""
    if len(tokens) == 0:
        return 0.0
    data = np.asarray(tokens, dtype="<i4").tobytes()
    return len(data) / len(zlib.compress(data))


def should_stop_early(
    progress: TranscriptionProgress,
    options: DecodingOptions,
    compression_check_window: int = 60,
) -> ProgressAction:
    """Decide whether a decode in progress should be abandoned."""
    tokens = progress.tokens
    threshold: Optional[float] = options.compression_ratio_threshold

    if len(tokens) > compression_check_window and threshold is not None:
        window = tokens[-compression_check_window:]
        if compression_ratio(window) > threshold:
            return ProgressAction.STOP_LOW_CONFIDENCE

    if progress.avg_logprob is not None and options.log_prob_threshold is not None:
        if progress.avg_logprob < options.log_prob_threshold:
            return ProgressAction.STOP_LOW_CONFIDENCE

    return ProgressAction.CONTINUE
