"""Base interface for transcription engines."""

from abc import ABC, abstractmethod
from typing import Callable

import numpy as np

from .models import DecodingOptions, ProgressAction, TranscriptionProgress, TranscriptionResult

ProgressCallback = Callable[[TranscriptionProgress], ProgressAction]


class TranscriptionEngine(ABC):
    """Interface for speech-to-text engines driven by the stream loop."""

    @abstractmethod
    def run(
        self,
        samples: np.ndarray,
        options: DecodingOptions,
        progress_callback: ProgressCallback,
    ) -> TranscriptionResult:
        """Transcribe a buffer of 16kHz mono float32 samples.

        Args:
            samples: The whole capture buffer.
            options: Decoding options; ``clip_timestamps`` marks where
                decoding should begin.
            progress_callback: Called after each decoding step. Returning
                ``ProgressAction.STOP_LOW_CONFIDENCE`` ends the pass early;
                whatever was decoded up to that point is still returned.

        Returns:
            The segments decoded so far and the pass timings.

        Raises:
            TranscriptionError: If the engine fails.
        """
