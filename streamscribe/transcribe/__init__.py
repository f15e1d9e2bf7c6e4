"""Transcription engine contract, faster-whisper engine and early-stop heuristic."""

from .base import TranscriptionEngine
from .early_stop import compression_ratio, should_stop_early
from .models import (
    DecodingOptions,
    ProgressAction,
    Segment,
    TranscriptionProgress,
    TranscriptionResult,
    TranscriptionTimings,
)

__all__ = [
    "TranscriptionEngine",
    "compression_ratio",
    "should_stop_early",
    "DecodingOptions",
    "ProgressAction",
    "Segment",
    "TranscriptionProgress",
    "TranscriptionResult",
    "TranscriptionTimings",
]
