"""Stream transcription: state, segment confirmation and the real-time loop."""

from .confirmation import confirm_segments, flush_segments
from .progress import record_progress
from .state import StateStore, TranscriberState
from .transcriber import StreamTranscriber

__all__ = [
    "StreamTranscriber",
    "StateStore",
    "TranscriberState",
    "confirm_segments",
    "flush_segments",
    "record_progress",
]
