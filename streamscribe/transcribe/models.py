"""Data types shared between the transcription engine and the stream loop."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Segment:
    """A transcribed span of audio.

    Segments compare by (start, end, text) only, which is what duplicate
    detection across overlapping passes relies on.
    """
    start: float
    end: float
    text: str
    tokens: tuple[int, ...] = field(default=(), compare=False)
    avg_logprob: Optional[float] = field(default=None, compare=False)
    temperature: Optional[float] = field(default=None, compare=False)


@dataclass
class TranscriptionTimings:
    """Aggregate statistics for one pass."""
    audio_seconds: float = 0.0
    pipeline_seconds: float = 0.0
    decoded_tokens: int = 0
    total_decoding_fallbacks: int = 0
    early_stopped: bool = False

    @property
    def tokens_per_second(self) -> float:
        if self.pipeline_seconds <= 0:
            return 0.0
        return self.decoded_tokens / self.pipeline_seconds

    @property
    def real_time_factor(self) -> float:
        if self.audio_seconds <= 0:
            return 0.0
        return self.pipeline_seconds / self.audio_seconds


@dataclass(frozen=True)
class TranscriptionResult:
    """Ordered segments produced by one pass plus its timings."""
    segments: tuple[Segment, ...]
    timings: TranscriptionTimings = field(default_factory=TranscriptionTimings)

    @property
    def text(self) -> str:
        return " ".join(s.text.strip() for s in self.segments if s.text.strip())


@dataclass(frozen=True)
class TranscriptionProgress:
    """Snapshot emitted by the engine after each decoding step."""
    text: str
    tokens: tuple[int, ...]
    fallbacks: int = 0
    avg_logprob: Optional[float] = None
    timings: Optional[TranscriptionTimings] = None


class ProgressAction(Enum):
    """What the engine should do after reporting progress."""
    CONTINUE = "continue"
    STOP_LOW_CONFIDENCE = "stop_low_confidence"


@dataclass(frozen=True)
class DecodingOptions:
    """Decoding configuration handed to the engine for one pass."""
    language: Optional[str] = None
    task: str = "transcribe"
    beam_size: int = 5
    temperatures: tuple[float, ...] = (0.0, 0.2, 0.4, 0.6, 0.8, 1.0)
    compression_ratio_threshold: Optional[float] = 2.4
    log_prob_threshold: Optional[float] = -1.0
    no_speech_threshold: Optional[float] = 0.6
    condition_on_previous_text: bool = True
    clip_timestamps: tuple[float, ...] = (0.0,)
