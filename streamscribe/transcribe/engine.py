"""Speech-to-text engine backed by faster-whisper."""

import logging
import time
from dataclasses import replace
from typing import Optional

import numpy as np
from faster_whisper import WhisperModel

from ..config import WhisperConfig
from ..exceptions import TranscriptionError
from .base import ProgressCallback, TranscriptionEngine
from .models import (
    DecodingOptions,
    ProgressAction,
    Segment,
    TranscriptionProgress,
    TranscriptionResult,
    TranscriptionTimings,
)

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000


def _retries(temperature: Optional[float], temperatures: tuple[float, ...]) -> int:
    """Number of fallback temperatures tried before ``temperature`` succeeded."""
    if temperature is None:
        return 0
    return sum(1 for t in temperatures if t < temperature)


def decoding_options_from_config(config: WhisperConfig) -> DecodingOptions:
    """Build the base decoding options for a stream from config."""
    return DecodingOptions(
        language=config.language,
        beam_size=config.beam_size,
        compression_ratio_threshold=config.compression_ratio_threshold,
        log_prob_threshold=config.log_prob_threshold,
        no_speech_threshold=config.no_speech_threshold,
        condition_on_previous_text=config.condition_on_previous_text,
    )


class WhisperEngine(TranscriptionEngine):
    """Runs passes over the capture buffer with a faster-whisper model."""

    def __init__(self, config: WhisperConfig):
        self.config = config
        self.model_name = config.model
        self.device = config.device
        self.compute_type = config.compute_type

        self._model: Optional[WhisperModel] = None

    def load_model(self) -> None:
        """Load the Whisper model."""
        logger.info(f"Loading Whisper model: {self.model_name} on {self.device}")
        try:
            self._model = WhisperModel(
                self.model_name,
                device=self.device,
                compute_type=self.compute_type,
            )
            logger.info("Whisper model loaded")
        except Exception as e:
            logger.error(f"Failed to load Whisper model: {e}")
            raise

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def run(
        self,
        samples: np.ndarray,
        options: DecodingOptions,
        progress_callback: ProgressCallback,
    ) -> TranscriptionResult:
        if self._model is None:
            self.load_model()

        timings = TranscriptionTimings(audio_seconds=len(samples) / SAMPLE_RATE)
        started = time.perf_counter()

        try:
            segments_iter, _info = self._model.transcribe(
                samples.astype(np.float32, copy=False),
                language=options.language,
                task=options.task,
                beam_size=options.beam_size,
                temperature=list(options.temperatures),
                compression_ratio_threshold=options.compression_ratio_threshold,
                log_prob_threshold=options.log_prob_threshold,
                no_speech_threshold=options.no_speech_threshold,
                condition_on_previous_text=options.condition_on_previous_text,
                clip_timestamps=list(options.clip_timestamps),
                vad_filter=False,  # gating happens in the stream loop
            )
            segments = self._decode(segments_iter, options, timings, started, progress_callback)
        except TranscriptionError:
            raise
        except Exception as e:
            raise TranscriptionError(f"Transcription failed: {e}") from e

        timings.pipeline_seconds = time.perf_counter() - started
        logger.debug(
            f"Pass: {len(segments)} segments, {timings.decoded_tokens} tokens, "
            f"rtf {timings.real_time_factor:.2f}"
        )
        return TranscriptionResult(segments=tuple(segments), timings=timings)

    def _decode(
        self,
        segments_iter,
        options: DecodingOptions,
        timings: TranscriptionTimings,
        started: float,
        progress_callback: ProgressCallback,
    ) -> list[Segment]:
        """Consume decoded segments, reporting progress after each one."""
        segments: list[Segment] = []
        tokens: list[int] = []
        window_seek = None

        try:
            for seg in segments_iter:
                segment = Segment(
                    start=float(seg.start),
                    end=float(seg.end),
                    text=seg.text,
                    tokens=tuple(seg.tokens),
                    avg_logprob=seg.avg_logprob,
                    temperature=seg.temperature,
                )
                segments.append(segment)
                tokens.extend(segment.tokens)

                # Segments of one 30 s window share its seek and temperature
                if seg.seek != window_seek:
                    window_seek = seg.seek
                    timings.total_decoding_fallbacks += _retries(segment.temperature, options.temperatures)
                timings.decoded_tokens = len(tokens)
                timings.pipeline_seconds = time.perf_counter() - started

                progress = TranscriptionProgress(
                    text="".join(s.text for s in segments).strip(),
                    tokens=tuple(tokens),
                    fallbacks=timings.total_decoding_fallbacks,
                    avg_logprob=segment.avg_logprob,
                    timings=replace(timings),
                )
                if progress_callback(progress) is ProgressAction.STOP_LOW_CONFIDENCE:
                    logger.debug(f"Early stop after {len(tokens)} tokens")
                    timings.early_stopped = True
                    break
        finally:
            close = getattr(segments_iter, "close", None)
            if close is not None:
                close()

        return segments
