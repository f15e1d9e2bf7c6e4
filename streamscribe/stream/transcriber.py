"""Real-time stream transcription loop.

A single worker thread owns the transcriber state. It polls the capture
buffer, gates on voice activity, runs passes through the engine and folds
their output into confirmed and unconfirmed segments. Other threads only
talk to it through the inbox queue.
"""

import logging
import queue
import threading
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Optional

import numpy as np

from ..config import StreamConfig
from ..transcribe.base import TranscriptionEngine
from ..transcribe.early_stop import should_stop_early
from ..transcribe.models import (
    DecodingOptions,
    ProgressAction,
    TranscriptionProgress,
    TranscriptionResult,
)
from .confirmation import confirm_segments, flush_segments
from .progress import record_progress
from .state import StateObserver, StateStore, TranscriberState

if TYPE_CHECKING:
    from ..audio.capture import AudioCapture
    from ..audio.vad import VoiceActivityGate

logger = logging.getLogger(__name__)

_ENERGY = "energy"
_STOP = "stop"


class StreamTranscriber:
    """Turns a live capture buffer into a growing, stable transcript."""

    def __init__(
        self,
        capture: "AudioCapture",
        engine: TranscriptionEngine,
        decoding_options: DecodingOptions,
        config: Optional[StreamConfig] = None,
        gate: Optional["VoiceActivityGate"] = None,
        on_state_change: Optional[StateObserver] = None,
    ):
        self.capture = capture
        self.engine = engine
        self.decoding_options = decoding_options
        self.config = config or StreamConfig()
        self.gate = gate
        self.sample_rate = capture.sample_rate

        self._store = StateStore(on_state_change)
        self._inbox: queue.Queue[tuple[str, object]] = queue.Queue()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> TranscriberState:
        return self._store.state

    def is_running(self) -> bool:
        """Check if the worker thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    # ---- lifecycle ----

    def start(self) -> bool:
        """Start capturing and transcribing on the worker thread.

        Returns:
            True if the worker was started, False if it was already running
            or the input device is unavailable.
        """
        if self.state.is_recording or self.is_running():
            logger.warning("Stream transcription already running")
            return False

        if not self.capture.request_permission():
            logger.error("Microphone access was not granted")
            return False

        self._stop_event.clear()
        self._drain_inbox()
        self._store.update(is_recording=True)

        try:
            self.capture.start(on_energy_update=self._post_energy)
        except Exception:
            self._store.update(is_recording=False)
            raise

        self._thread = threading.Thread(
            target=self._realtime_loop,
            name="stream-transcriber",
            daemon=True,
        )
        self._thread.start()
        logger.info("Realtime transcription has started")
        return True

    def stop(self) -> None:
        """Stop recording. An in-flight pass finishes but is not committed."""
        self._stop_event.set()
        self.capture.stop()

        worker = self._thread
        if worker is not None and worker.is_alive() and worker is not threading.current_thread():
            self._inbox.put((_STOP, None))
        else:
            self._store.update(is_recording=False)

        logger.info("Realtime transcription stop requested")

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the worker thread to exit."""
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def run_forever(self) -> None:
        """Start and block until the loop ends."""
        if not self.start():
            return
        try:
            while self.is_running():
                self.join(timeout=0.5)
        finally:
            if self.state.is_recording:
                self.stop()
            self.join(timeout=5.0)

    # ---- single-writer domain ----

    def _post_energy(self, relative_energy: float) -> None:
        """Energy hand-off from the capture thread. Only a wake-up is queued."""
        self._inbox.put((_ENERGY, relative_energy))

    def _handle(self, kind: str) -> bool:
        """Apply one inbox message. Returns True if the energy trace changed."""
        if kind == _STOP:
            self._store.update(is_recording=False)
        return kind == _ENERGY

    def _refresh_energy(self) -> None:
        self._store.update(buffer_energy=tuple(self.capture.relative_energy))

    def _drain_inbox(self, energy_changed: bool = False) -> None:
        """Apply queued messages, reading the energy trace at most once."""
        while True:
            try:
                kind, _payload = self._inbox.get_nowait()
            except queue.Empty:
                break
            energy_changed = self._handle(kind) or energy_changed
        if energy_changed:
            self._refresh_energy()

    def _sleep(self, seconds: float) -> None:
        """Wait on the inbox, applying hand-offs until the deadline."""
        deadline = time.monotonic() + seconds
        while not self._stop_event.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            try:
                kind, _payload = self._inbox.get(timeout=remaining)
            except queue.Empty:
                return
            self._drain_inbox(energy_changed=self._handle(kind))

    def _realtime_loop(self) -> None:
        """Run cycles until stopped or a pass fails."""
        try:
            while not self._stop_event.is_set():
                self._drain_inbox()
                if not self.state.is_recording:
                    break
                self._transcribe_current_buffer()
        except Exception as e:
            logger.error(f"Stream transcription failed: {e}", exc_info=True)
            self._stop_event.set()
            self.capture.stop()
        finally:
            self._drain_inbox()
            if self.state.is_recording:
                self._store.update(is_recording=False)
            logger.info("Realtime transcription has ended")

    # ---- one cycle ----

    def _transcribe_current_buffer(self) -> None:
        state = self.state
        buffer_size = self.capture.sample_count
        next_buffer_seconds = (buffer_size - state.last_buffer_size) / self.sample_rate

        if next_buffer_seconds <= self.config.min_buffer_seconds:
            self._wait_for_speech()
            return

        if self.gate is not None and self.gate.enabled:
            window = self.capture.tail(self.gate.window_samples)
            if not self.gate.voice_detected(window, state.buffer_energy, next_buffer_seconds):
                logger.debug(f"No voice detected in {next_buffer_seconds:.2f}s, skipping transcribe")
                if (
                    next_buffer_seconds > self.config.flush_silence_seconds
                    and state.unconfirmed_segments
                ):
                    self._flush()
                self._wait_for_speech()
                return

        self._store.update(last_buffer_size=buffer_size)
        result = self._run_pass(self.capture.samples()[:buffer_size])
        for segment in result.segments:
            logger.debug(f"Transcribed [{segment.start:.2f}-{segment.end:.2f}]: {segment.text.strip()}")

        if self._stop_event.is_set():
            logger.info("Discarding pass that finished after stop")
            return

        self._store.set_state(confirm_segments(
            self.state,
            result.segments,
            self.config.required_segments_for_confirmation,
        ))

    def _flush(self) -> None:
        """Promote pending segments after silence and purge the buffer."""
        result = self._run_pass(self.capture.samples())
        if self._stop_event.is_set():
            logger.info("Discarding flush that finished after stop")
            return

        self._store.set_state(flush_segments(self.state, result.segments))
        self.capture.purge(keep_last=0)
        logger.info(f"Silence flush: {len(self.state.confirmed_segments)} confirmed segments")

    def _wait_for_speech(self) -> None:
        if not self.state.current_text:
            self._store.update(current_text=self.config.placeholder_text)
        self._sleep(self.config.poll_interval_seconds)

    def _run_pass(self, samples: np.ndarray) -> TranscriptionResult:
        """Transcribe the buffer from the end of the last confirmed segment."""
        options = replace(
            self.decoding_options,
            clip_timestamps=(self.state.last_confirmed_segment_end_seconds,),
        )

        def on_progress(progress: TranscriptionProgress) -> ProgressAction:
            self._store.set_state(record_progress(self.state, progress))
            return should_stop_early(progress, options, self.config.compression_check_window)

        return self.engine.run(samples, options, on_progress)
