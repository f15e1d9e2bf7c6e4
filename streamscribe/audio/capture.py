"""Audio capture module for continuous microphone input.

The capture keeps every sample since the last purge in a growing buffer and
computes one relative-energy value per block. Both are read by the stream
loop; the sounddevice callback thread only appends.
"""

import logging
import math
import threading
from collections import deque
from typing import Callable, Optional

import numpy as np
import sounddevice as sd

from ..config import AudioConfig
from ..exceptions import CaptureError
from .energy import calculate_energy, calculate_relative_energy

logger = logging.getLogger(__name__)

EnergyCallback = Callable[[float], None]


class AudioCapture:
    """Continuous audio capture from microphone into a growing buffer."""

    def __init__(self, config: AudioConfig):
        self.config = config
        self.sample_rate = config.sample_rate
        self.channels = config.channels
        self.block_samples = int(config.sample_rate * config.block_duration_ms / 1000)

        self._lock = threading.Lock()
        self._chunks: list[np.ndarray] = []
        self._sample_count = 0
        self._avg_energy: deque[float] = deque(maxlen=config.energy_window)
        self._relative_energy: list[float] = []

        self._stream: Optional[sd.InputStream] = None
        self._running = False
        self._on_energy_update: Optional[EnergyCallback] = None

    def _resolve_device(self):
        if self.config.device == "default":
            return None
        try:
            return int(self.config.device)
        except ValueError:
            return self.config.device

    def _audio_callback(
        self,
        indata: np.ndarray,
        frames: int,
        time_info: dict,
        status: sd.CallbackFlags,
    ) -> None:
        """Callback for sounddevice stream."""
        if status:
            logger.warning(f"Audio callback status: {status}")

        if indata.ndim > 1 and indata.shape[1] > 1:
            audio_data = indata.mean(axis=1).astype(np.float32)
        else:
            audio_data = indata.copy().flatten().astype(np.float32)

        self.append(audio_data)

    def append(self, audio_data: np.ndarray) -> None:
        """Append one block of mono samples and publish its relative energy."""
        energy = calculate_energy(audio_data)

        with self._lock:
            self._chunks.append(audio_data)
            self._sample_count += len(audio_data)

            reference = min(self._avg_energy, default=None)
            self._avg_energy.append(energy.avg)
            if reference is None:
                reference = energy.avg
            relative = calculate_relative_energy(energy.avg, reference)
            self._relative_energy.append(relative)

        callback = self._on_energy_update
        if callback is not None:
            try:
                callback(relative)
            except Exception as e:
                logger.error(f"Energy callback error: {e}")

    def request_permission(self) -> bool:
        """Check that an input device is available to record from."""
        try:
            device = sd.query_devices(self._resolve_device(), kind="input")
        except Exception as e:
            logger.error(f"No usable input device: {e}")
            return False
        return device["max_input_channels"] > 0

    def start(self, on_energy_update: Optional[EnergyCallback] = None) -> None:
        """Start audio capture, resetting the buffer."""
        if self._running:
            logger.warning("Audio capture already running")
            return

        logger.info(f"Starting audio capture: {self.sample_rate}Hz, {self.channels}ch")

        with self._lock:
            self._chunks.clear()
            self._sample_count = 0
            self._avg_energy.clear()
            self._relative_energy.clear()
        self._on_energy_update = on_energy_update

        try:
            self._stream = sd.InputStream(
                device=self._resolve_device(),
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype=np.float32,
                blocksize=self.block_samples,
                callback=self._audio_callback,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            self._stream = None
            self._on_energy_update = None
            raise CaptureError(f"Failed to open input stream: {e}") from e

        self._running = True
        logger.info("Audio capture started")

    def stop(self) -> None:
        """Stop audio capture and drop the energy callback."""
        self._on_energy_update = None
        if not self._running:
            return

        logger.info("Stopping audio capture")
        self._running = False

        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None

        logger.info("Audio capture stopped")

    def is_running(self) -> bool:
        """Check if capture is running."""
        return self._running

    @property
    def sample_count(self) -> int:
        with self._lock:
            return self._sample_count

    def samples(self) -> np.ndarray:
        """Return a copy-free view of every buffered sample."""
        with self._lock:
            if not self._chunks:
                return np.zeros(0, dtype=np.float32)
            if len(self._chunks) > 1:
                self._chunks = [np.concatenate(self._chunks)]
            return self._chunks[0]

    def tail(self, n: int) -> np.ndarray:
        """Return the newest ``n`` samples."""
        if n <= 0:
            return np.zeros(0, dtype=np.float32)

        with self._lock:
            parts = []
            remaining = n
            for chunk in reversed(self._chunks):
                if remaining <= 0:
                    break
                parts.append(chunk[-remaining:])
                remaining -= len(parts[-1])
        if not parts:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(parts[::-1])

    @property
    def relative_energy(self) -> list[float]:
        with self._lock:
            return list(self._relative_energy)

    def purge(self, keep_last: int = 0) -> None:
        """Drop all but the newest ``keep_last`` samples from the buffer."""
        with self._lock:
            if self._sample_count <= keep_last:
                return

            if keep_last <= 0:
                self._chunks = []
            else:
                full = np.concatenate(self._chunks)
                self._chunks = [full[-keep_last:].copy()]
            dropped = self._sample_count - max(keep_last, 0)
            self._sample_count = max(keep_last, 0)

            keep_blocks = math.ceil(self._sample_count / self.block_samples) if self.block_samples else 0
            self._relative_energy = self._relative_energy[-keep_blocks:] if keep_blocks else []

        logger.debug(f"Purged {dropped} samples, kept {keep_last}")

    @staticmethod
    def list_devices() -> list[dict]:
        """List available audio input devices."""
        devices = []
        for i, device in enumerate(sd.query_devices()):
            if device["max_input_channels"] > 0:
                devices.append({
                    "id": i,
                    "name": device["name"],
                    "channels": device["max_input_channels"],
                    "sample_rate": device["default_samplerate"],
                })
        return devices
