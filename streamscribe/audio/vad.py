"""Voice activity gating for the stream loop.

Two interchangeable strategies decide whether freshly captured audio holds
speech: an injected predicate over the newest audio window (Silero VAD by
default), or a threshold over the capture's relative-energy trace.
"""

import logging
from typing import Callable, Optional, Sequence

import numpy as np
import torch

from ..config import VADConfig
from .energy import level_meter

logger = logging.getLogger(__name__)

VoicePredicate = Callable[[np.ndarray], bool]

# Each relative-energy value covers one 100ms capture block.
ENERGY_BLOCK_SECONDS = 0.1


def is_voice_detected(
    relative_energy: Sequence[float],
    next_buffer_seconds: float,
    silence_threshold: float,
) -> bool:
    """Check the energy of the audio captured since the last pass for voice.

    Only the trace values covering ``next_buffer_seconds`` are considered.
    The newest second of those is left out unless fewer than two seconds are
    available, so trailing silence after speech does not hide it.
    """
    count = int(next_buffer_seconds / ENERGY_BLOCK_SECONDS)
    if count <= 0:
        return False

    recent = list(relative_energy)[-count:]
    to_check = max(10, len(recent) - 10)
    return any(value > silence_threshold for value in recent[:to_check])


class SileroVoiceDetector:
    """Voice predicate using the Silero VAD model."""

    FRAME_SAMPLES = 512  # Silero's frame size at 16kHz

    def __init__(self, config: VADConfig, sample_rate: int = 16000):
        self.config = config
        self.sample_rate = sample_rate
        self.threshold = config.vad_threshold

        self._model = None
        self._load_model()

    def _load_model(self) -> None:
        """Load the Silero VAD model."""
        logger.info("Loading Silero VAD model...")
        try:
            self._model, utils = torch.hub.load(
                repo_or_dir="snakers4/silero-vad",
                model="silero_vad",
                force_reload=False,
                onnx=False,
            )
            self._model.eval()
            logger.info("Silero VAD model loaded")
        except Exception as e:
            logger.error(f"Failed to load Silero VAD: {e}")
            raise

    def speech_probability(self, window: np.ndarray) -> Optional[float]:
        """Highest speech probability over the frames of a window."""
        if self._model is None:
            return None
        if window.size == 0:
            return 0.0

        # Windows are not contiguous between calls
        self._model.reset_states()

        remainder = len(window) % self.FRAME_SAMPLES
        if remainder:
            window = np.pad(window, (0, self.FRAME_SAMPLES - remainder))

        best = 0.0
        with torch.no_grad():
            for offset in range(0, len(window), self.FRAME_SAMPLES):
                frame = torch.from_numpy(window[offset:offset + self.FRAME_SAMPLES]).float()
                best = max(best, self._model(frame, self.sample_rate).item())
        return best

    def __call__(self, window: np.ndarray) -> bool:
        probability = self.speech_probability(window)
        return probability is not None and probability >= self.threshold


class VoiceActivityGate:
    """Per-cycle voice decision over newly captured audio."""

    def __init__(
        self,
        config: VADConfig,
        predicate: Optional[VoicePredicate] = None,
        sample_rate: int = 16000,
    ):
        self.config = config
        self.silence_threshold = config.silence_threshold
        self.predicate = predicate
        self.window_samples = int(sample_rate * config.vad_window_seconds)

    @property
    def enabled(self) -> bool:
        return self.config.use_vad

    def voice_detected(
        self,
        window: np.ndarray,
        relative_energy: Sequence[float],
        next_buffer_seconds: float,
    ) -> bool:
        """Decide whether the audio since the last pass contains speech.

        Args:
            window: The newest ``window_samples`` of audio, used by the
                predicate strategy.
            relative_energy: The capture's relative-energy trace, used by
                the energy strategy.
            next_buffer_seconds: Seconds of audio captured since the last pass.
        """
        if self.predicate is not None:
            detected = bool(self.predicate(window))
        else:
            detected = is_voice_detected(
                relative_energy,
                next_buffer_seconds,
                self.silence_threshold,
            )

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Gate: voice={detected}, level {level_meter(window)}")
        return detected
