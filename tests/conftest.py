"""Pytest configuration and shared fixtures."""

import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest

from streamscribe.config import StreamConfig, VADConfig
from streamscribe.transcribe.models import (
    DecodingOptions,
    ProgressAction,
    Segment,
    TranscriptionResult,
)

SAMPLE_RATE = 16000


# ==================== Path Fixtures ====================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir):
    """Create a temporary config file."""
    config_path = temp_dir / "settings.yaml"
    config_path.write_text("""
audio:
  device: "default"
  sample_rate: 16000
  block_duration_ms: 100

vad:
  use_vad: true
  silence_threshold: 0.25

stream:
  required_segments_for_confirmation: 3
  compression_check_window: 40

whisper:
  model: "tiny.en"
  device: "cpu"
  compute_type: "int8"

logging:
  level: "DEBUG"
  file: null
""")
    return config_path


# ==================== Audio Fixtures ====================

@pytest.fixture
def sample_audio_chunk():
    """Generate 100ms of noisy audio."""
    return np.random.randn(SAMPLE_RATE // 10).astype(np.float32) * 0.1


@pytest.fixture
def silence_audio_chunk():
    """Generate 100ms of silence."""
    return np.zeros(SAMPLE_RATE // 10, dtype=np.float32)


@pytest.fixture
def mock_vad_model():
    """Create a mock Silero VAD model."""
    mock_model = MagicMock()
    mock_model.return_value = MagicMock(item=MagicMock(return_value=0.8))
    mock_model.reset_states = MagicMock()
    return mock_model


class FakeCapture:
    """In-memory stand-in for AudioCapture."""

    def __init__(self, seconds: float = 0.0, permission: bool = True):
        self.sample_rate = SAMPLE_RATE
        self.buffer = np.zeros(int(seconds * SAMPLE_RATE), dtype=np.float32)
        self.relative_energy: list[float] = []
        self.permission = permission
        self.on_energy_update = None
        self.start_calls = 0
        self.stop_calls = 0
        self.purges: list[int] = []

    def add_seconds(self, seconds: float) -> None:
        extra = np.zeros(int(seconds * SAMPLE_RATE), dtype=np.float32)
        self.buffer = np.concatenate([self.buffer, extra])

    @property
    def sample_count(self) -> int:
        return len(self.buffer)

    def samples(self) -> np.ndarray:
        return self.buffer

    def tail(self, n: int) -> np.ndarray:
        return self.buffer[-n:] if n > 0 else self.buffer[:0]

    def purge(self, keep_last: int = 0) -> None:
        self.purges.append(keep_last)
        self.buffer = self.buffer[len(self.buffer) - keep_last:] if keep_last else self.buffer[:0]

    def request_permission(self) -> bool:
        return self.permission

    def start(self, on_energy_update=None) -> None:
        self.start_calls += 1
        self.on_energy_update = on_energy_update

    def stop(self) -> None:
        self.stop_calls += 1
        self.on_energy_update = None


class FakeEngine:
    """Engine returning queued results and replaying progress events."""

    def __init__(self, results=None, progress=None, error=None):
        self.results = list(results or [])
        self.progress = list(progress or [])
        self.error = error
        self.calls: list[tuple[int, DecodingOptions]] = []
        self.actions: list[ProgressAction] = []
        self.on_run = None

    def run(self, samples, options, progress_callback):
        self.calls.append((len(samples), options))
        if self.on_run is not None:
            self.on_run()
        if self.error is not None:
            raise self.error
        for event in self.progress:
            self.actions.append(progress_callback(event))
        if self.results:
            return self.results.pop(0)
        return TranscriptionResult(segments=())


@pytest.fixture
def fake_capture():
    return FakeCapture()


@pytest.fixture
def stream_config():
    """Stream config with no polling delay."""
    return StreamConfig(poll_interval_seconds=0.0)


@pytest.fixture
def vad_config():
    return VADConfig()


@pytest.fixture
def decoding_options():
    return DecodingOptions(language="en")


def make_segments(*spans):
    """Build segments from (start, end, text) tuples."""
    return tuple(Segment(start=s, end=e, text=t) for s, e, t in spans)


@pytest.fixture
def four_segments():
    return make_segments(
        (0.0, 1.0, " one"),
        (1.0, 2.0, " two"),
        (2.0, 3.0, " three"),
        (3.0, 4.0, " four"),
    )
