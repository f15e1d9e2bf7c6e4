"""Configuration management for streamscribe."""

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class AudioConfig:
    """Microphone capture configuration."""
    device: str = "default"
    sample_rate: int = 16000
    channels: int = 1
    block_duration_ms: int = 100  # one relative-energy value per block
    energy_window: int = 20  # blocks used as the quiet reference


@dataclass
class VADConfig:
    """Voice activity gate configuration."""
    use_vad: bool = True
    silence_threshold: float = 0.3
    use_silero: bool = False
    vad_threshold: float = 0.5
    vad_window_seconds: float = 0.1


@dataclass
class StreamConfig:
    """Control loop and segment confirmation configuration."""
    required_segments_for_confirmation: int = 2
    compression_check_window: int = 60
    min_buffer_seconds: float = 1.0
    flush_silence_seconds: float = 1.5
    poll_interval_seconds: float = 0.1
    placeholder_text: str = "Waiting for speech..."


@dataclass
class WhisperConfig:
    """faster-whisper model and decoding configuration."""
    model: str = "small.en"
    device: str = "auto"
    compute_type: str = "default"
    language: Optional[str] = "en"
    beam_size: int = 5
    compression_ratio_threshold: Optional[float] = 2.4
    log_prob_threshold: Optional[float] = -1.0
    no_speech_threshold: Optional[float] = 0.6
    condition_on_previous_text: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _section(section_cls, data: dict, name: str):
    """Build one config section, rejecting keys the section does not know."""
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in '{name}': {', '.join(unknown)}")
    return section_cls(**data)


@dataclass
class Config:
    """Main configuration container."""
    audio: AudioConfig = field(default_factory=AudioConfig)
    vad: VADConfig = field(default_factory=VADConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    whisper: WhisperConfig = field(default_factory=WhisperConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}, using defaults")
            return cls()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config root in {path} must be a mapping")

        return cls(
            audio=_section(AudioConfig, data.get("audio"), "audio"),
            vad=_section(VADConfig, data.get("vad"), "vad"),
            stream=_section(StreamConfig, data.get("stream"), "stream"),
            whisper=_section(WhisperConfig, data.get("whisper"), "whisper"),
            logging=_section(LoggingConfig, data.get("logging"), "logging"),
        )

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        log_level = getattr(logging, self.logging.level.upper(), logging.INFO)

        handlers = [logging.StreamHandler()]

        if self.logging.file:
            log_path = Path(self.logging.file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path))

        logging.basicConfig(
            level=log_level,
            format=self.logging.format,
            handlers=handlers,
        )


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from file or environment."""
    if path is None:
        path = os.environ.get("STREAMSCRIBE_CONFIG", "config/settings.yaml")
    return Config.from_yaml(path)
