"""Command line entry point for streamscribe."""

import argparse
import logging
import signal
import sys
from typing import Optional

from .audio.capture import AudioCapture
from .audio.vad import SileroVoiceDetector, VoiceActivityGate
from .config import Config, load_config
from .stream.state import TranscriberState
from .stream.transcriber import StreamTranscriber
from .transcribe.engine import WhisperEngine, decoding_options_from_config

logger = logging.getLogger(__name__)


def build_transcriber(config: Config, on_state_change=None) -> StreamTranscriber:
    """Wire capture, gate and engine together from config."""
    capture = AudioCapture(config.audio)

    predicate: Optional[SileroVoiceDetector] = None
    if config.vad.use_vad and config.vad.use_silero:
        predicate = SileroVoiceDetector(config.vad, sample_rate=config.audio.sample_rate)
    gate = VoiceActivityGate(config.vad, predicate=predicate, sample_rate=config.audio.sample_rate)

    engine = WhisperEngine(config.whisper)
    engine.load_model()

    return StreamTranscriber(
        capture=capture,
        engine=engine,
        decoding_options=decoding_options_from_config(config.whisper),
        config=config.stream,
        gate=gate,
        on_state_change=on_state_change,
    )


class TranscriptPrinter:
    """Prints newly confirmed text and the current provisional tail."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def __call__(self, previous: TranscriberState, current: TranscriberState) -> None:
        new_segments = current.confirmed_segments[len(previous.confirmed_segments):]
        for segment in new_segments:
            text = segment.text.strip()
            if text:
                self.stream.write(f"{text}\n")

        if current.unconfirmed_segments != previous.unconfirmed_segments and current.pending_text:
            self.stream.write(f"  ... {current.pending_text}\n")
        self.stream.flush()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="streamscribe - live transcription")
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (default: $STREAMSCRIBE_CONFIG or config/settings.yaml)",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Whisper model to load (overrides config)",
    )
    parser.add_argument(
        "--no-vad",
        action="store_true",
        help="Transcribe every buffer without voice activity gating",
    )
    parser.add_argument(
        "--list-audio",
        action="store_true",
        help="List available audio devices",
    )
    args = parser.parse_args(argv)

    if args.list_audio:
        print("Available audio devices:")
        for dev in AudioCapture.list_devices():
            print(f"  [{dev['id']}] {dev['name']} ({dev['channels']}ch)")
        return 0

    config = load_config(args.config)
    if args.model:
        config.whisper.model = args.model
    if args.no_vad:
        config.vad.use_vad = False
    config.setup_logging()

    transcriber = build_transcriber(config, on_state_change=TranscriptPrinter())

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}")
        transcriber.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    transcriber.run_forever()

    final = transcriber.state
    if final.unconfirmed_segments:
        print(final.pending_text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
