"""streamscribe - live microphone transcription with confirmed and provisional segments."""

__version__ = "0.1.0"
