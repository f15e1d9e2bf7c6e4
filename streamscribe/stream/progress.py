"""Partial-text bookkeeping for progress events from an in-flight pass."""

import logging
from dataclasses import replace

from ..transcribe.models import TranscriptionProgress
from .state import TranscriberState

logger = logging.getLogger(__name__)


def record_progress(state: TranscriberState, progress: TranscriptionProgress) -> TranscriberState:
    """Fold one progress event into the partial text fields.

    A shorter partial text means the decoder restarted. Without a new
    fallback the previous text is archived; a fallback is only logged.
    """
    unconfirmed_text = state.unconfirmed_text

    if len(progress.text) < len(state.current_text):
        if progress.fallbacks == state.current_fallbacks:
            unconfirmed_text = unconfirmed_text + (state.current_text,)
        else:
            logger.info(f"Fallback occurred: {progress.fallbacks}")

    return replace(
        state,
        current_text=progress.text,
        current_fallbacks=progress.fallbacks,
        unconfirmed_text=unconfirmed_text,
    )
