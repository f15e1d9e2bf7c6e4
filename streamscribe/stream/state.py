"""Transcriber state and change notification."""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from ..transcribe.models import Segment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriberState:
    """Snapshot of the stream transcriber.

    Snapshots are immutable; every change produces a new one.
    """
    is_recording: bool = False
    current_fallbacks: int = 0
    last_buffer_size: int = 0
    last_confirmed_segment_end_seconds: float = 0.0
    buffer_energy: tuple[float, ...] = ()
    current_text: str = ""
    confirmed_segments: tuple[Segment, ...] = ()
    unconfirmed_segments: tuple[Segment, ...] = ()
    unconfirmed_text: tuple[str, ...] = ()

    @property
    def confirmed_text(self) -> str:
        return " ".join(s.text.strip() for s in self.confirmed_segments if s.text.strip())

    @property
    def pending_text(self) -> str:
        return " ".join(s.text.strip() for s in self.unconfirmed_segments if s.text.strip())


StateObserver = Callable[[TranscriberState, TranscriberState], None]


class StateStore:
    """Holds the current state and notifies an observer of every change."""

    def __init__(self, observer: Optional[StateObserver] = None):
        self._state = TranscriberState()
        self._observer = observer

    @property
    def state(self) -> TranscriberState:
        return self._state

    def set_state(self, new_state: TranscriberState) -> None:
        """Replace the state, then hand (previous, new) to the observer."""
        previous = self._state
        if new_state == previous:
            return

        self._state = new_state
        if self._observer is None:
            return

        try:
            self._observer(previous, new_state)
        except Exception as e:
            logger.error(f"State observer error: {e}")

    def update(self, **changes) -> TranscriberState:
        """Apply field changes to the current state."""
        self.set_state(replace(self._state, **changes))
        return self._state
