"""Audio pipeline components for live capture and voice activity gating.

Submodules are imported directly (``streamscribe.audio.capture``) so the
stream loop does not pull in the sound device backend.
"""
