"""Audio routing, hotkey, state persistence and speaker delay control helpers."""

__version__ = "0.1.0"