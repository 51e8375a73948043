"""Realtime chat core: conversations, presence and live fan-out."""

__version__ = "0.1.0"
