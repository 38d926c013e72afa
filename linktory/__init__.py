"""Linktory — community link checking bot with points and trust."""

__version__ = "0.1.0"
