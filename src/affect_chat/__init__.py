"""Affect-aware emotional-support chat engine."""

__version__ = "0.1.0"
