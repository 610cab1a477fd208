"""Offline-first vocabulary sync and spaced-repetition review."""

__version__ = "0.3.0"
