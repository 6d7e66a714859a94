"""Utility helpers."""

from .datetime import elapsed_ms, utc_now

__all__ = ["elapsed_ms", "utc_now"]
