"""Fire22 SDK - shared helpers for the back-office services."""
