"""Notification adapters.

The Telegram service pulls in aiohttp; import it from its module only
when Telegram delivery is switched on.
"""


def severity_badge(severity: int) -> str:
    """Emoji prefix for a 0-100 severity."""
    if severity >= 80:
        return "🔴"
    if severity >= 50:
        return "🟡"
    return "🟢"


__all__ = ["severity_badge"]
