"""
Telegram notification delivery.

Posts back-office notifications to one chat through the Bot API
``sendMessage`` method.
"""
import asyncio
import logging
from typing import Optional

import aiohttp

from core.application.interfaces import INotificationService
from core.infrastructure.adapters.notifications import severity_badge
from core.settings.sections.integrations import TelegramSettings


logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
# Bot API hard limit for a single message
MAX_MESSAGE_LENGTH = 4096


class TelegramNotificationService(INotificationService):
    """
    Sends notifications at or above ``min_severity`` to the configured chat.

    Delivery problems (HTTP errors, timeouts, missing credentials) are
    logged and swallowed so a handler never fails because Telegram did.
    """

    def __init__(self, settings: TelegramSettings, timeout_seconds: float = 10.0):
        """
        Args:
            settings: Bot token, chat id, message prefix and severity floor
            timeout_seconds: Total timeout per Bot API call
        """
        self.settings = settings
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def configured(self) -> bool:
        return bool(self.settings.token and self.settings.chat_id)

    @property
    def send_message_url(self) -> str:
        return f"{TELEGRAM_API_BASE}/bot{self.settings.token}/sendMessage"

    def format_message(self, message: str, severity: int) -> str:
        text = f"{self.settings.prefix} {severity_badge(severity)} {message}".strip()
        return text[:MAX_MESSAGE_LENGTH]

    async def notify(self, message: str, severity: int = 50) -> None:
        if severity < self.settings.min_severity:
            logger.debug(f"Dropping notification below severity {self.settings.min_severity}: {message}")
            return
        if not self.configured:
            logger.warning("Telegram token or chat id missing, notification not sent")
            return
        await self._send_message(self.format_message(message, severity))

    async def _send_message(self, text: str) -> None:
        # Plain text: ids such as payment_abc would break Markdown parsing
        body = {"chat_id": self.settings.chat_id, "text": text, "disable_web_page_preview": True}
        try:
            session = await self._get_session()
            async with session.post(self.send_message_url, json=body) as response:
                if response.status != 200:
                    logger.error(f"Telegram API error {response.status}: {await response.text()}")
                    return
            logger.debug("Telegram notification delivered")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Telegram delivery failed: {e}")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
