"""Telegram notification service."""
from __future__ import annotations

import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

# Bot API rejects longer texts.
MAX_MESSAGE_LENGTH = 4096


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split ``text`` into chunks of at most ``limit`` characters, on line breaks where possible."""
    chunks: list[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        if len(current) + len(line) > limit:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return [chunk.rstrip("\n") for chunk in chunks] or [""]


class TelegramNotifier:
    """Posts position reports to a log bot and liquidation alerts to an alert bot."""

    def __init__(self, config: TelegramConfig, timeout: int = 10) -> None:
        self.enabled = config.enabled
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token
        self.chat_id = config.chat_id
        self.timeout = timeout

    async def _post(self, text: str, bot_token: str, silent: bool) -> bool:
        if not self.enabled:
            return False
        if not bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(
            connector=connector, timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as session:
            for chunk in split_message(text):
                payload = {
                    "chat_id": self.chat_id,
                    "text": chunk,
                    "disable_notification": silent,
                }
                async with session.post(url, json=payload) as response:
                    if response.status != 200:
                        logger.error("Telegram API returned HTTP %s", response.status)
                        return False
        return True

    async def send_alert(self, message: str, subject: str = "") -> bool:
        text = f"{subject}\n\n{message}" if subject else message
        if await self._post(text, self.alert_bot_token, silent=False):
            logger.info("Telegram alert sent: %s", subject or message[:60])
            return True
        return False

    async def send_log(self, message: str, silent: bool = True) -> bool:
        sent = await self._post(message, self.log_bot_token, silent=silent)
        if sent:
            logger.debug("Telegram log sent (%d chars)", len(message))
        return sent
