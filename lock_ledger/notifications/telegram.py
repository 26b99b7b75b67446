"""Telegram delivery for relayed ledger activity."""
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"
REQUEST_TIMEOUT_SECONDS = 15


class TelegramNotifier:
    """Posts ledger events to a muted log bot and failures to an alert bot."""

    def __init__(self, config: TelegramConfig) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token
        self.chat_id = config.chat_id

    async def _post(self, text: str, bot_token: str, silent: bool) -> bool:
        if not bot_token or not self.chat_id:
            logger.warning("Telegram bot token or chat id missing, dropping message")
            return False

        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "disable_notification": silent,
        }
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                f"{TELEGRAM_API}/bot{bot_token}/sendMessage",
                json=payload,
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
            ) as response:
                if response.status != 200:
                    logger.error("Telegram sendMessage returned HTTP %s", response.status)
                    return False
                return True

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Send a failure alert through the alert bot (never muted)."""
        text = f"{subject}\n\n{message}" if subject else message
        return await self._post(text, self.alert_bot_token, silent=False)

    async def send_log(self, message: str, silent: bool = True) -> bool:
        """Send routine ledger activity through the log bot."""
        sent = await self._post(message, self.log_bot_token, silent=silent)
        if sent:
            logger.debug("Telegram log delivered")
        return sent
