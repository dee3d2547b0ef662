"""
Telegram Bot API over plain HTTP, used for order monitor alerts.
"""
import logging
from typing import Any, Dict, Optional

import requests


class TelegramNotifier:
    """
    Disabled (every call is a no-op) when the token or chat id is missing.
    Delivery failures are logged and swallowed so the monitor loop keeps going.
    """

    API_BASE = "https://api.telegram.org"

    def __init__(self, token: Optional[str], chat_id: Optional[str], timeout: int = 10):
        self._logger = logging.getLogger(self.__class__.__name__)
        self.token = token
        self.chat_id = chat_id
        self.timeout = timeout
        self.enabled = bool(token and chat_id)
        if not self.enabled:
            self._logger.info("TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID not set, order alerts disabled")

    def _call(self, method: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        url = f"{self.API_BASE}/bot{self.token}/{method}"
        try:
            r = requests.post(url, json=payload, timeout=self.timeout)
            body = r.json() if r.content else {}
        except (requests.RequestException, ValueError) as exc:
            self._logger.warning("telegram %s failed: %s", method, exc)
            return None
        if r.status_code != 200 or not body.get("ok"):
            self._logger.warning("telegram %s rejected (HTTP %s): %s", method, r.status_code, str(body)[:300])
            return None
        return body.get("result")

    def send_text(self, msg: str) -> Optional[int]:
        """Returns the Telegram message id, or None when nothing was delivered."""
        if not self.enabled:
            return None
        result = self._call("sendMessage", {
            "chat_id": self.chat_id,
            "text": msg,
            "disable_web_page_preview": True,
        })
        return result.get("message_id") if result else None
