"""Telegram Bot API publisher adapter.

Uses the Bot API for delivery so loads are posted by a bot into the target
chat, optionally into a forum topic.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.request
from typing import Any, Optional

from adapters.load_formatting import format_load_message, resolve_labels
from adapters.lookup_cache import ReferenceDirectory
from core.errors import DeliveryError
from core.models import Load, PublishedMessage

LOGGER = logging.getLogger(__name__)


class TelegramBotPublisher:
    """Publisher adapter that sends loads via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        directory: Optional[ReferenceDirectory] = None,
        timeout: float = 10.0,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._directory = directory
        self._timeout = timeout

    def _endpoint(self, method: str) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/{method}"

    def _call(self, method: str, payload: dict[str, Any]) -> Any:
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(method), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")
            raise DeliveryError(f"Bot API error {e.code}: {detail}") from e
        except (urllib.error.URLError, TimeoutError, OSError, ValueError) as e:
            raise DeliveryError(f"Bot API {method} failed: {e}") from e
        if not body.get("ok"):
            raise DeliveryError(f"Bot API {method} refused: {body.get('description')}")
        return body.get("result")

    async def send_load(self, load: Load, topic_id: Optional[int]) -> PublishedMessage:
        """Send the formatted load and return where it landed."""

        labels = await resolve_labels(load, self._directory) if self._directory else None
        payload: dict[str, Any] = {
            "chat_id": self._chat_id,
            "text": format_load_message(load, labels, mode="html"),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        if topic_id is not None:
            payload["message_thread_id"] = topic_id
        # Blocking HTTP runs in a worker thread to keep the loop free.
        result = await asyncio.to_thread(self._call, "sendMessage", payload)
        return PublishedMessage(chat_id=self._chat_id, message_id=int(result["message_id"]))

    async def delete_message(self, chat_id: str, message_id: int) -> None:
        await asyncio.to_thread(self._call, "deleteMessage", {"chat_id": chat_id, "message_id": message_id})
        LOGGER.info("Deleted message %s in %s", message_id, chat_id)
