"""Telegram user-account publisher adapter.

Posts loads from the logged-in Telethon session, for chats where adding a bot
is not an option.
"""

from __future__ import annotations

from typing import Optional

from telethon import errors

from adapters.load_formatting import format_load_message, resolve_labels
from adapters.lookup_cache import ReferenceDirectory
from core.errors import DeliveryError
from core.models import Load, PublishedMessage


def _peer(chat_id: str):
    # Numeric ids must reach Telethon as ints; usernames stay strings.
    try:
        return int(chat_id)
    except ValueError:
        return chat_id


class TelegramClientPublisher:
    """Publisher adapter that sends loads through a Telethon client."""

    def __init__(self, client, chat_id: str, directory: Optional[ReferenceDirectory] = None) -> None:
        self._client = client
        self._chat_id = chat_id
        self._directory = directory

    async def send_load(self, load: Load, topic_id: Optional[int]) -> PublishedMessage:
        labels = await resolve_labels(load, self._directory) if self._directory else None
        message = format_load_message(load, labels, mode="markdown")
        try:
            # Forum topics are addressed by replying to the topic's root message.
            sent = await self._client.send_message(
                _peer(self._chat_id),
                message,
                parse_mode="Markdown",
                reply_to=topic_id,
                link_preview=False,
            )
        except (errors.RPCError, OSError) as e:
            raise DeliveryError(f"Telegram refused load {load.load_id}: {e}") from e
        return PublishedMessage(chat_id=self._chat_id, message_id=int(sent.id))

    async def delete_message(self, chat_id: str, message_id: int) -> None:
        try:
            await self._client.delete_messages(_peer(chat_id), [message_id])
        except (errors.RPCError, OSError) as e:
            raise DeliveryError(f"Could not delete message {message_id}: {e}") from e
