"""Ports (interfaces) used by the core.

Ports define the minimal contracts for storage, the marketplace feed and
Telegram delivery so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from core.models import (
    Contact,
    Load,
    PublishedMarker,
    PublishedMessage,
    Topic,
    WhitelistEntry,
)


class WhitelistStorePort(Protocol):
    """Durable set of trusted actors."""

    def list_whitelist(self) -> list[WhitelistEntry]:
        ...

    def whitelist_actor_ids(self) -> set[int]:
        ...

    def add_whitelist_entry(
        self,
        actor_id: int,
        name: str,
        phone: Optional[str] = None,
        telegram: Optional[str] = None,
    ) -> WhitelistEntry:
        ...

    def remove_whitelist_entry(self, entry_key: int) -> bool:
        ...

    def update_whitelist_contact(self, entry_key: int, name: str, phone: Optional[str]) -> bool:
        ...


class LoadStorePort(Protocol):
    """Durable, key-addressed store of pending, published and rejected loads.

    Every method that moves a load between states runs in one transaction.
    Moves return the identifiers that were actually moved so callers can
    detect that a racing writer got there first.
    """

    def list_pending(self) -> list[Load]:
        ...

    def get_pending(self, load_id: str) -> Optional[Load]:
        ...

    def pending_ids(self) -> set[str]:
        ...

    def enqueue_pending(self, load: Load) -> bool:
        ...

    def evict_pending(self, load_ids: Iterable[str]) -> int:
        ...

    def move_to_published(
        self,
        load_ids: Iterable[str],
        chat_id: Optional[str] = None,
        message_ids: Optional[dict[str, int]] = None,
    ) -> list[str]:
        ...

    def move_to_rejected(self, load_ids: Iterable[str]) -> list[str]:
        ...

    def restore_rejected(self, load_id: str) -> bool:
        ...

    def purge_rejected(self, load_id: str) -> bool:
        ...

    def list_rejected(self) -> list[Load]:
        ...

    def is_rejected(self, load_id: str) -> bool:
        ...

    def is_processed(self, load_id: str) -> bool:
        ...

    def list_published(self) -> list[PublishedMarker]:
        ...

    def get_published(self, load_id: str) -> Optional[PublishedMarker]:
        ...


class TopicStorePort(Protocol):
    """Forum topics of the target chat."""

    def list_topics(self) -> list[Topic]:
        ...

    def add_topic(self, name: str, topic_id: int) -> Topic:
        ...

    def update_topic(self, entry_key: int, name: str, topic_id: int) -> bool:
        ...

    def remove_topic(self, entry_key: int) -> bool:
        ...


class FeedPort(Protocol):
    """Marketplace feed operations required by the core."""

    async def fetch_active_loads(self) -> list[Load]:
        ...

    async def fetch_contacts(self) -> list[Contact]:
        ...


class PublisherPort(Protocol):
    """Telegram delivery operations required by the core."""

    async def send_load(self, load: Load, topic_id: Optional[int]) -> PublishedMessage:
        ...

    async def delete_message(self, chat_id: str, message_id: int) -> None:
        ...


class SyncTrigger(Protocol):
    """Something that can be asked to run a reconciliation pass soon."""

    def request(self, reason: str) -> None:
        ...

