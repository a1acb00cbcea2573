"""Whitelist registry (core domain).

Mutations hand a sync request to the background worker so the pending queue
follows the new eligibility set. The hand-off is fire-and-forget: its
failure is logged and never fails the mutation itself.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from core.errors import NotFoundError
from core.models import Contact, WhitelistEntry
from core.ports import FeedPort, SyncTrigger, WhitelistStorePort

LOGGER = logging.getLogger(__name__)


def normalize_phone(phone: Optional[str]) -> str:
    """Keep digits only so '+7 (937) 004-64-92' matches '79370046492'."""

    if not phone:
        return ""
    return re.sub(r"\D", "", phone)


def find_contact_by_phone(contacts: list[Contact], phone: str) -> Optional[Contact]:
    wanted = normalize_phone(phone)
    if not wanted:
        return None
    for contact in contacts:
        if wanted in {normalize_phone(contact.phone), normalize_phone(contact.mobile)}:
            return contact
    return None


class WhitelistRegistry:
    """Trusted actor set with sync-on-change semantics."""

    def __init__(
        self,
        store: WhitelistStorePort,
        trigger: Optional[SyncTrigger] = None,
        feed: Optional[FeedPort] = None,
    ) -> None:
        self._store = store
        self._trigger = trigger
        self._feed = feed

    def list(self) -> list[WhitelistEntry]:
        return self._store.list_whitelist()

    def actor_ids(self) -> set[int]:
        return self._store.whitelist_actor_ids()

    def add(
        self,
        actor_id: int,
        name: str,
        phone: Optional[str] = None,
        telegram: Optional[str] = None,
    ) -> WhitelistEntry:
        """Whitelist an actor. Raises ConflictError when already present."""

        entry = self._store.add_whitelist_entry(actor_id, name, phone=phone, telegram=telegram)
        LOGGER.info("Whitelisted actor %s (%s)", entry.actor_id, entry.name)
        self._request_sync(f"whitelist add {actor_id}")
        return entry

    def remove(self, entry_key: int) -> None:
        """Remove a whitelist entry by its key. Raises NotFoundError."""

        if not self._store.remove_whitelist_entry(entry_key):
            raise NotFoundError(f"Whitelist entry {entry_key} not found")
        LOGGER.info("Removed whitelist entry %s", entry_key)
        self._request_sync(f"whitelist remove {entry_key}")

    async def add_by_phone(self, phone: str, telegram: Optional[str] = None) -> WhitelistEntry:
        """Resolve a firm contact by phone number and whitelist it."""

        contacts = await self._contacts()
        contact = find_contact_by_phone(contacts, phone)
        if contact is None:
            raise NotFoundError(f"No upstream contact with phone {phone}")
        return self.add(
            contact.actor_id,
            contact.name or f"Contact {contact.actor_id}",
            phone=contact.mobile or contact.phone,
            telegram=telegram,
        )

    async def refresh_contacts(self) -> int:
        """Refresh names and phones of whitelisted actors from the feed."""

        by_id = {contact.actor_id: contact for contact in await self._contacts()}
        updated = 0
        for entry in self._store.list_whitelist():
            contact = by_id.get(entry.actor_id)
            if contact is None:
                LOGGER.warning("Actor %s (%s) not found among upstream contacts", entry.actor_id, entry.name)
                continue
            name = contact.name or entry.name
            phone = contact.mobile or contact.phone or entry.phone
            if name == entry.name and phone == entry.phone:
                continue
            if self._store.update_whitelist_contact(entry.entry_key, name, phone):
                updated += 1
        LOGGER.info("Refreshed contact info for %s whitelist entries", updated)
        return updated

    async def _contacts(self) -> list[Contact]:
        if self._feed is None:
            raise RuntimeError("Contact lookups need a feed client")
        return await self._feed.fetch_contacts()

    def _request_sync(self, reason: str) -> None:
        if self._trigger is None:
            return
        try:
            self._trigger.request(reason)
        except Exception:
            LOGGER.exception("Could not request sync after %s", reason)
