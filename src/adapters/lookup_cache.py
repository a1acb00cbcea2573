"""Time-bounded lookups of contact and city names.

The directory is an explicit object handed to the formatter; its caches live
on the instance and read time through an injectable clock, so tests can
drive expiry without sleeping.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Generic, Iterable, Optional, Protocol, TypeVar

from core.errors import UpstreamUnavailableError
from core.models import Contact

LOGGER = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class TtlCache(Generic[K, V]):
    """Key/value cache where each entry expires ``ttl_seconds`` after insert.

    ``ttl_seconds=None`` keeps entries forever.
    """

    def __init__(self, ttl_seconds: Optional[float], clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[K, tuple[float, V]] = {}

    def get(self, key: K) -> Optional[V]:
        item = self._entries.get(key)
        if item is None:
            return None
        stored_at, value = item
        if self._ttl is not None and self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        return value

    def put(self, key: K, value: V) -> None:
        self._entries[key] = (self._clock(), value)


class ReferenceSource(Protocol):
    async def fetch_contacts(self) -> list[Contact]:
        ...

    async def fetch_city_names(self, city_ids: Iterable[int]) -> dict[int, str]:
        ...


class ReferenceDirectory:
    """Contact and city names for formatting, backed by the feed client."""

    _CONTACTS_KEY = "contacts"

    def __init__(
        self,
        source: ReferenceSource,
        contacts_ttl_seconds: float = 300.0,
        cities_ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._contacts: TtlCache[str, dict[int, Contact]] = TtlCache(contacts_ttl_seconds, clock)
        self._cities: TtlCache[int, str] = TtlCache(cities_ttl_seconds, clock)

    async def contacts(self) -> dict[int, Contact]:
        cached = self._contacts.get(self._CONTACTS_KEY)
        if cached is not None:
            return cached
        contacts = {contact.actor_id: contact for contact in await self._source.fetch_contacts()}
        self._contacts.put(self._CONTACTS_KEY, contacts)
        return contacts

    async def contact(self, actor_id: int) -> Optional[Contact]:
        try:
            return (await self.contacts()).get(actor_id)
        except UpstreamUnavailableError as exc:
            LOGGER.warning("Contact %s lookup failed: %s", actor_id, exc)
            return None

    async def city_names(self, city_ids: Iterable[int]) -> dict[int, str]:
        """Return known names; ids that cannot be resolved are left out."""

        wanted = list(dict.fromkeys(city_ids))
        names: dict[int, str] = {}
        missing: list[int] = []
        for city_id in wanted:
            name = self._cities.get(city_id)
            if name is None:
                missing.append(city_id)
            else:
                names[city_id] = name
        if missing:
            try:
                fetched = await self._source.fetch_city_names(missing)
            except UpstreamUnavailableError as exc:
                LOGGER.warning("City lookup failed for %s: %s", missing, exc)
                fetched = {}
            for city_id, name in fetched.items():
                self._cities.put(city_id, name)
                names[city_id] = name
        return names
