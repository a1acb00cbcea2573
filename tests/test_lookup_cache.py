from __future__ import annotations

import asyncio
from typing import Iterable

from adapters.lookup_cache import ReferenceDirectory, TtlCache
from core.errors import UpstreamUnavailableError
from core.models import Contact


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class FakeSource:
    def __init__(self) -> None:
        self.contact_calls = 0
        self.city_calls: list[list[int]] = []
        self.fail_cities = False

    async def fetch_contacts(self) -> list[Contact]:
        self.contact_calls += 1
        return [Contact(actor_id=7, name=f"Ivan v{self.contact_calls}", phone=None, mobile=None)]

    async def fetch_city_names(self, city_ids: Iterable[int]) -> dict[int, str]:
        ids = list(city_ids)
        self.city_calls.append(ids)
        if self.fail_cities:
            raise UpstreamUnavailableError("gis-dict is down")
        return {city_id: f"City {city_id}" for city_id in ids if city_id != 404}


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache: TtlCache[str, int] = TtlCache(10, clock)
    cache.put("a", 1)

    clock.now += 9
    assert cache.get("a") == 1
    clock.now += 1
    assert cache.get("a") is None


def test_none_ttl_never_expires() -> None:
    clock = FakeClock()
    cache: TtlCache[int, str] = TtlCache(None, clock)
    cache.put(1, "Moscow")

    clock.now += 10**9
    assert cache.get(1) == "Moscow"


def test_contacts_are_refetched_after_ttl() -> None:
    clock = FakeClock()
    source = FakeSource()
    directory = ReferenceDirectory(source, contacts_ttl_seconds=300, clock=clock)

    async def scenario():
        first = await directory.contact(7)
        cached = await directory.contact(7)
        clock.now += 300
        refreshed = await directory.contact(7)
        return first, cached, refreshed

    first, cached, refreshed = asyncio.run(scenario())

    assert first.name == "Ivan v1"
    assert cached.name == "Ivan v1"
    assert refreshed.name == "Ivan v2"
    assert source.contact_calls == 2


def test_city_names_fetch_only_unknown_ids() -> None:
    source = FakeSource()
    directory = ReferenceDirectory(source, clock=FakeClock())

    async def scenario():
        await directory.city_names([1, 2])
        return await directory.city_names([2, 3, 404, 3])

    names = asyncio.run(scenario())

    assert names == {2: "City 2", 3: "City 3"}
    assert source.city_calls == [[1, 2], [3, 404]]


def test_city_lookup_failure_leaves_names_out() -> None:
    source = FakeSource()
    source.fail_cities = True
    directory = ReferenceDirectory(source, clock=FakeClock())

    assert asyncio.run(directory.city_names([1])) == {}
