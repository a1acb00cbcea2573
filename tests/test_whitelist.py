from __future__ import annotations

import asyncio

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.errors import ConflictError, NotFoundError
from core.models import Contact
from core.whitelist import WhitelistRegistry, find_contact_by_phone, normalize_phone


class RecordingTrigger:
    def __init__(self, fail: bool = False) -> None:
        self.reasons: list[str] = []
        self.fail = fail

    def request(self, reason: str) -> None:
        self.reasons.append(reason)
        if self.fail:
            raise RuntimeError("worker is gone")


class FakeContactsFeed:
    def __init__(self, contacts: list[Contact]) -> None:
        self.contacts = contacts

    async def fetch_active_loads(self):
        return []

    async def fetch_contacts(self) -> list[Contact]:
        return list(self.contacts)


@pytest.fixture
def storage(tmp_path) -> SQLiteStorage:
    storage = SQLiteStorage(str(tmp_path / "whitelist.db"))
    storage.init_db()
    return storage


def test_add_and_remove_request_sync(storage: SQLiteStorage) -> None:
    trigger = RecordingTrigger()
    registry = WhitelistRegistry(storage, trigger=trigger)

    entry = registry.add(7, "Ivan")
    registry.remove(entry.entry_key)

    assert len(trigger.reasons) == 2
    assert registry.actor_ids() == set()


def test_duplicate_add_raises_conflict_without_sync(storage: SQLiteStorage) -> None:
    trigger = RecordingTrigger()
    registry = WhitelistRegistry(storage, trigger=trigger)
    registry.add(7, "Ivan")

    with pytest.raises(ConflictError):
        registry.add(7, "Ivan")

    assert len(trigger.reasons) == 1


def test_remove_unknown_entry_raises_not_found(storage: SQLiteStorage) -> None:
    registry = WhitelistRegistry(storage, trigger=RecordingTrigger())

    with pytest.raises(NotFoundError):
        registry.remove(404)


def test_trigger_failure_does_not_fail_mutation(storage: SQLiteStorage) -> None:
    registry = WhitelistRegistry(storage, trigger=RecordingTrigger(fail=True))

    entry = registry.add(7, "Ivan")

    assert registry.actor_ids() == {7}
    registry.remove(entry.entry_key)
    assert registry.list() == []


def test_normalize_phone_keeps_digits() -> None:
    assert normalize_phone("+7 (937) 004-64-92") == "79370046492"
    assert normalize_phone(None) == ""


def test_find_contact_by_mobile_or_phone() -> None:
    contacts = [
        Contact(actor_id=1, name="Office", phone="+7 495 000-00-00", mobile=None),
        Contact(actor_id=2, name="Ivan", phone=None, mobile="+7 (937) 004-64-92"),
    ]

    assert find_contact_by_phone(contacts, "79370046492").actor_id == 2
    assert find_contact_by_phone(contacts, "74950000000").actor_id == 1
    assert find_contact_by_phone(contacts, "000") is None


def test_add_by_phone_resolves_contact(storage: SQLiteStorage) -> None:
    feed = FakeContactsFeed([Contact(actor_id=1123, name="Ivan", phone=None, mobile="+79370046492")])
    trigger = RecordingTrigger()
    registry = WhitelistRegistry(storage, trigger=trigger, feed=feed)

    entry = asyncio.run(registry.add_by_phone("+7 (937) 004-64-92", telegram="@ivan"))

    assert entry.actor_id == 1123
    assert entry.telegram == "@ivan"
    assert trigger.reasons


def test_add_by_unknown_phone_raises_not_found(storage: SQLiteStorage) -> None:
    registry = WhitelistRegistry(storage, feed=FakeContactsFeed([]))

    with pytest.raises(NotFoundError):
        asyncio.run(registry.add_by_phone("+79370046492"))


def test_refresh_contacts_updates_changed_entries(storage: SQLiteStorage) -> None:
    feed = FakeContactsFeed(
        [
            Contact(actor_id=7, name="Ivan Petrov", phone=None, mobile="+79370046492"),
            Contact(actor_id=8, name="Same", phone="7900", mobile=None),
        ]
    )
    registry = WhitelistRegistry(storage, feed=feed)
    registry.add(7, "Ivan")
    registry.add(8, "Same", phone="7900")
    registry.add(9, "Gone")

    updated = asyncio.run(registry.refresh_contacts())

    assert updated == 1
    names = {entry.actor_id: entry.name for entry in registry.list()}
    assert names == {7: "Ivan Petrov", 8: "Same", 9: "Gone"}
