from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.errors import DeliveryError, NotFoundError
from core.models import Load, PublishedMessage
from core.publishing import LoadPublisher
from core.queue import LoadQueue


class FakePublisher:
    def __init__(self, failing: Optional[set[str]] = None) -> None:
        self.failing = failing or set()
        self.sent: list[tuple[str, Optional[int]]] = []
        self.deleted: list[tuple[str, int]] = []

    async def send_load(self, load: Load, topic_id: Optional[int]) -> PublishedMessage:
        if load.load_id in self.failing:
            raise DeliveryError("Bad Request: message thread not found")
        self.sent.append((load.load_id, topic_id))
        return PublishedMessage(chat_id="-1001", message_id=100 + len(self.sent))

    async def delete_message(self, chat_id: str, message_id: int) -> None:
        self.deleted.append((chat_id, message_id))


def _setup(tmp_path, failing: Optional[set[str]] = None, default_topic_id: Optional[int] = 5):
    storage = SQLiteStorage(str(tmp_path / "publish.db"))
    storage.init_db()
    for load_id in ("A", "B", "C"):
        storage.enqueue_pending(Load(load_id, 7, None, "{}"))
    queue = LoadQueue(storage)
    fake = FakePublisher(failing)
    publisher = LoadPublisher(queue, storage, fake, default_topic_id=default_topic_id, default_chat_id="-1001")
    return storage, queue, fake, publisher


def test_publish_moves_load_and_uses_default_topic(tmp_path) -> None:
    storage, queue, fake, publisher = _setup(tmp_path)

    message_id = asyncio.run(publisher.publish("A"))

    assert message_id == 101
    assert fake.sent == [("A", 5)]
    assert "A" not in storage.pending_ids()
    assert queue.get_published("A").message_id == 101


def test_failed_delivery_keeps_load_pending(tmp_path) -> None:
    storage, queue, fake, publisher = _setup(tmp_path, failing={"A"})

    with pytest.raises(DeliveryError):
        asyncio.run(publisher.publish("A"))

    assert "A" in storage.pending_ids()
    assert queue.list_published() == []


def test_publish_many_reports_each_group(tmp_path) -> None:
    storage, queue, fake, publisher = _setup(tmp_path, failing={"B"})

    report = asyncio.run(publisher.publish_many(["A", "B", "ghost", "C"], topic_id=9))

    assert report.published == ["A", "C"]
    assert report.failed == ["B"]
    assert report.missing == ["ghost"]
    assert storage.pending_ids() == {"B"}
    assert {topic for _, topic in fake.sent} == {9}


def test_retract_deletes_message_but_keeps_marker(tmp_path) -> None:
    storage, queue, fake, publisher = _setup(tmp_path)

    async def scenario() -> None:
        await publisher.publish("A")
        await publisher.retract("A")

    asyncio.run(scenario())

    assert fake.deleted == [("-1001", 101)]
    assert queue.get_published("A").load_id == "A"


def test_retract_without_recorded_message(tmp_path) -> None:
    storage, queue, fake, publisher = _setup(tmp_path)
    queue.publish("A")

    with pytest.raises(NotFoundError):
        asyncio.run(publisher.retract("A"))


def test_publish_unknown_load(tmp_path) -> None:
    _, _, fake, publisher = _setup(tmp_path)

    with pytest.raises(NotFoundError):
        asyncio.run(publisher.publish("ghost"))

    assert fake.sent == []


class DroppingPublisher(FakePublisher):
    """Delivers until a load listed in ``drops`` raises a raw connection error."""

    def __init__(self, drops: set[str]) -> None:
        super().__init__()
        self.drops = drops

    async def send_load(self, load: Load, topic_id: Optional[int]) -> PublishedMessage:
        if load.load_id in self.drops:
            raise ConnectionError("Connection to Telegram failed 5 time(s)")
        return await super().send_load(load, topic_id)


def test_publish_many_moves_delivered_loads_when_a_later_send_crashes(tmp_path) -> None:
    storage, queue, _, _ = _setup(tmp_path)
    fake = DroppingPublisher({"B"})
    publisher = LoadPublisher(queue, storage, fake, default_chat_id="-1001")

    report = asyncio.run(publisher.publish_many(["A", "B"]))

    assert report.published == ["A"]
    assert report.failed == ["B"]
    assert queue.get_published("A").message_id == 101
    assert storage.pending_ids() == {"B", "C"}


class EvictingPublisher(FakePublisher):
    """Delivers, then lets a sync pass evict the load before the move commits."""

    def __init__(self, storage: SQLiteStorage) -> None:
        super().__init__()
        self.storage = storage

    async def send_load(self, load: Load, topic_id: Optional[int]) -> PublishedMessage:
        sent = await super().send_load(load, topic_id)
        self.storage.evict_pending([load.load_id])
        return sent


def test_publish_after_eviction_reports_delivered_message(tmp_path, caplog) -> None:
    storage, queue, _, _ = _setup(tmp_path)
    publisher = LoadPublisher(queue, storage, EvictingPublisher(storage), default_chat_id="-1001")

    with caplog.at_level("WARNING", logger="core.publishing"):
        with pytest.raises(NotFoundError, match="delivered as message 101"):
            asyncio.run(publisher.publish("A"))

    assert storage.get_published("A") is None
    assert "A" not in storage.pending_ids()
    assert "sent as message 101 but is no longer pending" in caplog.text


def test_publish_many_after_eviction_lists_load_as_missing(tmp_path) -> None:
    storage, queue, _, _ = _setup(tmp_path)
    publisher = LoadPublisher(queue, storage, EvictingPublisher(storage), default_chat_id="-1001")

    report = asyncio.run(publisher.publish_many(["A"]))

    assert report.published == []
    assert report.missing == ["A"]
    assert storage.get_published("A") is None
