from __future__ import annotations

import json

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.errors import NotFoundError
from core.models import Load
from core.queue import LoadQueue


def _load(load_id: str, primary: int = 7) -> Load:
    payload = json.dumps({"Id": load_id, "Note": "Тент, 20 т", "Cargo": {"Weight": 20}}, ensure_ascii=False)
    return Load(load_id=load_id, primary_actor_id=primary, secondary_actor_id=None, payload=payload)


@pytest.fixture
def storage(tmp_path) -> SQLiteStorage:
    storage = SQLiteStorage(str(tmp_path / "queue.db"))
    storage.init_db()
    return storage


def test_reject_then_restore_keeps_payload(storage: SQLiteStorage) -> None:
    queue = LoadQueue(storage)
    original = _load("A")
    queue.enqueue_pending(original)

    queue.reject("A")
    assert storage.pending_ids() == set()
    assert [load.load_id for load in queue.list_rejected()] == ["A"]

    queue.restore("A")
    assert queue.get_pending("A") == original
    assert queue.list_rejected() == []


def test_publish_records_message(storage: SQLiteStorage) -> None:
    queue = LoadQueue(storage)
    queue.enqueue_pending(_load("A"))

    queue.publish("A", chat_id="-1001", message_id=55)

    marker = queue.get_published("A")
    assert marker.chat_id == "-1001"
    assert marker.message_id == 55
    assert not storage.pending_ids()
    assert queue.is_processed("A")


def test_single_moves_raise_not_found(storage: SQLiteStorage) -> None:
    queue = LoadQueue(storage)

    with pytest.raises(NotFoundError):
        queue.publish("missing")
    with pytest.raises(NotFoundError):
        queue.reject("missing")
    with pytest.raises(NotFoundError):
        queue.restore("missing")
    with pytest.raises(NotFoundError):
        queue.purge("missing")
    with pytest.raises(NotFoundError):
        queue.get_pending("missing")
    with pytest.raises(NotFoundError):
        queue.get_published("missing")


def test_published_load_cannot_be_published_again(storage: SQLiteStorage) -> None:
    queue = LoadQueue(storage)
    queue.enqueue_pending(_load("A"))
    queue.publish("A")

    with pytest.raises(NotFoundError):
        queue.publish("A")


def test_purge_removes_rejected_load(storage: SQLiteStorage) -> None:
    queue = LoadQueue(storage)
    queue.enqueue_pending(_load("A"))
    queue.reject("A")

    queue.purge("A")

    assert queue.list_rejected() == []
    assert not storage.is_rejected("A")


def test_bulk_reject_reports_unmatched_ids(storage: SQLiteStorage) -> None:
    queue = LoadQueue(storage)
    queue.enqueue_pending(_load("A"))
    queue.enqueue_pending(_load("B"))

    result = queue.reject_many(["A", "ghost", "B", "A"])

    assert result.applied == ["A", "B"]
    assert result.missing == ["ghost"]
    assert result.applied_count == 2
    assert storage.pending_ids() == set()


def test_bulk_publish_with_nothing_pending(storage: SQLiteStorage) -> None:
    queue = LoadQueue(storage)

    result = queue.publish_many(["A", "B"])

    assert result.applied == []
    assert result.missing == ["A", "B"]


def test_bulk_publish_stores_message_ids(storage: SQLiteStorage) -> None:
    queue = LoadQueue(storage)
    queue.enqueue_pending(_load("A"))
    queue.enqueue_pending(_load("B"))

    result = queue.publish_many(["A", "B"], chat_id="-1001", message_ids={"A": 1, "B": 2})

    assert result.applied == ["A", "B"]
    assert queue.get_published("B").message_id == 2
