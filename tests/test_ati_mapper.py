from __future__ import annotations

import json

from adapters.ati_mapper import (
    city_names_from_response,
    contact_from_item,
    load_from_feed_item,
    loads_from_feed,
)


def test_load_keeps_payload_and_contact_ids() -> None:
    item = {"Id": "9f1c", "ContactId1": 1123, "ContactId2": 0, "Note": "Тент"}

    load = load_from_feed_item(item)

    assert load.load_id == "9f1c"
    assert load.primary_actor_id == 1123
    assert load.secondary_actor_id is None
    assert json.loads(load.payload) == item
    assert "Тент" in load.payload


def test_numeric_id_becomes_string() -> None:
    load = load_from_feed_item({"Id": 42, "ContactId1": "7"})

    assert load.load_id == "42"
    assert load.primary_actor_id == 7


def test_feed_drops_items_without_id_and_keeps_order() -> None:
    loads = loads_from_feed([{"Id": "b"}, {"ContactId1": 7}, "junk", {"Id": "a"}])

    assert [load.load_id for load in loads] == ["b", "a"]


def test_contact_mapping() -> None:
    contact = contact_from_item({"id": 5, "name": "Ivan", "mobile": "+79370046492", "e_mail": "i@x.ru"})

    assert contact.actor_id == 5
    assert contact.mobile == "+79370046492"
    assert contact.email == "i@x.ru"
    assert contact_from_item({"name": "nobody"}) is None


def test_city_names_prefer_clarified_name() -> None:
    data = {
        "cities": [
            {"city_id": 1, "name": "Moscow", "clarified_name": "Moscow, RU"},
            {"city_id": 2, "name": "Kazan"},
            {"city_id": 3},
        ]
    }

    assert city_names_from_response(data) == {1: "Moscow, RU", 2: "Kazan"}
    assert city_names_from_response(None) == {}
