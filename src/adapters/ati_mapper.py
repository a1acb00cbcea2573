"""ATI.SU-to-core mapping adapter.

This keeps the marketplace wire format out of the core: only the load id and
the two contact references are lifted into typed fields, the rest of the
listing travels as the original JSON text.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from core.models import Contact, Load

LOGGER = logging.getLogger(__name__)


def _optional_int(value: Any) -> Optional[int]:
    # ATI sends 0 or null for "no contact".
    if value in (None, "", 0, "0"):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def load_from_feed_item(item: dict[str, Any]) -> Optional[Load]:
    """Build a core Load from one element of GET /v1.0/loads."""

    raw_id = item.get("Id")
    if raw_id in (None, ""):
        LOGGER.warning("Feed item without Id ignored")
        return None
    return Load(
        load_id=str(raw_id),
        primary_actor_id=_optional_int(item.get("ContactId1")),
        secondary_actor_id=_optional_int(item.get("ContactId2")),
        payload=json.dumps(item, ensure_ascii=False, separators=(",", ":")),
    )


def loads_from_feed(items: list[Any]) -> list[Load]:
    """Map a feed response, keeping upstream order and dropping junk."""

    loads: list[Load] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        load = load_from_feed_item(item)
        if load is not None:
            loads.append(load)
    return loads


def contact_from_item(item: dict[str, Any]) -> Optional[Contact]:
    actor_id = _optional_int(item.get("id"))
    if actor_id is None:
        return None
    return Contact(
        actor_id=actor_id,
        name=item.get("name"),
        phone=item.get("phone"),
        mobile=item.get("mobile"),
        email=item.get("e_mail"),
    )


def city_names_from_response(data: Any) -> dict[int, str]:
    """Map POST /gw/gis-dict/v1/cities/by-ids to {city_id: display name}."""

    cities = data.get("cities", []) if isinstance(data, dict) else []
    names: dict[int, str] = {}
    for city in cities:
        if not isinstance(city, dict):
            continue
        city_id = _optional_int(city.get("city_id"))
        name = city.get("clarified_name") or city.get("name")
        if city_id is not None and name:
            names[city_id] = str(name)
    return names
