from __future__ import annotations

import asyncio
import json
from typing import Any, Iterable, Optional

import pytest

from adapters.load_formatting import LoadLabels, format_date, format_load_message, resolve_labels
from adapters.lookup_cache import ReferenceDirectory
from core.models import Contact, Load


def _load(body: dict[str, Any], primary: Optional[int] = 7, secondary: Optional[int] = None) -> Load:
    return Load(
        load_id=str(body.get("Id", "x")),
        primary_actor_id=primary,
        secondary_actor_id=secondary,
        payload=json.dumps(body, ensure_ascii=False),
    )


BODY = {
    "Id": "a1b2",
    "LoadNumber": "77-12",
    "Loading": {"CityId": 1, "Street": "Lenina 1"},
    "Unloading": {"CityId": 2},
    "Distance": 715,
    "Cargo": {"Weight": 20, "Volume": 82, "CargoType": "Pallets <EUR>"},
    "DateType": 1,
    "FirstDate": "2024-05-01T00:00:00",
    "LastDate": "2024-05-03T00:00:00",
    "Payment": {"RateSum": 95000, "CurrencyId": 1, "Torg": True, "PrepayPercent": 30},
    "Note": "Call before *loading*",
    "AddedAt": "2024-04-30T10:15:00Z",
}


def test_html_message_uses_labels_and_escapes() -> None:
    labels = LoadLabels(cities={1: "Moscow", 2: "Kazan"}, contacts={7: "Ivan"})

    text = format_load_message(_load(BODY), labels, mode="html")

    assert text.startswith("<b>LOAD #77-12</b>")
    assert "<b>Route:</b> Moscow → Kazan" in text
    assert "Pallets &lt;EUR&gt;" in text
    assert "   From: 01.05.2024" in text
    assert "   To: 03.05.2024" in text
    assert "<b>Rate:</b> 95000 ₽" in text
    assert "Bargaining possible" in text
    assert "Prepayment: 30%" in text
    assert "<b>Contact:</b> Ivan (7)" in text
    assert "<b>Added:</b> 30.04.2024" in text


def test_markdown_message_bolds_and_escapes() -> None:
    text = format_load_message(_load(BODY), mode="markdown")

    assert text.startswith("**LOAD #77-12**")
    assert "**Route:** city 1 → city 2" in text
    assert "Call before \\*loading\\*" in text
    assert "**Contact:** 7" in text


def test_missing_sections_fall_back() -> None:
    text = format_load_message(_load({"Id": "q1", "DateType": 3, "LastDate": "2024-05-03"}, secondary=8))

    assert "<b>LOAD #q1</b>" in text
    assert "not specified → not specified" in text
    assert "No cargo, rate request" in text
    assert "To:" not in text
    assert "<b>Contact 2:</b> 8" in text


def test_amount_without_rate_mentions_vat() -> None:
    body = {"Id": "v", "Payment": {"SumWithNDS": 120000, "CurrencyId": 3}}

    assert "<b>Amount:</b> 120000 € (incl. VAT)" in format_load_message(_load(body))


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        format_load_message(_load(BODY), mode="plain")


def test_format_date_passes_through_unparseable_values() -> None:
    assert format_date("2024-05-01T08:00:00Z") == "01.05.2024"
    assert format_date("soon") == "soon"
    assert format_date(None) == ""


class FakeSource:
    async def fetch_contacts(self) -> list[Contact]:
        return [Contact(actor_id=7, name="Ivan", phone=None, mobile=None)]

    async def fetch_city_names(self, city_ids: Iterable[int]) -> dict[int, str]:
        return {city_id: "Moscow" for city_id in city_ids if city_id == 1}


def test_resolve_labels_uses_directory() -> None:
    directory = ReferenceDirectory(FakeSource())

    labels = asyncio.run(resolve_labels(_load(BODY, secondary=8), directory))

    assert labels.cities == {1: "Moscow"}
    assert labels.contacts == {7: "Ivan"}
