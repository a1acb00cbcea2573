from __future__ import annotations

from core.models import Load
from frontend.rows import load_row
from frontend.validators import parse_positive_int, parse_telegram_handle, phone_error


def test_parse_positive_int() -> None:
    assert parse_positive_int(" 42 ", "topic id").value == 42
    assert parse_positive_int("", "topic id").error == "topic id is required"
    assert parse_positive_int("-3", "topic id").error == "topic id must be a positive number"
    assert parse_positive_int("0", "topic id").value is None


def test_parse_telegram_handle() -> None:
    assert parse_telegram_handle("ivan") == "@ivan"
    assert parse_telegram_handle("@ivan") == "@ivan"
    assert parse_telegram_handle("  ") is None


def test_phone_needs_ten_digits() -> None:
    assert phone_error("+7 (937) 004-64-92") is None
    assert phone_error("12-34") is not None


def test_load_row_summarizes_payload() -> None:
    payload = '{"Id": "a", "Loading": {"CityId": 1}, "Cargo": {"Weight": 20, "CargoType": "tent"}, "Payment": {"RateSum": 5000}}'
    load = Load(load_id="a", primary_actor_id=7, secondary_actor_id=8, payload=payload)

    assert load_row(load) == ("a", "1 → ?", "20 t tent", "5000", "7, 8")
