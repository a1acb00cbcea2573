"""Validation helpers for console forms."""

from __future__ import annotations

from dataclasses import dataclass

from core.whitelist import normalize_phone


@dataclass
class ParsedInt:
    value: int | None
    error: str | None = None


def parse_positive_int(raw_value: str, field: str) -> ParsedInt:
    raw_value = raw_value.strip()
    if not raw_value:
        return ParsedInt(None, f"{field} is required")
    if not raw_value.isdigit() or int(raw_value) <= 0:
        return ParsedInt(None, f"{field} must be a positive number")
    return ParsedInt(int(raw_value))


def parse_telegram_handle(raw_value: str) -> str | None:
    """Normalize a Telegram handle to '@name'; empty input means no handle."""

    value = raw_value.strip()
    if not value:
        return None
    if not value.startswith("@"):
        value = f"@{value}"
    return value


def phone_error(raw_value: str) -> str | None:
    digits = normalize_phone(raw_value)
    if len(digits) < 10:
        return "phone must contain at least 10 digits"
    return None
