"""Load message formatting for Telegram.

Keeping formatting here prevents drift between publisher adapters and keeps
messages consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from adapters.lookup_cache import ReferenceDirectory
from core.models import Load

DATE_TYPES = {
    0: "Ready to load",
    1: "Date range",
    2: "Permanent",
    3: "No cargo, rate request",
}

CURRENCIES = {
    1: "₽",
    2: "$",
    3: "€",
    4: "₴",
    5: "₸",
}

DIVIDER = "━━━━━━━━━━━━━━━━━━━━"


@dataclass(frozen=True)
class LoadLabels:
    """Human-readable names resolved for a load before formatting."""

    cities: dict[int, str] = field(default_factory=dict)
    contacts: dict[int, str] = field(default_factory=dict)


def _section(body: dict[str, Any], key: str) -> dict[str, Any]:
    value = body.get(key)
    return value if isinstance(value, dict) else {}


def _city_ids(body: dict[str, Any]) -> list[int]:
    ids = []
    for key in ("Loading", "Unloading"):
        city_id = _section(body, key).get("CityId")
        if isinstance(city_id, int) and city_id:
            ids.append(city_id)
    return ids


async def resolve_labels(load: Load, directory: ReferenceDirectory) -> LoadLabels:
    """Look up city and contact names; unknown ids are simply left out."""

    body = load.body()
    cities = await directory.city_names(_city_ids(body))
    contacts: dict[int, str] = {}
    for actor_id in (load.primary_actor_id, load.secondary_actor_id):
        if actor_id is None:
            continue
        contact = await directory.contact(actor_id)
        if contact is not None and contact.name:
            contacts[actor_id] = contact.name
    return LoadLabels(cities=cities, contacts=contacts)


def format_date(value: Any) -> str:
    if not value:
        return ""
    text = str(value)
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).strftime("%d.%m.%Y")
    except ValueError:
        return text


def _escape_md(value: str) -> str:
    for ch in r"*_[`":
        value = value.replace(ch, f"\\{ch}")
    return value


def _build_lines(
    load: Load,
    labels: LoadLabels,
    escape: Callable[[str], str],
    bold: Callable[[str], str],
) -> list[str]:
    body = load.body()
    loading = _section(body, "Loading")
    unloading = _section(body, "Unloading")

    def city(section: dict[str, Any]) -> str:
        city_id = section.get("CityId")
        if not city_id:
            return "not specified"
        return labels.cities.get(city_id) or f"city {city_id}"

    lines = [
        bold(f"LOAD #{escape(str(body.get('LoadNumber') or load.load_id))}"),
        DIVIDER,
        f"{bold('Route:')} {escape(city(loading))} → {escape(city(unloading))}",
    ]
    if loading.get("Street"):
        lines.append(f"   Loading: {escape(str(loading['Street']))}")
    if unloading.get("Street"):
        lines.append(f"   Unloading: {escape(str(unloading['Street']))}")
    if body.get("Distance"):
        lines.append(f"{bold('Distance:')} {body['Distance']} km")
    lines.append("")

    cargo = _section(body, "Cargo")
    if cargo:
        lines.append(f"{bold('Cargo:')} {cargo.get('Weight') or 0} t, {cargo.get('Volume') or 0} m³")
        if cargo.get("CargoType"):
            lines.append(f"   Type: {escape(str(cargo['CargoType']))}")

    date_type = body.get("DateType")
    lines.append(f"{bold('Readiness:')} {DATE_TYPES.get(date_type, 'not specified')}")
    if body.get("FirstDate"):
        lines.append(f"   From: {format_date(body['FirstDate'])}")
    if body.get("LastDate") and date_type != 3:
        lines.append(f"   To: {format_date(body['LastDate'])}")
    lines.append("")

    payment = _section(body, "Payment")
    if payment:
        currency = CURRENCIES.get(payment.get("CurrencyId"), "")
        if payment.get("RateSum"):
            lines.append(f"{bold('Rate:')} {payment['RateSum']} {currency}".rstrip())
        elif payment.get("SumWithoutNDS"):
            lines.append(f"{bold('Amount:')} {payment['SumWithoutNDS']} {currency} (excl. VAT)")
        elif payment.get("SumWithNDS"):
            lines.append(f"{bold('Amount:')} {payment['SumWithNDS']} {currency} (incl. VAT)")
        if payment.get("Torg"):
            lines.append("   Bargaining possible")
        if payment.get("PrepayPercent"):
            lines.append(f"   Prepayment: {payment['PrepayPercent']}%")

    if body.get("TruePrice"):
        true_currency = CURRENCIES.get(body.get("TrueCurrencyId") or 1, "")
        lines.append(f"{bold('Stated rate:')} {body['TruePrice']} {true_currency}".rstrip())

    if body.get("Note"):
        lines.extend(["", bold("Note:"), escape(str(body["Note"]))])

    lines.append("")
    for index, actor_id in enumerate((load.primary_actor_id, load.secondary_actor_id), start=1):
        if actor_id is None:
            continue
        label = "Contact:" if index == 1 else "Contact 2:"
        name = labels.contacts.get(actor_id)
        shown = f"{escape(name)} ({actor_id})" if name else str(actor_id)
        lines.append(f"{bold(label)} {shown}")

    if body.get("AddedAt"):
        lines.append(f"{bold('Added:')} {format_date(body['AddedAt'])}")
    return lines


def format_load_message(load: Load, labels: Optional[LoadLabels] = None, mode: str = "html") -> str:
    """Return the load formatted for the requested Telegram parse mode."""

    labels = labels or LoadLabels()
    if mode == "html":
        lines = _build_lines(load, labels, html.escape, lambda text: f"<b>{text}</b>")
    elif mode == "markdown":
        lines = _build_lines(load, labels, _escape_md, lambda text: f"**{text}**")
    else:
        raise ValueError(f"Unsupported message format: {mode}")
    return "\n".join(lines)
