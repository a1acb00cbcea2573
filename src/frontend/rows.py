"""Table row helpers shared by the load tabs."""

from __future__ import annotations

from typing import Any

from core.models import Load


def _section(body: dict[str, Any], key: str) -> dict[str, Any]:
    value = body.get(key)
    return value if isinstance(value, dict) else {}


def load_row(load: Load) -> tuple[str, str, str, str, str]:
    """Return (id, route, cargo, rate, contacts) display cells."""

    body = load.body()
    loading = _section(body, "Loading").get("CityId") or "?"
    unloading = _section(body, "Unloading").get("CityId") or "?"
    cargo = _section(body, "Cargo")
    payment = _section(body, "Payment")
    rate = payment.get("RateSum") or payment.get("SumWithoutNDS") or payment.get("SumWithNDS") or ""
    contacts = ", ".join(
        str(actor_id) for actor_id in (load.primary_actor_id, load.secondary_actor_id) if actor_id is not None
    )
    weight = cargo.get("Weight")
    cargo_label = f"{weight} t {cargo.get('CargoType') or ''}".strip() if weight else str(cargo.get("CargoType") or "")
    return (
        str(body.get("LoadNumber") or load.load_id),
        f"{loading} → {unloading}",
        cargo_label,
        str(rate),
        contacts,
    )


def clip_text(value: str, limit: int = 64) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


def coerce_row_key(value: Any) -> str:
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)
