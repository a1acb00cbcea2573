"""Eligibility and idempotency checks (core domain)."""

from __future__ import annotations

from typing import AbstractSet

from core.models import Load
from core.ports import LoadStorePort


def is_eligible(load: Load, whitelist_ids: AbstractSet[int]) -> bool:
    """Return True when either actor reference of the load is whitelisted.

    A load without a primary actor is never eligible, even if its secondary
    actor is trusted.
    """

    if load.primary_actor_id is None:
        return False
    if load.primary_actor_id in whitelist_ids:
        return True
    return load.secondary_actor_id is not None and load.secondary_actor_id in whitelist_ids


def is_processed(store: LoadStorePort, load_id: str) -> bool:
    """Return True when the load is already pending or published.

    Rejected loads do not count as processed; they re-enter the queue only
    through an explicit restore.
    """

    return store.is_processed(load_id)
