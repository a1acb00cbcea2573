"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the marketplace feed or to Telegram types.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class Load:
    """A marketplace listing as seen at intake.

    Only the identifier and the two actor references are interpreted by the
    core. ``payload`` is the listing body as JSON text and is kept verbatim so
    a rejected load can be restored and formatted without re-fetching.
    """

    load_id: str
    primary_actor_id: Optional[int]
    secondary_actor_id: Optional[int]
    payload: str

    def body(self) -> dict[str, Any]:
        """Decode the payload for presentation code."""

        try:
            decoded = json.loads(self.payload)
        except ValueError:
            return {}
        return decoded if isinstance(decoded, dict) else {}


@dataclass(frozen=True)
class WhitelistEntry:
    """A trusted logistician whose loads may be queued."""

    entry_key: int
    actor_id: int
    name: str
    phone: Optional[str] = None
    telegram: Optional[str] = None
    added_at: Optional[datetime] = None


@dataclass(frozen=True)
class PublishedMarker:
    """Record left behind after a load was delivered."""

    load_id: str
    published_at: datetime
    chat_id: Optional[str] = None
    message_id: Optional[int] = None


@dataclass(frozen=True)
class Topic:
    """A forum topic of the target chat that loads can be published into."""

    entry_key: int
    name: str
    topic_id: int


@dataclass(frozen=True)
class SyncResult:
    """Counts reported by one reconciliation pass."""

    newly_queued: int
    evicted: int


@dataclass(frozen=True)
class BulkResult:
    """Outcome of a batch moderation action.

    Unmatched identifiers are reported rather than failing the whole batch.
    """

    applied: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def applied_count(self) -> int:
        return len(self.applied)


@dataclass(frozen=True)
class PublishedMessage:
    """Where a load ended up after delivery."""

    chat_id: str
    message_id: int


@dataclass(frozen=True)
class Contact:
    """An upstream firm contact (logistician) as returned by the feed."""

    actor_id: int
    name: Optional[str]
    phone: Optional[str]
    mobile: Optional[str]
    email: Optional[str] = None
