"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SyncConfig:
    """Scheduling and timeout settings for reconciliation passes."""

    interval_seconds: float
    fetch_timeout_seconds: float
    run_on_start: bool = True


@dataclass(frozen=True)
class PublishConfig:
    """Delivery settings consumed by publisher adapters."""

    chat_id: str
    default_topic_id: Optional[int]
