"""Background worker that owns reconciliation scheduling.

The worker runs on the process event loop. It wakes up on a fixed interval
or when ``request`` is called (whitelist changes, manual rescan), runs one
pass at a time and publishes every outcome on its own error channel instead
of letting failures of triggered passes disappear.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from core.errors import CargoscopeError
from core.models import SyncResult
from core.reconciler import Reconciler

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncOutcome:
    """Result or error of one pass, as seen by observers of the worker."""

    reason: str
    finished_at: datetime
    result: Optional[SyncResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SyncWorker:
    """Single logical worker triggering reconciliation passes."""

    def __init__(
        self,
        reconciler: Reconciler,
        interval_seconds: float,
        history_size: int = 50,
        on_outcome: Optional[Callable[[SyncOutcome], None]] = None,
    ) -> None:
        self._reconciler = reconciler
        self._interval = interval_seconds
        self.on_outcome = on_outcome
        self.outcomes: deque[SyncOutcome] = deque(maxlen=history_size)
        # A single slot is enough: any number of requests made while one is
        # already waiting are satisfied by the same pass.
        self._requests: Optional[asyncio.Queue[str]] = None

    def _queue(self) -> asyncio.Queue[str]:
        if self._requests is None:
            self._requests = asyncio.Queue(maxsize=1)
        return self._requests

    @property
    def last_outcome(self) -> Optional[SyncOutcome]:
        return self.outcomes[-1] if self.outcomes else None

    def request(self, reason: str) -> None:
        """Ask for a pass soon; never blocks and never raises on a busy queue."""

        try:
            self._queue().put_nowait(reason)
            LOGGER.info("Sync requested: %s", reason)
        except asyncio.QueueFull:
            LOGGER.debug("Sync already requested; coalescing %s", reason)

    async def run_once(self, reason: str) -> SyncOutcome:
        """Run one pass now and record its outcome. Errors are not raised."""

        try:
            result = await self._reconciler.run_full_sync()
        except CargoscopeError as exc:
            LOGGER.error("Sync (%s) failed: %s", reason, exc)
            outcome = self._record(reason, error=f"{type(exc).__name__}: {exc}")
        except Exception as exc:
            LOGGER.exception("Sync (%s) crashed", reason)
            outcome = self._record(reason, error=f"{type(exc).__name__}: {exc}")
        else:
            outcome = self._record(reason, result=result)
        return outcome

    async def run_forever(self, run_on_start: bool = True) -> None:
        """Serve timer ticks and explicit requests until cancelled."""

        queue = self._queue()
        if run_on_start:
            await self.run_once("startup")
        while True:
            try:
                reason = await asyncio.wait_for(queue.get(), timeout=self._interval)
            except asyncio.TimeoutError:
                reason = "interval"
            await self.run_once(reason)

    def _record(
        self,
        reason: str,
        result: Optional[SyncResult] = None,
        error: Optional[str] = None,
    ) -> SyncOutcome:
        outcome = SyncOutcome(
            reason=reason,
            finished_at=datetime.now(timezone.utc),
            result=result,
            error=error,
        )
        self.outcomes.append(outcome)
        if self.on_outcome is not None:
            try:
                self.on_outcome(outcome)
            except Exception:
                LOGGER.exception("Sync outcome listener failed")
        return outcome
