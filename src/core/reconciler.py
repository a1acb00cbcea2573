"""Full synchronization of the pending queue against the marketplace feed.

This module is integration-agnostic. It only relies on ports for storage and
the feed, so it can be driven by the scheduler, the console or a cron job.

A pass enforces a strict order:
1) Snapshot the whitelist
2) Empty whitelist: clear pending and stop (no fetch)
3) Fetch the upstream snapshot under a timeout
4) Evict pending loads that disappeared upstream
5) Enqueue eligible, unprocessed loads in upstream order
"""

from __future__ import annotations

import asyncio
import logging

from core.eligibility import is_eligible, is_processed
from core.errors import UpstreamUnavailableError
from core.models import Load, SyncResult
from core.ports import FeedPort, LoadStorePort, WhitelistStorePort

LOGGER = logging.getLogger(__name__)


class Reconciler:
    """Drives fetch, evict-stale, then filter-and-enqueue-new."""

    def __init__(
        self,
        whitelist: WhitelistStorePort,
        store: LoadStorePort,
        feed: FeedPort,
        fetch_timeout_seconds: float,
    ) -> None:
        self._whitelist = whitelist
        self._store = store
        self._feed = feed
        self._fetch_timeout = fetch_timeout_seconds
        # One pass at a time per process; other processes converge through
        # the store's per-key atomicity.
        self._lock = asyncio.Lock()

    async def run_full_sync(self) -> SyncResult:
        """Run one reconciliation pass and return (newly_queued, evicted)."""

        async with self._lock:
            return await self._run()

    async def _run(self) -> SyncResult:
        LOGGER.info("Full sync started")

        whitelist_ids = self._whitelist.whitelist_actor_ids()
        if not whitelist_ids:
            # Nothing can justify a pending load without trusted actors.
            evicted = self._store.evict_pending(self._store.pending_ids())
            LOGGER.warning("Whitelist is empty; cleared %s pending loads without fetching", evicted)
            return SyncResult(newly_queued=0, evicted=evicted)
        LOGGER.info("Whitelist has %s actors", len(whitelist_ids))

        upstream = await self._fetch()
        LOGGER.info("Fetched %s active loads", len(upstream))

        # Eviction must finish before intake so a load is never evicted and
        # re-queued within the same pass.
        upstream_ids = {load.load_id for load in upstream}
        stale = self._store.pending_ids() - upstream_ids
        evicted = self._store.evict_pending(stale) if stale else 0
        if evicted:
            LOGGER.info("Evicted %s stale pending loads", evicted)

        newly_queued = 0
        for load in upstream:
            if self._admit(load, whitelist_ids) and self._store.enqueue_pending(load):
                newly_queued += 1

        LOGGER.info("Full sync finished: queued=%s evicted=%s", newly_queued, evicted)
        return SyncResult(newly_queued=newly_queued, evicted=evicted)

    async def _fetch(self) -> list[Load]:
        try:
            return list(await asyncio.wait_for(self._feed.fetch_active_loads(), timeout=self._fetch_timeout))
        except asyncio.TimeoutError as exc:
            raise UpstreamUnavailableError(
                f"Feed did not answer within {self._fetch_timeout:g}s"
            ) from exc

    def _admit(self, load: Load, whitelist_ids: set[int]) -> bool:
        if load.primary_actor_id is None:
            LOGGER.warning("Skipping load %s: no primary contact", load.load_id)
            return False
        if not is_eligible(load, whitelist_ids):
            return False
        if is_processed(self._store, load.load_id):
            return False
        if self._store.is_rejected(load.load_id):
            # Rejection is sticky until a moderator restores the load.
            return False
        return True
