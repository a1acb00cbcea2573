"""Queue state transitions for moderated loads.

``LoadQueue`` turns the boolean/list results of the store into the core's
error taxonomy: single-item moves raise ``NotFoundError`` when the load is
not in the expected state, batch moves commit whatever they find and report
the rest.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from core.errors import NotFoundError
from core.models import BulkResult, Load, PublishedMarker
from core.ports import LoadStorePort

LOGGER = logging.getLogger(__name__)


def _unique(load_ids: Iterable[str]) -> list[str]:
    # Order is kept so the report mirrors what the moderator selected.
    seen: set[str] = set()
    ordered: list[str] = []
    for load_id in load_ids:
        key = str(load_id)
        if key in seen:
            continue
        seen.add(key)
        ordered.append(key)
    return ordered


class LoadQueue:
    """Atomic state-transition primitives over the load store."""

    def __init__(self, store: LoadStorePort) -> None:
        self._store = store

    # Reads

    def list_pending(self) -> list[Load]:
        return self._store.list_pending()

    def get_pending(self, load_id: str) -> Load:
        load = self._store.get_pending(load_id)
        if load is None:
            raise NotFoundError(f"Load {load_id} is not pending")
        return load

    def list_rejected(self) -> list[Load]:
        return self._store.list_rejected()

    def list_published(self) -> list[PublishedMarker]:
        return self._store.list_published()

    def get_published(self, load_id: str) -> PublishedMarker:
        marker = self._store.get_published(load_id)
        if marker is None:
            raise NotFoundError(f"Load {load_id} was never published")
        return marker

    def is_processed(self, load_id: str) -> bool:
        return self._store.is_processed(load_id)

    # Transitions

    def enqueue_pending(self, load: Load) -> bool:
        """Insert a load into pending; a duplicate insert is a no-op."""

        inserted = self._store.enqueue_pending(load)
        if inserted:
            LOGGER.debug("Queued load %s", load.load_id)
        return inserted

    def publish(
        self,
        load_id: str,
        chat_id: Optional[str] = None,
        message_id: Optional[int] = None,
    ) -> None:
        """Move a pending load to published."""

        message_ids = {str(load_id): message_id} if message_id is not None else None
        moved = self._store.move_to_published([str(load_id)], chat_id=chat_id, message_ids=message_ids)
        if not moved:
            raise NotFoundError(f"Load {load_id} is not pending")
        LOGGER.info("Load %s published", load_id)

    def reject(self, load_id: str) -> None:
        """Move a pending load to rejected, keeping its payload."""

        moved = self._store.move_to_rejected([str(load_id)])
        if not moved:
            raise NotFoundError(f"Load {load_id} is not pending")
        LOGGER.info("Load %s rejected", load_id)

    def restore(self, load_id: str) -> None:
        """Move a rejected load back to pending."""

        if not self._store.restore_rejected(str(load_id)):
            raise NotFoundError(f"Load {load_id} is not rejected")
        LOGGER.info("Load %s restored to pending", load_id)

    def purge(self, load_id: str) -> None:
        """Permanently delete a rejected load."""

        if not self._store.purge_rejected(str(load_id)):
            raise NotFoundError(f"Load {load_id} is not rejected")
        LOGGER.info("Load %s purged", load_id)

    def publish_many(
        self,
        load_ids: Iterable[str],
        chat_id: Optional[str] = None,
        message_ids: Optional[dict[str, int]] = None,
    ) -> BulkResult:
        requested = _unique(load_ids)
        moved = self._store.move_to_published(requested, chat_id=chat_id, message_ids=message_ids)
        return self._report("published", requested, moved)

    def reject_many(self, load_ids: Iterable[str]) -> BulkResult:
        requested = _unique(load_ids)
        moved = self._store.move_to_rejected(requested)
        return self._report("rejected", requested, moved)

    @staticmethod
    def _report(action: str, requested: list[str], moved: list[str]) -> BulkResult:
        moved_set = set(moved)
        applied = [load_id for load_id in requested if load_id in moved_set]
        missing = [load_id for load_id in requested if load_id not in moved_set]
        if missing:
            LOGGER.warning("Bulk %s: %s not pending (%s)", action, len(missing), ", ".join(missing))
        LOGGER.info("Bulk %s: %s of %s loads", action, len(applied), len(requested))
        return BulkResult(applied=applied, missing=missing)
