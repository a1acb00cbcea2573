"""Delivery path from the pending queue to the Telegram chat.

A load moves to published only after the chat accepted it. Failed deliveries
leave the load pending so a moderator can retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from core.errors import CargoscopeError, DeliveryError, NotFoundError
from core.ports import LoadStorePort, PublisherPort
from core.queue import LoadQueue

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishReport:
    """Outcome of a bulk publish."""

    published: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


class LoadPublisher:
    """Sends pending loads and records the move to published."""

    def __init__(
        self,
        queue: LoadQueue,
        store: LoadStorePort,
        publisher: PublisherPort,
        default_topic_id: Optional[int] = None,
        default_chat_id: Optional[str] = None,
    ) -> None:
        self._queue = queue
        self._store = store
        self._publisher = publisher
        self._default_topic_id = default_topic_id
        self._default_chat_id = default_chat_id

    async def publish(self, load_id: str, topic_id: Optional[int] = None) -> int:
        """Publish one pending load and return the Telegram message id."""

        load = self._queue.get_pending(load_id)
        target_topic = topic_id if topic_id is not None else self._default_topic_id
        sent = await self._publisher.send_load(load, target_topic)
        try:
            self._queue.publish(load.load_id, chat_id=sent.chat_id, message_id=sent.message_id)
        except NotFoundError as exc:
            LOGGER.warning("Load %s was sent as message %s but is no longer pending", load_id, sent.message_id)
            raise NotFoundError(
                f"Load {load_id} was delivered as message {sent.message_id} but is no longer pending"
            ) from exc
        if target_topic is not None:
            LOGGER.info("Load %s sent as message %s to topic %s", load_id, sent.message_id, target_topic)
        else:
            LOGGER.info("Load %s sent as message %s", load_id, sent.message_id)
        return sent.message_id

    async def publish_many(self, load_ids: Iterable[str], topic_id: Optional[int] = None) -> PublishReport:
        """Publish every found pending load; report failures and missing ids."""

        target_topic = topic_id if topic_id is not None else self._default_topic_id
        failed: list[str] = []
        missing: list[str] = []
        message_ids: dict[str, int] = {}
        chat_id: Optional[str] = None

        for load_id in dict.fromkeys(str(item) for item in load_ids):
            load = self._store.get_pending(load_id)
            if load is None:
                missing.append(load_id)
                continue
            try:
                sent = await self._publisher.send_load(load, target_topic)
            except DeliveryError as exc:
                LOGGER.error("Delivery of load %s failed: %s", load_id, exc)
                failed.append(load_id)
                continue
            except Exception:
                # Anything else still must not strand the loads sent so far.
                LOGGER.exception("Delivery of load %s failed unexpectedly", load_id)
                failed.append(load_id)
                continue
            chat_id = sent.chat_id
            message_ids[load_id] = sent.message_id

        published: list[str] = []
        if message_ids:
            result = self._queue.publish_many(list(message_ids), chat_id=chat_id, message_ids=message_ids)
            published = result.applied
            # Delivered but no longer pending: a racing moderator or an
            # eviction moved it first. The message is out either way.
            missing.extend(result.missing)

        LOGGER.info(
            "Bulk publish finished: published=%s failed=%s missing=%s",
            len(published),
            len(failed),
            len(missing),
        )
        return PublishReport(published=published, failed=failed, missing=missing)

    async def retract(self, load_id: str) -> None:
        """Delete the chat message of a published load. The marker stays."""

        marker = self._queue.get_published(load_id)
        if marker.message_id is None or marker.chat_id is None:
            raise NotFoundError(f"No message recorded for load {load_id}")
        await self._publisher.delete_message(marker.chat_id, marker.message_id)
        LOGGER.info("Deleted message %s of load %s", marker.message_id, load_id)

    async def delete_message(self, message_id: int, chat_id: Optional[str] = None) -> None:
        target = chat_id or self._default_chat_id
        if not target:
            raise CargoscopeError("No chat id given and none configured")
        await self._publisher.delete_message(target, message_id)
