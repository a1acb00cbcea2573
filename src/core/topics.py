"""Forum topics loads can be published into."""

from __future__ import annotations

import logging

from core.errors import NotFoundError
from core.models import Topic
from core.ports import TopicStorePort

LOGGER = logging.getLogger(__name__)


class TopicRegistry:
    def __init__(self, store: TopicStorePort) -> None:
        self._store = store

    def list(self) -> list[Topic]:
        return self._store.list_topics()

    def add(self, name: str, topic_id: int) -> Topic:
        topic = self._store.add_topic(name, topic_id)
        LOGGER.info("Added topic %s (%s)", topic.name, topic.topic_id)
        return topic

    def update(self, entry_key: int, name: str, topic_id: int) -> None:
        if not self._store.update_topic(entry_key, name, topic_id):
            raise NotFoundError(f"Topic {entry_key} not found")

    def remove(self, entry_key: int) -> None:
        if not self._store.remove_topic(entry_key):
            raise NotFoundError(f"Topic {entry_key} not found")
        LOGGER.info("Removed topic %s", entry_key)

    def seed(self, topics: list[dict]) -> int:
        """Insert configured topics that are not stored yet."""

        known = {topic.topic_id for topic in self._store.list_topics()}
        added = 0
        for entry in topics:
            name = entry.get("name")
            topic_id = entry.get("topic_id")
            if not name or topic_id is None or int(topic_id) in known:
                continue
            self.add(str(name), int(topic_id))
            known.add(int(topic_id))
            added += 1
        return added
