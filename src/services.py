"""Wiring of adapters and core services from settings.

Both the headless runner and the console build the same object graph here so
the moderation actions and the scheduler share one store, one feed client and
one worker.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

from dotenv import load_dotenv

import settings
from adapters.ati_client import AtiFeedClient
from adapters.lookup_cache import ReferenceDirectory
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_bot_publisher import TelegramBotPublisher
from adapters.telegram_client_publisher import TelegramClientPublisher
from core.config import PublishConfig, SyncConfig
from core.errors import ConfigurationError
from core.publishing import LoadPublisher
from core.queue import LoadQueue
from core.reconciler import Reconciler
from core.topics import TopicRegistry
from core.whitelist import WhitelistRegistry
from core.worker import SyncWorker

LOGGER = logging.getLogger(__name__)


@dataclass
class Services:
    storage: SQLiteStorage
    feed: AtiFeedClient
    directory: ReferenceDirectory
    queue: LoadQueue
    reconciler: Reconciler
    worker: SyncWorker
    whitelist: WhitelistRegistry
    topics: TopicRegistry
    publisher: Optional[LoadPublisher]
    sync_config: SyncConfig
    publish_config: Optional[PublishConfig]
    telegram_client: Any = None

    async def start(self) -> None:
        """Connect the Telethon session when publishing from a user account."""

        if self.telegram_client is None:
            return
        await self.telegram_client.connect()
        if not await self.telegram_client.is_user_authorized():
            raise ConfigurationError("Telegram session is not authorized; run `cargoscope login` first")

    async def close(self) -> None:
        if self.telegram_client is not None:
            await self.telegram_client.disconnect()


def _build_publisher(storage: SQLiteStorage, queue: LoadQueue, directory: ReferenceDirectory):
    """Select the publisher adapter; returns (LoadPublisher | None, config, client)."""

    if not settings.PUBLISH_CHAT_ID:
        LOGGER.warning("publishing.chat_id is not set; publishing is disabled")
        return None, None, None

    publish_config = PublishConfig(
        chat_id=str(settings.PUBLISH_CHAT_ID),
        default_topic_id=settings.DEFAULT_TOPIC_ID,
    )
    client = None
    if settings.PUBLISH_METHOD == "bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise ConfigurationError("BOT_API is required when publishing.method=bot")
        adapter = TelegramBotPublisher(bot_token, publish_config.chat_id, directory)
    elif settings.PUBLISH_METHOD == "client":
        from client import build_client

        client = build_client()
        adapter = TelegramClientPublisher(client, publish_config.chat_id, directory)
    else:
        raise ConfigurationError("publishing.method must be 'bot' or 'client'")
    LOGGER.info("Selected publishing method - %s", settings.PUBLISH_METHOD)

    publisher = LoadPublisher(
        queue,
        storage,
        adapter,
        default_topic_id=publish_config.default_topic_id,
        default_chat_id=publish_config.chat_id,
    )
    return publisher, publish_config, client


def build_services(with_publisher: bool = True) -> Services:
    load_dotenv()

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()

    sync_config = SyncConfig(
        interval_seconds=settings.SYNC_INTERVAL_SECONDS,
        fetch_timeout_seconds=settings.FETCH_TIMEOUT_SECONDS,
        run_on_start=settings.SYNC_ON_START,
    )
    feed = AtiFeedClient(
        os.getenv("ATI_API_TOKEN", ""),
        base_url=settings.ATI_BASE_URL,
        timeout=sync_config.fetch_timeout_seconds,
    )
    directory = ReferenceDirectory(feed, contacts_ttl_seconds=settings.CONTACTS_TTL_SECONDS)
    queue = LoadQueue(storage)
    reconciler = Reconciler(storage, storage, feed, sync_config.fetch_timeout_seconds)
    worker = SyncWorker(reconciler, sync_config.interval_seconds)
    whitelist = WhitelistRegistry(storage, trigger=worker, feed=feed)
    topics = TopicRegistry(storage)
    seeded = topics.seed(settings.TOPICS_CONFIG)
    if seeded:
        LOGGER.info("Seeded %s topics from config", seeded)

    publisher, publish_config, client = (None, None, None)
    if with_publisher:
        publisher, publish_config, client = _build_publisher(storage, queue, directory)

    return Services(
        storage=storage,
        feed=feed,
        directory=directory,
        queue=queue,
        reconciler=reconciler,
        worker=worker,
        whitelist=whitelist,
        topics=topics,
        publisher=publisher,
        sync_config=sync_config,
        publish_config=publish_config,
        telegram_client=client,
    )
