"""Telethon session for publishing from a user account.

Only ``publishing.method = "client"`` needs it; the Bot API path posts with a
token and keeps no session. The ``.session`` file lives next to config.json so
``cargoscope login`` and the worker share it regardless of the working
directory.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from telethon import TelegramClient

import settings
from core.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "cargoscope"


def session_path(session_name: Optional[str] = None) -> str:
    """Absolute session path; Telethon appends the .session suffix itself."""

    name = session_name or os.getenv("SESSION_NAME") or DEFAULT_SESSION_NAME
    if os.path.isabs(name):
        return name
    return os.path.join(settings.PROJECT_ROOT, name)


def api_credentials() -> tuple[int, str]:
    """API_ID and API_HASH from the environment (.env is loaded by settings)."""

    api_id = (os.getenv("API_ID") or "").strip()
    api_hash = (os.getenv("API_HASH") or "").strip()
    if not api_id or not api_hash:
        raise ConfigurationError("API_ID and API_HASH are required when publishing.method=client")
    if not api_id.isdigit():
        raise ConfigurationError(f"API_ID must be numeric, got {api_id!r}")
    return int(api_id), api_hash


def build_client(session_name: Optional[str] = None) -> TelegramClient:
    api_id, api_hash = api_credentials()
    path = session_path(session_name)
    LOGGER.info("Using Telegram session %s", os.path.basename(path))
    return TelegramClient(path, api_id, api_hash)
