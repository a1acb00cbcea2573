"""Static configuration for cargoscope.

All user-editable settings (sync cadence, publishing target, topics, logging)
live in a single JSON file for quick edits without touching Python. Secrets
stay in .env.
"""

import json
import os

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Where to store the SQLite database.
DB_PATH = os.getenv("CARGOSCOPE_DB") or os.path.join(PROJECT_ROOT, "cargoscope.db")

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _optional_int(value):
    if value in (None, ""):
        return None
    return int(value)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Reconciliation cadence. A pass also runs after every whitelist change and
# on manual rescan; the timeout bounds a single feed fetch.
_sync = _CONFIG.get("sync", {})
SYNC_INTERVAL_SECONDS = float(_sync.get("interval_seconds", 300))
FETCH_TIMEOUT_SECONDS = float(_sync.get("fetch_timeout_seconds", 30))
SYNC_ON_START = bool(_sync.get("run_on_start", True))

# Marketplace API.
_ati = _CONFIG.get("ati", {})
ATI_BASE_URL = _ati.get("base_url", "https://api.ati.su")
CONTACTS_TTL_SECONDS = float(_ati.get("contacts_ttl_seconds", 300))

# Publishing switches adapters without changing core logic.
# - method: "bot" (Bot API, needs BOT_API) or "client" (Telethon session)
_publishing = _CONFIG.get("publishing", {})
PUBLISH_METHOD = _publishing.get("method", "bot")
PUBLISH_CHAT_ID = _publishing.get("chat_id")
DEFAULT_TOPIC_ID = _optional_int(_publishing.get("default_topic_id"))

# Topics seeded into the database on startup.
TOPICS_CONFIG = _CONFIG.get("topics", [])

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
