"""SQLite storage adapter.

Implements the core whitelist, load and topic store ports using a single
SQLite database file. Every public method opens a short-lived connection;
state moves run inside one ``BEGIN IMMEDIATE`` transaction so concurrent
writers (scheduler, console, cron) serialise per database.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional

from core.errors import ConflictError, StorageFailureError
from core.models import Load, PublishedMarker, Topic, WhitelistEntry

# Columns added after the first release; created on old databases by init_db.
_LATE_COLUMNS = {
    "whitelisted_actors": {"phone": "TEXT", "telegram": "TEXT"},
    "published_loads": {"chat_id": "TEXT", "message_id": "INTEGER"},
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _row_to_load(row: sqlite3.Row) -> Load:
    return Load(
        load_id=row["load_id"],
        primary_actor_id=row["primary_actor_id"],
        secondary_actor_id=row["secondary_actor_id"],
        payload=row["payload"],
    )


def _row_to_entry(row: sqlite3.Row) -> WhitelistEntry:
    return WhitelistEntry(
        entry_key=int(row["id"]),
        actor_id=int(row["actor_id"]),
        name=row["name"],
        phone=row["phone"],
        telegram=row["telegram"],
        added_at=_parse_ts(row["added_at"]),
    )


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the core store ports."""

    def __init__(self, db_path: str, busy_timeout: float = 30.0) -> None:
        self._db_path = db_path
        self._busy_timeout = busy_timeout

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=self._busy_timeout)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction, mapping sqlite3 errors."""

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageFailureError(f"Cannot open {self._db_path}: {exc}") from exc
        try:
            with conn:
                if immediate:
                    conn.execute("BEGIN IMMEDIATE")
                yield conn
        except sqlite3.Error as exc:
            raise StorageFailureError(str(exc)) from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - whitelisted_actors: trusted logisticians (unique actor_id)
        - pending_loads: loads awaiting moderation, full payload
        - published_loads: delivered loads, identifier and message only
        - rejected_loads: declined loads, full payload for restore
        - topics: forum topics of the target chat
        """

        with self._session() as conn:
            # actor_id is the upstream contact id referenced by loads; id is
            # the local key used by the console to delete an entry.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS whitelisted_actors (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    actor_id INTEGER NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    phone TEXT,
                    telegram TEXT,
                    added_at TIMESTAMP NOT NULL
                )
                """
            )
            # The three load tables are keyed by the upstream load id. A load
            # id lives in at most one of pending/rejected; published is only
            # reached by moving out of pending.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS pending_loads (
                    load_id TEXT PRIMARY KEY,
                    primary_actor_id INTEGER,
                    secondary_actor_id INTEGER,
                    payload TEXT NOT NULL,
                    queued_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS published_loads (
                    load_id TEXT PRIMARY KEY,
                    published_at TIMESTAMP NOT NULL,
                    chat_id TEXT,
                    message_id INTEGER
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS rejected_loads (
                    load_id TEXT PRIMARY KEY,
                    primary_actor_id INTEGER,
                    secondary_actor_id INTEGER,
                    payload TEXT NOT NULL,
                    rejected_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS topics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    topic_id INTEGER NOT NULL UNIQUE
                )
                """
            )
            for table, columns in _LATE_COLUMNS.items():
                existing = {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}
                for column, column_type in columns.items():
                    if column not in existing:
                        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")

    # Whitelist

    def list_whitelist(self) -> list[WhitelistEntry]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT id, actor_id, name, phone, telegram, added_at FROM whitelisted_actors ORDER BY id"
            ).fetchall()
        return [_row_to_entry(row) for row in rows]

    def whitelist_actor_ids(self) -> set[int]:
        with self._session() as conn:
            rows = conn.execute("SELECT actor_id FROM whitelisted_actors").fetchall()
        return {int(row["actor_id"]) for row in rows}

    def add_whitelist_entry(
        self,
        actor_id: int,
        name: str,
        phone: Optional[str] = None,
        telegram: Optional[str] = None,
    ) -> WhitelistEntry:
        """Insert an actor; raise ConflictError if the actor_id exists."""

        added_at = _now()
        with self._session() as conn:
            try:
                cur = conn.execute(
                    """
                    INSERT INTO whitelisted_actors (actor_id, name, phone, telegram, added_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (actor_id, name, phone, telegram, added_at),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError(f"Actor {actor_id} is already whitelisted") from exc
            entry_key = int(cur.lastrowid)
        return WhitelistEntry(
            entry_key=entry_key,
            actor_id=actor_id,
            name=name,
            phone=phone,
            telegram=telegram,
            added_at=_parse_ts(added_at),
        )

    def remove_whitelist_entry(self, entry_key: int) -> bool:
        with self._session() as conn:
            cur = conn.execute("DELETE FROM whitelisted_actors WHERE id = ?", (entry_key,))
            return cur.rowcount > 0

    def update_whitelist_contact(self, entry_key: int, name: str, phone: Optional[str]) -> bool:
        with self._session() as conn:
            cur = conn.execute(
                "UPDATE whitelisted_actors SET name = ?, phone = ? WHERE id = ?",
                (name, phone, entry_key),
            )
            return cur.rowcount > 0

    # Loads

    def list_pending(self) -> list[Load]:
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT load_id, primary_actor_id, secondary_actor_id, payload
                FROM pending_loads
                ORDER BY queued_at, rowid
                """
            ).fetchall()
        return [_row_to_load(row) for row in rows]

    def get_pending(self, load_id: str) -> Optional[Load]:
        with self._session() as conn:
            row = conn.execute(
                """
                SELECT load_id, primary_actor_id, secondary_actor_id, payload
                FROM pending_loads WHERE load_id = ?
                """,
                (load_id,),
            ).fetchone()
        return _row_to_load(row) if row else None

    def pending_ids(self) -> set[str]:
        with self._session() as conn:
            rows = conn.execute("SELECT load_id FROM pending_loads").fetchall()
        return {row["load_id"] for row in rows}

    def enqueue_pending(self, load: Load) -> bool:
        """Insert into pending unless the id is pending, published or rejected."""

        with self._session() as conn:
            cur = conn.execute(
                """
                INSERT OR IGNORE INTO pending_loads (
                    load_id, primary_actor_id, secondary_actor_id, payload, queued_at
                )
                SELECT ?, ?, ?, ?, ?
                WHERE NOT EXISTS (SELECT 1 FROM published_loads WHERE load_id = ?)
                  AND NOT EXISTS (SELECT 1 FROM rejected_loads WHERE load_id = ?)
                """,
                (
                    load.load_id,
                    load.primary_actor_id,
                    load.secondary_actor_id,
                    load.payload,
                    _now(),
                    load.load_id,
                    load.load_id,
                ),
            )
            return cur.rowcount > 0

    def evict_pending(self, load_ids: Iterable[str]) -> int:
        """Delete pending loads and return how many were actually removed."""

        removed = 0
        with self._session(immediate=True) as conn:
            for load_id in load_ids:
                cur = conn.execute("DELETE FROM pending_loads WHERE load_id = ?", (load_id,))
                removed += cur.rowcount
        return removed

    def move_to_published(
        self,
        load_ids: Iterable[str],
        chat_id: Optional[str] = None,
        message_ids: Optional[dict[str, int]] = None,
    ) -> list[str]:
        message_ids = message_ids or {}
        published_at = _now()
        moved: list[str] = []
        with self._session(immediate=True) as conn:
            for load_id in load_ids:
                cur = conn.execute("DELETE FROM pending_loads WHERE load_id = ?", (load_id,))
                if not cur.rowcount:
                    continue
                conn.execute(
                    """
                    INSERT OR REPLACE INTO published_loads (load_id, published_at, chat_id, message_id)
                    VALUES (?, ?, ?, ?)
                    """,
                    (load_id, published_at, chat_id, message_ids.get(load_id)),
                )
                moved.append(load_id)
        return moved

    def move_to_rejected(self, load_ids: Iterable[str]) -> list[str]:
        rejected_at = _now()
        moved: list[str] = []
        with self._session(immediate=True) as conn:
            for load_id in load_ids:
                row = conn.execute(
                    """
                    SELECT load_id, primary_actor_id, secondary_actor_id, payload
                    FROM pending_loads WHERE load_id = ?
                    """,
                    (load_id,),
                ).fetchone()
                if row is None:
                    continue
                conn.execute("DELETE FROM pending_loads WHERE load_id = ?", (load_id,))
                conn.execute(
                    """
                    INSERT OR REPLACE INTO rejected_loads (
                        load_id, primary_actor_id, secondary_actor_id, payload, rejected_at
                    ) VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        row["load_id"],
                        row["primary_actor_id"],
                        row["secondary_actor_id"],
                        row["payload"],
                        rejected_at,
                    ),
                )
                moved.append(load_id)
        return moved

    def restore_rejected(self, load_id: str) -> bool:
        with self._session(immediate=True) as conn:
            row = conn.execute(
                """
                SELECT load_id, primary_actor_id, secondary_actor_id, payload
                FROM rejected_loads WHERE load_id = ?
                """,
                (load_id,),
            ).fetchone()
            if row is None:
                return False
            conn.execute("DELETE FROM rejected_loads WHERE load_id = ?", (load_id,))
            conn.execute(
                """
                INSERT OR IGNORE INTO pending_loads (
                    load_id, primary_actor_id, secondary_actor_id, payload, queued_at
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    row["load_id"],
                    row["primary_actor_id"],
                    row["secondary_actor_id"],
                    row["payload"],
                    _now(),
                ),
            )
        return True

    def purge_rejected(self, load_id: str) -> bool:
        with self._session() as conn:
            cur = conn.execute("DELETE FROM rejected_loads WHERE load_id = ?", (load_id,))
            return cur.rowcount > 0

    def list_rejected(self) -> list[Load]:
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT load_id, primary_actor_id, secondary_actor_id, payload
                FROM rejected_loads
                ORDER BY rejected_at DESC, rowid DESC
                """
            ).fetchall()
        return [_row_to_load(row) for row in rows]

    def is_rejected(self, load_id: str) -> bool:
        with self._session() as conn:
            row = conn.execute("SELECT 1 FROM rejected_loads WHERE load_id = ?", (load_id,)).fetchone()
        return row is not None

    def is_processed(self, load_id: str) -> bool:
        """True when the load is pending or published."""

        with self._session() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM pending_loads WHERE load_id = ?
                UNION ALL
                SELECT 1 FROM published_loads WHERE load_id = ?
                LIMIT 1
                """,
                (load_id, load_id),
            ).fetchone()
        return row is not None

    def list_published(self) -> list[PublishedMarker]:
        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT load_id, published_at, chat_id, message_id
                FROM published_loads
                ORDER BY published_at DESC
                """
            ).fetchall()
        return [self._row_to_marker(row) for row in rows]

    def get_published(self, load_id: str) -> Optional[PublishedMarker]:
        with self._session() as conn:
            row = conn.execute(
                "SELECT load_id, published_at, chat_id, message_id FROM published_loads WHERE load_id = ?",
                (load_id,),
            ).fetchone()
        return self._row_to_marker(row) if row else None

    @staticmethod
    def _row_to_marker(row: sqlite3.Row) -> PublishedMarker:
        return PublishedMarker(
            load_id=row["load_id"],
            published_at=_parse_ts(row["published_at"]) or datetime.now(timezone.utc),
            chat_id=row["chat_id"],
            message_id=row["message_id"],
        )

    # Topics

    def list_topics(self) -> list[Topic]:
        with self._session() as conn:
            rows = conn.execute("SELECT id, name, topic_id FROM topics ORDER BY name").fetchall()
        return [Topic(entry_key=int(row["id"]), name=row["name"], topic_id=int(row["topic_id"])) for row in rows]

    def add_topic(self, name: str, topic_id: int) -> Topic:
        with self._session() as conn:
            try:
                cur = conn.execute("INSERT INTO topics (name, topic_id) VALUES (?, ?)", (name, topic_id))
            except sqlite3.IntegrityError as exc:
                raise ConflictError(f"Topic {topic_id} already exists") from exc
            return Topic(entry_key=int(cur.lastrowid), name=name, topic_id=topic_id)

    def update_topic(self, entry_key: int, name: str, topic_id: int) -> bool:
        with self._session() as conn:
            try:
                cur = conn.execute(
                    "UPDATE topics SET name = ?, topic_id = ? WHERE id = ?",
                    (name, topic_id, entry_key),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError(f"Topic {topic_id} already exists") from exc
            return cur.rowcount > 0

    def remove_topic(self, entry_key: int) -> bool:
        with self._session() as conn:
            cur = conn.execute("DELETE FROM topics WHERE id = ?", (entry_key,))
            return cur.rowcount > 0
