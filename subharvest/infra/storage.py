"""SQLite-backed store for subscriptions and their fetched configs."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Iterable, Protocol, Sequence

from ..engine.fetcher import validate_url
from ..errors import NotFound, StoreError
from ..models import Subscription, SubscriptionConfig

_UNSET = object()

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS subscriptions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        url TEXT NOT NULL UNIQUE,
        remark TEXT,
        user_agent TEXT,
        enabled INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        last_fetched_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS subscription_configs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        subscription_id INTEGER REFERENCES subscriptions(id) ON DELETE CASCADE,
        config_link TEXT NOT NULL UNIQUE,
        protocol TEXT,
        remark TEXT,
        added_at TEXT NOT NULL,
        last_seen_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_configs_subscription ON subscription_configs(subscription_id)",
    "CREATE INDEX IF NOT EXISTS idx_configs_protocol ON subscription_configs(protocol)",
)

# The raw link is unique across all subscriptions; a later unlinked fetch never clears an owner.
_UPSERT_CONFIG = """
    INSERT INTO subscription_configs
        (subscription_id, config_link, protocol, remark, added_at, last_seen_at)
    VALUES (?, ?, ?, ?, ?, ?)
    ON CONFLICT(config_link) DO UPDATE SET
        subscription_id = COALESCE(excluded.subscription_id, subscription_configs.subscription_id),
        protocol = COALESCE(excluded.protocol, subscription_configs.protocol),
        remark = COALESCE(excluded.remark, subscription_configs.remark),
        last_seen_at = excluded.last_seen_at
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_text(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_text(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


class StoreAdapter(Protocol):
    """Read/write contract the orchestrator relies on."""

    def list_subscriptions(self) -> list[Subscription]: ...

    def get_subscription(self, subscription_id: int) -> Subscription: ...

    def upsert_configs(self, configs: Sequence[SubscriptionConfig]) -> None: ...

    def update_subscription_fetched(self, subscription_id: int, fetched_at: datetime) -> None: ...


class SubscriptionStore:
    """Manage one SQLite connection with basic schema guarantees."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = Lock()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            self._ensure_schema(conn)
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(f"cannot open database {self.path}: {exc}") from exc
        self._conn = conn

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        for statement in _SCHEMA:
            conn.execute(statement)
        conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def add_subscription(
        self, url: str, remark: str | None = None, user_agent: str | None = None
    ) -> Subscription:
        url = validate_url(url)
        try:
            with self._lock:
                cur = self._conn.execute(
                    "INSERT INTO subscriptions(url, remark, user_agent, enabled, created_at) VALUES (?, ?, ?, 1, ?)",
                    (url, remark or None, user_agent or None, _to_text(_utcnow())),
                )
                self._conn.commit()
                new_id = cur.lastrowid
        except sqlite3.IntegrityError as exc:
            raise StoreError(f"subscription already exists: {url}") from exc
        except sqlite3.Error as exc:
            raise StoreError(f"failed to add subscription: {exc}") from exc
        return self.get_subscription(new_id)

    def list_subscriptions(self) -> list[Subscription]:
        rows = self._query("SELECT * FROM subscriptions ORDER BY id")
        return [self._subscription_from_row(row) for row in rows]

    def get_subscription(self, subscription_id: int) -> Subscription:
        rows = self._query("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,))
        if not rows:
            raise NotFound(f"subscription with ID {subscription_id} not found")
        return self._subscription_from_row(rows[0])

    def update_subscription(
        self,
        subscription_id: int,
        *,
        url: object = _UNSET,
        remark: object = _UNSET,
        user_agent: object = _UNSET,
        enabled: object = _UNSET,
    ) -> Subscription:
        """Change only the fields that are passed; empty strings clear optional text."""

        assignments: list[str] = []
        values: list[object] = []
        if url is not _UNSET:
            assignments.append("url = ?")
            values.append(validate_url(str(url)))
        if remark is not _UNSET:
            assignments.append("remark = ?")
            values.append(remark or None)
        if user_agent is not _UNSET:
            assignments.append("user_agent = ?")
            values.append(user_agent or None)
        if enabled is not _UNSET:
            assignments.append("enabled = ?")
            values.append(1 if enabled else 0)
        if not assignments:
            raise StoreError("at least one field must be specified to update")

        self.get_subscription(subscription_id)
        self._execute(
            f"UPDATE subscriptions SET {', '.join(assignments)} WHERE id = ?",
            (*values, subscription_id),
        )
        return self.get_subscription(subscription_id)

    def delete_subscription(self, subscription_id: int) -> None:
        self.get_subscription(subscription_id)
        self._execute("DELETE FROM subscriptions WHERE id = ?", (subscription_id,))

    def update_subscription_fetched(self, subscription_id: int, fetched_at: datetime) -> None:
        changed = self._execute(
            "UPDATE subscriptions SET last_fetched_at = ? WHERE id = ?",
            (_to_text(fetched_at), subscription_id),
        )
        if changed == 0:
            raise NotFound(f"subscription with ID {subscription_id} not found")

    # ------------------------------------------------------------------
    # Configs
    # ------------------------------------------------------------------
    def upsert_configs(self, configs: Sequence[SubscriptionConfig]) -> None:
        now = _utcnow()
        params = [
            (
                config.subscription_id,
                config.config_link,
                config.protocol,
                config.remark,
                _to_text(config.added_at or now),
                _to_text(config.last_seen_at or now),
            )
            for config in configs
        ]
        if not params:
            return
        try:
            with self._lock:
                with self._conn:
                    self._conn.executemany(_UPSERT_CONFIG, params)
        except sqlite3.Error as exc:
            raise StoreError(f"failed to save configs: {exc}") from exc

    def list_configs(
        self,
        subscription_id: int | None = None,
        protocol: str | None = None,
        limit: int | None = 50,
    ) -> list[SubscriptionConfig]:
        clauses: list[str] = []
        values: list[object] = []
        if subscription_id:
            clauses.append("subscription_id = ?")
            values.append(subscription_id)
        if protocol:
            clauses.append("protocol = ?")
            values.append(protocol)
        sql = "SELECT * FROM subscription_configs"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY last_seen_at DESC, id DESC"
        if limit and limit > 0:
            sql += " LIMIT ?"
            values.append(limit)
        return [self._config_from_row(row) for row in self._query(sql, tuple(values))]

    def get_config(self, config_link: str) -> SubscriptionConfig:
        rows = self._query(
            "SELECT * FROM subscription_configs WHERE config_link = ?", (config_link,)
        )
        if not rows:
            raise NotFound(f"config not found: {config_link}")
        return self._config_from_row(rows[0])

    def count_configs(self, subscription_id: int | None = None) -> int:
        if subscription_id is None:
            rows = self._query("SELECT COUNT(*) AS total FROM subscription_configs")
        else:
            rows = self._query(
                "SELECT COUNT(*) AS total FROM subscription_configs WHERE subscription_id = ?",
                (subscription_id,),
            )
        return int(rows[0]["total"])

    # ------------------------------------------------------------------
    def _query(self, sql: str, params: Iterable[object] = ()) -> list[sqlite3.Row]:
        try:
            with self._lock:
                return self._conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def _execute(self, sql: str, params: Iterable[object] = ()) -> int:
        try:
            with self._lock:
                with self._conn:
                    cur = self._conn.execute(sql, tuple(params))
                return cur.rowcount
        except sqlite3.IntegrityError as exc:
            raise StoreError(f"constraint violated: {exc}") from exc
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    @staticmethod
    def _subscription_from_row(row: sqlite3.Row) -> Subscription:
        return Subscription(
            id=row["id"],
            url=row["url"],
            remark=row["remark"],
            user_agent=row["user_agent"],
            enabled=bool(row["enabled"]),
            created_at=_from_text(row["created_at"]),
            last_fetched_at=_from_text(row["last_fetched_at"]),
        )

    @staticmethod
    def _config_from_row(row: sqlite3.Row) -> SubscriptionConfig:
        return SubscriptionConfig(
            id=row["id"],
            subscription_id=row["subscription_id"],
            config_link=row["config_link"],
            protocol=row["protocol"],
            remark=row["remark"],
            added_at=_from_text(row["added_at"]),
            last_seen_at=_from_text(row["last_seen_at"]),
        )


__all__ = ["StoreAdapter", "SubscriptionStore"]
