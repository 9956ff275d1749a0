"""Key-value storage backends behind one async contract.

Two adapters exist: a single JSON document on disk and a SQLite table. Which
one is used is decided once, by :func:`open_store`, from ``AppConfig``. Every
call is one independent operation; there are no cross-key transactions.
Backend failures surface as :class:`StorageError`.
"""

from __future__ import annotations

import copy
import json
import sqlite3
from pathlib import Path
from typing import Any, Protocol

from .config import AppConfig, StoreBackend

SCHEMA_VERSION = 1

KEY_THEME = "quantercise_theme"
KEY_SOUND_ENABLED = "quantercise_sound_enabled"
KEY_BEST_SCORE = "quantercise_best_score"
KEY_LAST_SCORE = "quantercise_last_score"
KEY_TOTAL_DRILLS = "quantercise_total_drills"
KEY_HISTORY = "quantercise_history"
KEY_CURRENT_STREAK = "quantercise_current_streak"
KEY_LONGEST_STREAK = "quantercise_longest_streak"
KEY_LAST_ACTIVITY_DATE = "quantercise_last_activity_date"


class StorageError(Exception):
    """The backing store is unavailable, full or holds unreadable data."""


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Any:
        """Return the stored JSON value, or None when absent."""
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class JsonFileStore:
    """All keys in one JSON object, rewritten atomically on every change."""

    _version = 1

    def __init__(self, path: Path) -> None:
        self._path = path
        self._data: dict[str, Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> Any:
        data = self._load()
        return copy.deepcopy(data.get(key))

    async def set(self, key: str, value: Any) -> None:
        data = dict(self._load())
        data[key] = copy.deepcopy(value)
        self._save(data)

    async def remove(self, key: str) -> None:
        data = dict(self._load())
        if key not in data:
            return
        del data[key]
        self._save(data)

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        if not self._path.exists():
            self._data = {}
            return self._data
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"cannot read {self._path}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("values"), dict):
            raise StorageError(f"unexpected layout in {self._path}")
        self._data = payload["values"]
        return self._data

    def _save(self, data: dict[str, Any]) -> None:
        payload = {"version": self._version, "values": data}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(f"{self._path.suffix}.tmp")
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"cannot write {self._path}") from exc
        # Memory only follows a successful write.
        self._data = data


class SqliteStore:
    """``kv`` table with JSON-encoded values; one connection per call."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> Any:
        try:
            conn = open_db(self._path)
            try:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"cannot read {key!r} from {self._path}") from exc
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError as exc:
            raise StorageError(f"corrupt value for {key!r}") from exc

    async def set(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"value for {key!r} is not JSON serialisable") from exc
        self._write(
            "INSERT INTO kv(key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, encoded),
        )

    async def remove(self, key: str) -> None:
        self._write("DELETE FROM kv WHERE key = ?", (key,))

    def _write(self, sql: str, params: tuple[Any, ...]) -> None:
        try:
            conn = open_db(self._path)
            try:
                with conn:
                    conn.execute(sql, params)
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"cannot write to {self._path}") from exc


def open_db(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


async def read_int(store: KeyValueStore, key: str) -> int:
    """Read a counter stored under ``key``; absent means 0."""

    raw = await store.get(key)
    try:
        return int(raw or 0)
    except (TypeError, ValueError, OverflowError) as exc:
        raise StorageError(f"unreadable number for {key!r}: {raw!r}") from exc


def open_store(config: AppConfig) -> KeyValueStore:
    if config.store_backend is StoreBackend.SQLITE:
        return SqliteStore(config.store_path)
    return JsonFileStore(config.store_path)
