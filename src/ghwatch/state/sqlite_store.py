from __future__ import annotations

import os
import sqlite3
from contextlib import closing, contextmanager
from dataclasses import dataclass
from typing import Iterator

from ..errors import PersistError
from ..models import OwnerRecord, TargetKind, parse_rfc3339_datetime, utc_now
from .store import marker_key


def default_state_path() -> str:
    return os.path.join(os.path.expanduser("~"), ".config", "ghwatch", "ghwatch.db")


@dataclass(slots=True)
class SqliteStateStore:
    """
    默认状态存储：SQLite（进程重启后仍保留）。

    表设计：
    - markers：key = "owner/name/kind"，value 为 marker 原文
    - owners：owner 头像缓存，cached_at 为 ISO8601 UTC 时间

    每个操作独立连接、独立提交，多个 worker 线程并发读写不同 key 时
    只依赖 SQLite 自身的单语句原子性。
    """

    sqlite_path: str
    busy_timeout_seconds: float = 10.0

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.sqlite_path, timeout=self.busy_timeout_seconds)
        with closing(conn):
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn

    def ensure_schema(self) -> None:
        parent = os.path.dirname(self.sqlite_path)
        if parent and self.sqlite_path != ":memory:":
            os.makedirs(parent, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS markers (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS owners (
                    name TEXT PRIMARY KEY,
                    avatar_url TEXT NOT NULL,
                    cached_at TEXT NOT NULL
                )
                """
            )

    def read(self, owner: str, name: str, kind: TargetKind) -> str:
        key = marker_key(owner, name, kind)
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM markers WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise PersistError(f"read marker failed: key={key}: {e}") from e
        if not row:
            return ""
        return str(row["value"])

    def write(self, owner: str, name: str, kind: TargetKind, value: str) -> None:
        key = marker_key(owner, name, kind)
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO markers(key, value, updated_at)
                    VALUES(?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value=excluded.value,
                        updated_at=excluded.updated_at
                    """,
                    (key, value, utc_now().isoformat()),
                )
        except sqlite3.Error as e:
            raise PersistError(f"write marker failed: key={key}: {e}") from e

    def read_owner(self, name: str) -> OwnerRecord | None:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT avatar_url, cached_at FROM owners WHERE name = ?", (name,)).fetchone()
        except sqlite3.Error as e:
            raise PersistError(f"read owner failed: name={name}: {e}") from e
        if not row:
            return None
        try:
            cached_at = parse_rfc3339_datetime(str(row["cached_at"]))
        except ValueError:
            return None
        return OwnerRecord(name=name, avatar_url=str(row["avatar_url"]), cached_at=cached_at)

    def write_owner(self, record: OwnerRecord) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO owners(name, avatar_url, cached_at)
                    VALUES(?, ?, ?)
                    """,
                    (record.name, record.avatar_url, record.cached_at.isoformat()),
                )
        except sqlite3.Error as e:
            raise PersistError(f"write owner failed: name={record.name}: {e}") from e
