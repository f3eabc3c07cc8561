import os
import sqlite3
import tempfile
import unittest
from datetime import UTC, datetime

from ghwatch.errors import PersistError
from ghwatch.models import OwnerRecord, TargetKind
from ghwatch.state.sqlite_store import SqliteStateStore


class TestSqliteStateStore(unittest.TestCase):
    def test_absent_marker_reads_empty(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = SqliteStateStore(os.path.join(td, "state.sqlite3"))
            store.ensure_schema()
            self.assertEqual(store.read("a", "b", TargetKind.RELEASE), "")

    def test_marker_roundtrip_and_overwrite(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = SqliteStateStore(os.path.join(td, "state.sqlite3"))
            store.ensure_schema()

            store.write("a", "b", TargetKind.RELEASE, "v1.0.0")
            self.assertEqual(store.read("a", "b", TargetKind.RELEASE), "v1.0.0")
            store.write("a", "b", TargetKind.RELEASE, "v1.1.0")
            self.assertEqual(store.read("a", "b", TargetKind.RELEASE), "v1.1.0")

            # 同一仓库的不同 kind 互不影响
            self.assertEqual(store.read("a", "b", TargetKind.TAG), "")

            conn = sqlite3.connect(os.path.join(td, "state.sqlite3"))
            try:
                rows = conn.execute("SELECT key, value FROM markers").fetchall()
            finally:
                conn.close()
            self.assertEqual(rows, [("a/b/release", "v1.1.0")])

    def test_markers_survive_reopen(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "nested", "dir", "state.sqlite3")
            first = SqliteStateStore(path)
            first.ensure_schema()
            first.write("a", "b", TargetKind.ISSUE, "42")

            second = SqliteStateStore(path)
            second.ensure_schema()
            self.assertEqual(second.read("a", "b", TargetKind.ISSUE), "42")

    def test_owner_cache_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = SqliteStateStore(os.path.join(td, "state.sqlite3"))
            store.ensure_schema()
            self.assertIsNone(store.read_owner("octocat"))

            t = datetime(2026, 2, 10, 12, 0, tzinfo=UTC)
            store.write_owner(OwnerRecord(name="octocat", avatar_url="https://a/1.png", cached_at=t))
            record = store.read_owner("octocat")
            assert record is not None
            self.assertEqual(record.avatar_url, "https://a/1.png")
            self.assertEqual(record.cached_at, t)

    def test_write_without_schema_raises_persist_error(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = SqliteStateStore(os.path.join(td, "state.sqlite3"))
            with self.assertRaises(PersistError):
                store.write("a", "b", TargetKind.COMMIT, "abc")
