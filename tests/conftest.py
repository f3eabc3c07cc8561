import os
import sys
import threading
from dataclasses import dataclass, field

import pytest


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")

if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


from ghwatch.errors import NotFoundError  # noqa: E402
from ghwatch.models import NotificationEvent, RemoteItem, TargetKind  # noqa: E402
from ghwatch.state.sqlite_store import SqliteStateStore  # noqa: E402


@dataclass
class FakeSource:
    """
    纯内存 ActivitySource：
    - items 按 kind 预设返回值；值为异常时抛出；未预设的 kind 视为 NotFound
    - calls 记录每次调用，便于断言“是否访问了远端”
    """

    items: dict[TargetKind, object] = field(default_factory=dict)
    avatars: dict[str, str] = field(default_factory=dict)
    calls: list[tuple[str, str, str]] = field(default_factory=list)
    avatar_calls: list[str] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def _get(self, kind: TargetKind, owner: str, name: str) -> RemoteItem:
        with self.lock:
            self.calls.append((kind.value, owner, name))
        value = self.items.get(kind)
        if value is None:
            raise NotFoundError(f"{owner}/{name} has no {kind.value}")
        if isinstance(value, BaseException):
            raise value
        return value  # type: ignore[return-value]

    def latest_release(self, owner: str, name: str) -> RemoteItem:
        return self._get(TargetKind.RELEASE, owner, name)

    def latest_commit(self, owner: str, name: str) -> RemoteItem:
        return self._get(TargetKind.COMMIT, owner, name)

    def latest_issue(self, owner: str, name: str) -> RemoteItem:
        return self._get(TargetKind.ISSUE, owner, name)

    def latest_pull_request(self, owner: str, name: str) -> RemoteItem:
        return self._get(TargetKind.PULL_REQUEST, owner, name)

    def latest_tag(self, owner: str, name: str) -> RemoteItem:
        return self._get(TargetKind.TAG, owner, name)

    def owner_avatar_url(self, owner: str) -> str:
        with self.lock:
            self.avatar_calls.append(owner)
        if owner not in self.avatars:
            raise NotFoundError(owner)
        return self.avatars[owner]


@dataclass
class RecordingNotifier:
    """纯内存 Notifier：收集收到的事件与错误。"""

    name: str = "recording"
    events: list[NotificationEvent] = field(default_factory=list)
    errors: list[BaseException] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def channel(self) -> str:
        return self.name

    def notify(self, event: NotificationEvent) -> None:
        with self.lock:
            self.events.append(event)

    def report_error(self, error: BaseException) -> None:
        with self.lock:
            self.errors.append(error)


@pytest.fixture()
def store(tmp_path) -> SqliteStateStore:  # noqa: ANN001
    s = SqliteStateStore(str(tmp_path / "state.sqlite3"))
    s.ensure_schema()
    return s


@pytest.fixture()
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture()
def recorder() -> RecordingNotifier:
    return RecordingNotifier()
