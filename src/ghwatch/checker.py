from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .errors import NotFoundError
from .models import NotificationEvent, RemoteItem, RepositoryTarget, TargetKind
from .notify.fanout import FanOut
from .sources.base import ActivitySource
from .state.avatars import AvatarCache
from .state.store import StateStore
from .versions import compare_versions

logger = logging.getLogger(__name__)


def _version_is_newer(marker: str, item: RemoteItem) -> bool:
    return not (marker and compare_versions(marker, str(item.key)) >= 0)


def _hash_is_newer(marker: str, item: RemoteItem) -> bool:
    return marker != str(item.key)


def _id_is_newer(marker: str, item: RemoteItem) -> bool:
    try:
        current = int(marker)
    except ValueError:
        # 空 marker（从未记录）或被写坏的 marker 一律视为“有更新”
        return True
    return current < int(item.key)


@dataclass(frozen=True, slots=True)
class CheckStrategy:
    """
    某一种 target kind 的差异点：从哪里拉取、如何判断更新、如何编码 marker。

    Checker 的流程（读 -> 拉取 -> 比较 -> 写 -> 通知）对所有 kind 相同。
    """

    kind: TargetKind
    fetch: Callable[[ActivitySource, str, str], RemoteItem]
    is_newer: Callable[[str, RemoteItem], bool]
    encode_marker: Callable[[RemoteItem], str] = lambda item: str(item.key)


STRATEGIES: dict[TargetKind, CheckStrategy] = {
    TargetKind.RELEASE: CheckStrategy(
        kind=TargetKind.RELEASE,
        fetch=lambda source, owner, name: source.latest_release(owner, name),
        is_newer=_version_is_newer,
    ),
    TargetKind.COMMIT: CheckStrategy(
        kind=TargetKind.COMMIT,
        fetch=lambda source, owner, name: source.latest_commit(owner, name),
        is_newer=_hash_is_newer,
    ),
    TargetKind.ISSUE: CheckStrategy(
        kind=TargetKind.ISSUE,
        fetch=lambda source, owner, name: source.latest_issue(owner, name),
        is_newer=_id_is_newer,
    ),
    TargetKind.PULL_REQUEST: CheckStrategy(
        kind=TargetKind.PULL_REQUEST,
        fetch=lambda source, owner, name: source.latest_pull_request(owner, name),
        is_newer=_id_is_newer,
    ),
    TargetKind.TAG: CheckStrategy(
        kind=TargetKind.TAG,
        fetch=lambda source, owner, name: source.latest_tag(owner, name),
        is_newer=_version_is_newer,
    ),
}


class CheckOutcome(str, Enum):
    NOTIFIED = "notified"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True)
class CheckReport:
    target: RepositoryTarget
    outcome: CheckOutcome
    previous: str | None
    current: str | None
    error: str | None
    duration_ms: int


class InFlightKeys:
    """
    线程安全的“正在执行”集合：同一个 marker key 同时最多一个 Checker 在跑。

    上一次检查还没结束（例如网络很慢跨过了下一个 tick）时，新的检查直接跳过，
    避免两个检查对同一个 marker 做交错的读-改-写。
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys: set[str] = set()

    def try_acquire(self, key: str) -> bool:
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._keys.discard(key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


@dataclass(slots=True)
class Checker:
    """
    一个 (仓库, target kind) 的一次检查：

    1. 读 marker（不存在读到 ""）
    2. 拉取远端最新一条；NotFound 静默结束，其他错误 report_error 后结束
    3. 按 kind 的规则比较；没有变化直接结束
    4. 先写 marker，写成功后才 notify；写失败 report_error 且不通知

    Checker 本身不保存跨次运行的状态，可重复执行。
    """

    target: RepositoryTarget
    strategy: CheckStrategy
    store: StateStore
    source: ActivitySource
    fan_out: FanOut
    avatars: AvatarCache | None = None
    in_flight: InFlightKeys | None = None

    @classmethod
    def for_target(
        cls,
        target: RepositoryTarget,
        *,
        store: StateStore,
        source: ActivitySource,
        fan_out: FanOut,
        avatars: AvatarCache | None = None,
        in_flight: InFlightKeys | None = None,
    ) -> Checker:
        return cls(
            target=target,
            strategy=STRATEGIES[target.kind],
            store=store,
            source=source,
            fan_out=fan_out,
            avatars=avatars,
            in_flight=in_flight,
        )

    def __call__(self) -> CheckReport:
        return self.run()

    def run(self) -> CheckReport:
        start_t = time.monotonic()
        key = self.target.key()
        if self.in_flight is not None and not self.in_flight.try_acquire(key):
            logger.info("check skipped, previous run still in flight: key=%s", key)
            return self._report(CheckOutcome.SKIPPED, start_t)
        try:
            return self._run(start_t)
        finally:
            if self.in_flight is not None:
                self.in_flight.release(key)

    def _run(self, start_t: float) -> CheckReport:
        t = self.target
        key = t.key()

        try:
            previous = self.store.read(t.owner, t.name, t.kind)
        except Exception as e:  # noqa: BLE001
            logger.error("marker read failed: key=%s error=%s", key, e)
            self.fan_out.report_error(e)
            return self._report(CheckOutcome.FAILED, start_t, error=e)

        try:
            item = self.strategy.fetch(self.source, t.owner, t.name)
        except NotFoundError:
            logger.debug("nothing to report yet: key=%s", key)
            return self._report(CheckOutcome.NOT_FOUND, start_t, previous=previous)
        except Exception as e:  # noqa: BLE001
            logger.warning("fetch failed: key=%s error=%s", key, e)
            self.fan_out.report_error(e)
            return self._report(CheckOutcome.FAILED, start_t, previous=previous, error=e)

        try:
            newer = self.strategy.is_newer(previous, item)
            current = self.strategy.encode_marker(item)
        except Exception as e:  # noqa: BLE001
            logger.error("compare failed: key=%s previous=%r fetched=%r error=%s", key, previous, item.key, e)
            self.fan_out.report_error(e)
            return self._report(CheckOutcome.FAILED, start_t, previous=previous, error=e)
        if not newer:
            return self._report(CheckOutcome.UNCHANGED, start_t, previous=previous, current=previous)

        try:
            self.store.write(t.owner, t.name, t.kind, current)
        except Exception as e:  # noqa: BLE001
            logger.error("marker write failed: key=%s current=%s error=%s", key, current, e)
            self.fan_out.report_error(e)
            return self._report(CheckOutcome.FAILED, start_t, previous=previous, error=e)

        event = NotificationEvent(
            owner=t.owner,
            repo_name=t.name,
            target_kind=t.kind,
            current=current,
            previous=previous,
            link=item.html_url,
            title=item.title,
            body=item.body,
            avatar_url=self._owner_avatar() or item.author_avatar,
        )
        logger.info("new activity: key=%s previous=%r current=%r", key, previous, current)
        self.fan_out.notify(event)
        return self._report(CheckOutcome.NOTIFIED, start_t, previous=previous, current=current)

    def _report(
        self,
        outcome: CheckOutcome,
        start_t: float,
        *,
        previous: str | None = None,
        current: str | None = None,
        error: BaseException | None = None,
    ) -> CheckReport:
        return CheckReport(
            target=self.target,
            outcome=outcome,
            previous=previous,
            current=current,
            error=f"{type(error).__name__}: {error}" if error is not None else None,
            duration_ms=int((time.monotonic() - start_t) * 1000),
        )

    def _owner_avatar(self) -> str:
        if self.avatars is None:
            return ""
        try:
            return self.avatars.avatar_url(self.target.owner)
        except Exception as e:  # noqa: BLE001
            logger.warning("owner avatar lookup failed: owner=%s error=%s", self.target.owner, e)
            return ""
