from __future__ import annotations

import functools
import logging
import threading
import time
from collections import Counter
from typing import Callable, Protocol

from .checker import Checker, CheckOutcome, CheckReport, InFlightKeys
from .config import WatchConfig
from .dispatcher import WorkerPool
from .errors import ConfigLoadError
from .notify.base import Notifier
from .notify.fanout import FanOut
from .sources.base import ActivitySource
from .state.avatars import AvatarCache
from .state.store import StateStore

logger = logging.getLogger(__name__)


class WatchConfigSource(Protocol):
    def load(self) -> WatchConfig: ...


class Watcher:
    """
    定时检查循环：

    - watch() 启动后立即检查一次，之后每隔 interval_seconds 重新加载配置并检查
    - 每个 tick 为每个 (仓库, target) 构造一个 Checker 提交给 WorkerPool，不等待其完成
    - 配置重新加载失败：记录错误并跳过本次 tick（不复用上一次的配置）
    - stop()（可在信号处理函数中调用）只在 tick 之间生效，不会打断正在提交的 tick
    - 启动时状态库初始化或首次配置加载失败会直接抛出，watch() 终止
    """

    def __init__(
        self,
        *,
        loader: WatchConfigSource,
        store: StateStore,
        source: ActivitySource,
        pool: WorkerPool,
        interval_seconds: float,
        fan_out: FanOut | None = None,
        avatars: AvatarCache | None = None,
        single_flight: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.loader = loader
        self.store = store
        self.source = source
        self.pool = pool
        self.interval_seconds = interval_seconds
        self.fan_out = fan_out if fan_out is not None else FanOut()
        self.avatars = avatars
        self.in_flight = InFlightKeys() if single_flight else None
        self._clock = clock
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._outcomes: Counter[CheckOutcome] = Counter()
        self.ticks = 0

    def add_notifier(self, notifier: Notifier) -> None:
        self.fan_out.add(notifier)

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def outcomes(self) -> Counter[CheckOutcome]:
        with self._lock:
            return Counter(self._outcomes)

    def watch(self) -> None:
        self.store.ensure_schema()
        config = self.loader.load()

        self.pool.start()
        try:
            self.check(config)
            next_at = self._clock() + self.interval_seconds
            while not self._stop_event.wait(max(0.0, next_at - self._clock())):
                now = self._clock()
                next_at += self.interval_seconds
                if next_at <= now:
                    # 上一个 tick 拖得太久：丢掉错过的 tick，从现在起重新计时
                    next_at = now + self.interval_seconds
                self._tick()
        finally:
            self.pool.stop_immediately()
            logger.info("watcher stopped: ticks=%d outcomes=%s", self.ticks, _format_outcomes(self.outcomes()))

    def run_once(self) -> Counter[CheckOutcome]:
        """
        只执行一次检查并等待所有 Checker 结束，返回本次各结果的数量（用于 --once）。
        """
        self.store.ensure_schema()
        config = self.loader.load()
        before = self.outcomes()
        self.pool.start()
        try:
            self.check(config)
            self.pool.join()
        finally:
            self.pool.stop()
        after = self.outcomes()
        after.subtract(before)
        return +after

    def check(self, config: WatchConfig) -> int:
        """为配置中的每个 (仓库, target) 提交一个 Checker，返回提交数量。"""
        self.ticks += 1
        submitted = 0
        for target in config.iter_targets():
            checker = Checker.for_target(
                target,
                store=self.store,
                source=self.source,
                fan_out=self.fan_out,
                avatars=self.avatars,
                in_flight=self.in_flight,
            )
            self.pool.submit(functools.partial(self._run_checker, checker))
            submitted += 1
        logger.info("tick submitted: tick=%d repos=%d checks=%d", self.ticks, len(config.repos), submitted)
        return submitted

    def _tick(self) -> None:
        try:
            config = self.loader.load()
        except ConfigLoadError as e:
            logger.error("config reload failed, tick skipped: error=%s", e)
            return
        except Exception:  # noqa: BLE001
            logger.exception("config reload crashed, tick skipped")
            return
        self.check(config)

    def _run_checker(self, checker: Checker) -> CheckReport:
        report = checker.run()
        with self._lock:
            self._outcomes[report.outcome] += 1
        logger.debug(
            "check done: key=%s outcome=%s duration_ms=%d",
            report.target.key(),
            report.outcome.value,
            report.duration_ms,
        )
        return report


def _format_outcomes(outcomes: Counter[CheckOutcome]) -> str:
    if not outcomes:
        return "<none>"
    return ",".join(f"{k.value}={v}" for k, v in sorted(outcomes.items(), key=lambda kv: kv[0].value))
