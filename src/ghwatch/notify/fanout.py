from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..models import NotificationEvent
from .base import Notifier

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FanOut:
    """
    按注册顺序把事件广播给所有 notifier。

    尽力而为：某个 notifier 抛异常只记日志，不影响后续 notifier，
    也不会把异常抛回 Checker。
    """

    notifiers: list[Notifier] = field(default_factory=list)

    def add(self, notifier: Notifier) -> None:
        self.notifiers.append(notifier)

    def __len__(self) -> int:
        return len(self.notifiers)

    def notify(self, event: NotificationEvent) -> None:
        for notifier in tuple(self.notifiers):
            try:
                notifier.notify(event)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "notify failed: channel=%s notifier_type=%s repo=%s kind=%s current=%s",
                    _channel_of(notifier),
                    type(notifier).__name__,
                    event.repo_full_name,
                    event.target_kind.value,
                    event.current,
                )

    def report_error(self, error: BaseException) -> None:
        for notifier in tuple(self.notifiers):
            try:
                notifier.report_error(error)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "report_error failed: channel=%s notifier_type=%s error=%s",
                    _channel_of(notifier),
                    type(notifier).__name__,
                    error,
                )


def _channel_of(notifier: Notifier) -> str:
    try:
        return notifier.channel()
    except Exception:  # noqa: BLE001
        return "unknown"
