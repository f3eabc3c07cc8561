from __future__ import annotations

from typing import Protocol

from ..models import NotificationEvent


class Notifier(Protocol):
    """
    通知接口：向某个渠道发送“有新活动”或“检查出错”。

    约定：
    - notify / report_error 失败直接抛异常，由 FanOut 统一捕获并记录
    - channel() 用于日志与配置选择
    """

    def channel(self) -> str: ...

    def notify(self, event: NotificationEvent) -> None: ...

    def report_error(self, error: BaseException) -> None: ...
