from __future__ import annotations

import logging
from dataclasses import dataclass

from ..models import NotificationEvent
from .base import Notifier
from .formatter import format_error_text, format_event_text, format_headline

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ConsoleNotifier(Notifier):
    """
    把通知写到日志（basicConfig 默认输出到 stderr）。

    verbose=False 时只输出一行 "(owner/repo) new kind: link"。
    通知默认按 WARNING 输出，--log-level WARNING 时只剩通知与错误。
    """

    verbose: bool = False
    level: int = logging.WARNING

    def channel(self) -> str:
        return "console"

    def notify(self, event: NotificationEvent) -> None:
        text = format_event_text(event) if self.verbose else format_headline(event)
        logger.log(self.level, "%s", text)

    def report_error(self, error: BaseException) -> None:
        logger.error("%s", format_error_text(error))
