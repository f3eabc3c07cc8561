from __future__ import annotations

import urllib.error
from dataclasses import dataclass
from typing import Any

from ..errors import SinkDeliveryError
from ..http_utils import HttpClient
from ..models import NotificationEvent
from .base import Notifier
from .formatter import format_error_text, format_headline, truncate


@dataclass(slots=True)
class WebhookNotifier(Notifier):
    """
    聊天群 incoming webhook 通知（Slack 兼容格式，Mattermost/Rocket.Chat 等同样可用）。

    说明：
    - 正文放在一个 attachment 里：author 为仓库、title 链接到活动页面、owner 头像作缩略图
    - 任何非 2xx 响应或网络错误都视为投递失败，抛 SinkDeliveryError
    - body 超过 body_limit 会被截断
    """

    webhook_url: str
    http: HttpClient
    username: str = "ghwatch"
    body_limit: int = 1000

    def channel(self) -> str:
        return "webhook"

    def notify(self, event: NotificationEvent) -> None:
        self._post(self._build_payload(event))

    def report_error(self, error: BaseException) -> None:
        self._post(self._build_error_payload(error))

    def _post(self, payload: dict[str, Any]) -> None:
        try:
            resp = self.http.post_json(self.webhook_url, payload)
        except urllib.error.HTTPError as e:
            raise SinkDeliveryError(f"webhook failed: status={e.code}") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise SinkDeliveryError(f"webhook request failed: {e}") from e
        if not resp.ok:
            raise SinkDeliveryError(f"webhook failed: status={resp.status}, body={resp.body[:200]!r}")

    def _build_payload(self, event: NotificationEvent) -> dict[str, Any]:
        attachment: dict[str, Any] = {
            "color": "#36a64f",
            "author_name": event.repo_full_name,
            "title": event.title or event.current,
            "title_link": event.link,
            "text": truncate(event.body, self.body_limit),
            "fields": [
                {"title": "current", "value": event.current, "short": True},
                {"title": "previous", "value": event.previous or "-", "short": True},
            ],
            "footer": event.target_kind.value,
        }
        if event.avatar_url:
            attachment["author_icon"] = event.avatar_url
            attachment["thumb_url"] = event.avatar_url
        return {
            "username": self.username,
            "text": format_headline(event),
            "attachments": [attachment],
        }

    def _build_error_payload(self, error: BaseException) -> dict[str, Any]:
        return {
            "username": self.username,
            "text": "ghwatch check failed",
            "attachments": [{"color": "danger", "text": truncate(format_error_text(error), self.body_limit)}],
        }
