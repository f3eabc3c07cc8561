from __future__ import annotations

from ..models import NotificationEvent


def truncate(text: str, limit: int = 400) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def format_headline(event: NotificationEvent) -> str:
    return f"({event.repo_full_name}) new {event.target_kind.value}: {event.link}"


def format_event_text(event: NotificationEvent, *, body_limit: int = 400) -> str:
    """
    统一的纯文本消息格式，供控制台与不支持富文本的渠道使用。
    """
    lines = [
        format_headline(event),
        f"title: {event.title}",
        f"current: {event.current}",
        f"previous: {event.previous or '-'}",
    ]
    body = truncate(event.body, body_limit)
    if body:
        lines.append("")
        lines.append(body)
    return "\n".join(lines)


def format_error_text(error: BaseException) -> str:
    return f"error: {type(error).__name__}: {error}"
