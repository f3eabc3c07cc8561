from __future__ import annotations

import logging

from .config import AppConfig, ConfigLoader
from .dispatcher import WorkerPool
from .http_utils import HttpClient
from .notify.base import Notifier
from .notify.console import ConsoleNotifier
from .notify.fanout import FanOut
from .notify.webhook import WebhookNotifier
from .sources.github import GitHubClient
from .state.avatars import AvatarCache
from .state.sqlite_store import SqliteStateStore, default_state_path
from .watcher import Watcher

logger = logging.getLogger(__name__)

NOTIFIER_CHOICES = ("console", "webhook")


def build_notifiers(config: AppConfig, http: HttpClient) -> list[Notifier]:
    """
    根据配置构建通知渠道（按配置顺序注册）。

    webhook URL 只从环境变量读取；未设置时报错而不是静默跳过，
    避免用户以为通知已开启。
    """
    notifiers: list[Notifier] = []
    for name in config.notifiers:
        if name == "console":
            notifiers.append(ConsoleNotifier(verbose=config.verbose_console))
        elif name == "webhook":
            webhook_url = config.resolve_env(config.webhook_url_env)
            if not webhook_url:
                raise ValueError(f"webhook notifier requires env {config.webhook_url_env}")
            notifiers.append(WebhookNotifier(webhook_url=webhook_url, http=http))
        else:
            raise ValueError(f"invalid notifier: {name!r} (choices: {', '.join(NOTIFIER_CHOICES)})")
    return notifiers


def build_watcher(config: AppConfig) -> Watcher:
    """
    根据配置装配 Watcher：所有句柄（HTTP、GitHub、状态库、线程池、通知）
    都在这里创建并显式注入，Watcher/Checker 内不持有全局连接。
    """
    http = HttpClient()
    store = SqliteStateStore(config.sqlite_path or default_state_path())
    github = GitHubClient(http=http, token=config.resolve_env(config.token_env))
    if not github.token:
        logger.warning("no GitHub token configured (env %s); anonymous requests are rate limited", config.token_env)

    watcher = Watcher(
        loader=ConfigLoader(location=config.config_location, http=http),
        store=store,
        source=github,
        pool=WorkerPool(workers=config.workers, queue_size=config.queue_size),
        interval_seconds=config.interval_seconds,
        fan_out=FanOut(),
        avatars=AvatarCache(store=store, source=github),
    )
    for notifier in build_notifiers(config, http):
        watcher.add_notifier(notifier)
    return watcher
