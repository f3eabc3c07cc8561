"""
ghwatch

定时轮询 GitHub 上配置的仓库（release / commit / issue / pull request / tag），
与本地记录的最新 marker 比较；只有发生变化时才落库并通知各个渠道。
"""

from .checker import Checker, CheckOutcome, CheckReport
from .models import NotificationEvent, RepositoryTarget, TargetKind
from .watcher import Watcher

__all__ = [
    "CheckOutcome",
    "CheckReport",
    "Checker",
    "NotificationEvent",
    "RepositoryTarget",
    "TargetKind",
    "Watcher",
]
