from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def parse_rfc3339_datetime(value: str) -> datetime:
    """
    解析常见的 RFC3339/ISO8601 时间串为带 tzinfo 的 datetime。

    兼容：
    - 2026-02-10T12:34:56Z
    - 2026-02-10T12:34:56+00:00
    - 2026-02-10T12:34:56.123Z
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


class TargetKind(str, Enum):
    RELEASE = "release"
    COMMIT = "commit"
    ISSUE = "issue"
    PULL_REQUEST = "pull_request"
    TAG = "tag"

    @classmethod
    def parse(cls, value: str) -> TargetKind:
        """
        解析配置中的 target 名称（大小写不敏感）。

        兼容旧配置中的 "pr" 写法。
        """
        v = (value or "").strip().lower()
        if v in ("pr", "pull", "pulls", "pull-request"):
            return cls.PULL_REQUEST
        return cls(v)


@dataclass(frozen=True, slots=True)
class RepositoryTarget:
    """
    一个被监控的 feed：(owner, name, kind)。

    每个 tick 都从当前配置快照重新构造，不跨 tick 保留身份。
    """

    owner: str
    name: str
    kind: TargetKind

    def key(self) -> str:
        """marker key，状态库与 single-flight 共用这一种写法。"""
        return f"{self.owner}/{self.name}/{self.kind.value}"


@dataclass(frozen=True, slots=True)
class RemoteItem:
    """
    远端“最新一条”活动的归一结果。

    key 的含义随 kind 变化：
    - release/tag：版本号字符串
    - commit：commit SHA
    - issue/pull_request：整数 ID
    """

    key: str | int
    html_url: str
    title: str
    body: str
    author_avatar: str = ""


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    """
    通知事件：只在 marker 发生变化并成功落库后构造，之后不再修改。
    """

    owner: str
    repo_name: str
    target_kind: TargetKind
    current: str
    previous: str
    link: str
    title: str
    body: str
    avatar_url: str = ""

    @property
    def repo_full_name(self) -> str:
        return f"{self.owner}/{self.repo_name}"


@dataclass(frozen=True, slots=True)
class OwnerRecord:
    name: str
    avatar_url: str
    cached_at: datetime
