from __future__ import annotations

from typing import Protocol

from ..models import RemoteItem


class ActivitySource(Protocol):
    """
    远端平台接口：每个方法返回某个仓库“最新一条”某类活动。

    约定：
    - 该类活动不存在（仓库 404、列表为空、翻完所有分页都没有）时抛 NotFoundError
    - 其他失败抛 FetchError
    """

    def latest_release(self, owner: str, name: str) -> RemoteItem: ...

    def latest_commit(self, owner: str, name: str) -> RemoteItem: ...

    def latest_issue(self, owner: str, name: str) -> RemoteItem: ...

    def latest_pull_request(self, owner: str, name: str) -> RemoteItem: ...

    def latest_tag(self, owner: str, name: str) -> RemoteItem: ...

    def owner_avatar_url(self, owner: str) -> str: ...
