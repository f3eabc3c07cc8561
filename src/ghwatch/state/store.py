from __future__ import annotations

from typing import Protocol

from ..models import OwnerRecord, RepositoryTarget, TargetKind


def marker_key(owner: str, name: str, kind: TargetKind) -> str:
    return RepositoryTarget(owner=owner, name=name, kind=kind).key()


class StateStore(Protocol):
    """
    状态层接口：
    - markers：每个 (owner, name, kind) 最近一次看到的 marker，不存在时读到 ""
    - owners：owner 头像缓存（带缓存时间，用于 24h 过期判断）

    每次读写都是单 key 原子操作，不提供跨 key 事务。写失败抛 PersistError。
    """

    def ensure_schema(self) -> None: ...

    def read(self, owner: str, name: str, kind: TargetKind) -> str: ...

    def write(self, owner: str, name: str, kind: TargetKind, value: str) -> None: ...

    def read_owner(self, name: str) -> OwnerRecord | None: ...

    def write_owner(self, record: OwnerRecord) -> None: ...
