from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from ..errors import PersistError
from ..models import OwnerRecord, utc_now
from ..sources.base import ActivitySource
from .store import StateStore

logger = logging.getLogger(__name__)

AVATAR_TTL = timedelta(hours=24)


@dataclass(slots=True)
class AvatarCache:
    """
    owner 头像缓存：缓存未过期（不超过 24h）直接复用，否则重新拉取并覆盖。

    拉取失败的异常（NotFoundError / FetchError）原样抛给调用方；
    缓存写入失败只记日志，不影响本次返回。
    """

    store: StateStore
    source: ActivitySource
    ttl: timedelta = AVATAR_TTL
    clock: Callable[[], datetime] = field(default=utc_now)

    def avatar_url(self, owner: str) -> str:
        now = self.clock()
        try:
            cached = self.store.read_owner(owner)
        except PersistError:
            logger.warning("avatar cache read failed: owner=%s", owner, exc_info=True)
            cached = None
        if cached is not None and now - cached.cached_at <= self.ttl:
            return cached.avatar_url

        avatar_url = self.source.owner_avatar_url(owner)
        try:
            self.store.write_owner(OwnerRecord(name=owner, avatar_url=avatar_url, cached_at=now))
        except PersistError:
            logger.warning("avatar cache write failed: owner=%s", owner, exc_info=True)
        return avatar_url
