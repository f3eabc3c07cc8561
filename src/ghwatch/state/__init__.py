from .avatars import AVATAR_TTL, AvatarCache
from .sqlite_store import SqliteStateStore, default_state_path
from .store import StateStore, marker_key

__all__ = [
    "AVATAR_TTL",
    "AvatarCache",
    "SqliteStateStore",
    "StateStore",
    "default_state_path",
    "marker_key",
]
