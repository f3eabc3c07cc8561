from .base import ActivitySource
from .github import GitHubClient

__all__ = [
    "ActivitySource",
    "GitHubClient",
]
