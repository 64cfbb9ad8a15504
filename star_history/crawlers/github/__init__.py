"""GitHub star source primitives."""

from star_history.crawlers.github.client import GitHubStarClient
from star_history.crawlers.github.contracts import (
    Event,
    RateLimitStatus,
    RepositoryPage,
    StarSource,
)

__all__ = [
    "GitHubStarClient",
    "Event",
    "RateLimitStatus",
    "RepositoryPage",
    "StarSource",
]
