"""Typed contracts between the sampling engine and a paginated star source."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from star_history.models.targets import Account, Repository


@dataclass(frozen=True, slots=True)
class Event:
    """One star event; ``index`` is its 1-based position in ascending time order."""

    index: int
    time: datetime


@dataclass(frozen=True, slots=True)
class RateLimitStatus:
    """Request budget as self-reported by the source."""

    remaining: int
    reset_at: datetime
    limit: Optional[int] = None


@dataclass(frozen=True, slots=True)
class RepositoryPage:
    """One page of an account's owned, non-fork repositories."""

    repositories: list[Repository]
    has_next: bool


class StarSource(Protocol):
    """Paginated, totally ordered listing of star events."""

    page_size: int
    page_limit: Optional[int]
    """Highest page number the source serves, or None when unbounded."""

    async def total_count(self, repo: Repository) -> int: ...

    async def page(self, repo: Repository, page_number: int, page_size: int) -> list[Event]: ...

    async def list_owned_repositories(self, account: Account, page: int, per_page: int) -> RepositoryPage: ...

    def rate_limit_status(self) -> Optional[RateLimitStatus]: ...
