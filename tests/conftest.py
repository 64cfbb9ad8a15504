from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Optional

import pytest

from star_history.crawlers.github.contracts import Event, RateLimitStatus, RepositoryPage
from star_history.errors import SourceUnavailable, TargetNotFound
from star_history.models.targets import Account, Repository
from star_history.services.quota import QuotaGovernor
from star_history.services.retry import RetryPolicy

BASE_TIME = datetime(2020, 1, 1, tzinfo=UTC)


def star_times(count: int, *, start: datetime = BASE_TIME, step: timedelta = timedelta(hours=1)) -> list[datetime]:
    return [start + step * offset for offset in range(count)]


class FakeStarSource:
    """In-memory star source with call recording and injectable page failures."""

    def __init__(
        self,
        stars: Optional[dict[str, list[datetime]]] = None,
        accounts: Optional[dict[str, list[str]]] = None,
        *,
        page_size: int = 100,
        page_limit: Optional[int] = None,
    ) -> None:
        self.stars = {key.lower(): sorted(times) for key, times in (stars or {}).items()}
        self.accounts = {key.lower(): list(names) for key, names in (accounts or {}).items()}
        self.page_size = page_size
        self.page_limit = page_limit
        self.calls: list[tuple[Any, ...]] = []
        self.failures: dict[tuple[str, int], list[Exception]] = {}
        self.drop_events: set[int] = set()
        self.status: Optional[RateLimitStatus] = None
        self.closed = False

    async def __aenter__(self) -> "FakeStarSource":
        return self

    async def __aexit__(self, *_: Any) -> None:
        self.closed = True

    def fail_page(self, repo: str, page: int, *errors: Exception) -> None:
        self.failures[(repo.lower(), page)] = list(errors)

    def page_calls(self, repo: Optional[str] = None) -> list[int]:
        return [
            call[2]
            for call in self.calls
            if call[0] == "page" and (repo is None or call[1] == repo.lower())
        ]

    async def total_count(self, repo: Repository) -> int:
        key = repo.display_name.lower()
        self.calls.append(("total_count", key))
        if key not in self.stars:
            raise TargetNotFound("no such user or repository", target=repo.display_name)
        return len(self.stars[key])

    async def page(self, repo: Repository, page_number: int, page_size: int) -> list[Event]:
        key = repo.display_name.lower()
        self.calls.append(("page", key, page_number))
        pending = self.failures.get((key, page_number))
        if pending:
            raise pending.pop(0)
        times = self.stars[key]
        start = (page_number - 1) * page_size
        return [
            Event(index=start + offset + 1, time=time)
            for offset, time in enumerate(times[start:start + page_size])
            if start + offset + 1 not in self.drop_events
        ]

    async def list_owned_repositories(self, account: Account, page: int, per_page: int) -> RepositoryPage:
        key = account.login.lower()
        self.calls.append(("list", key, page))
        if key not in self.accounts:
            raise TargetNotFound("no such user or repository", target=account.display_name)
        names = self.accounts[key]
        start = (page - 1) * per_page
        chunk = names[start:start + per_page]
        repositories = [Repository(owner=account.login, name=name) for name in chunk]
        return RepositoryPage(repositories=repositories, has_next=start + per_page < len(names))

    def rate_limit_status(self) -> Optional[RateLimitStatus]:
        return self.status


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def make_source():
    return FakeStarSource


@pytest.fixture
def times():
    return star_times


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def governor(recording_sleep: RecordingSleep) -> QuotaGovernor:
    return QuotaGovernor(sleep=recording_sleep)


@pytest.fixture
def no_backoff() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, backoff_base_seconds=0.0, backoff_max_seconds=0.0)


@pytest.fixture
def transient_error():
    def _make(target: str = "owner/repo") -> SourceUnavailable:
        return SourceUnavailable("GitHub API error 502: Bad Gateway", target=target, status_code=502)

    return _make
