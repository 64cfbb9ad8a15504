"""Account-level series: sample every owned repository and sum the curves."""

from __future__ import annotations

from datetime import UTC, datetime
import heapq
import logging
from typing import Callable, Iterable, Iterator, Optional

from star_history.crawlers.github.contracts import StarSource
from star_history.models.series import SamplePoint, Series
from star_history.models.targets import Account, Repository
from star_history.services.pool import WorkerPool
from star_history.services.quota import QuotaGovernor
from star_history.services.retry import RetryPolicy
from star_history.services.sampler import StarCountSampler
from star_history.utils.redaction import sanitize_log_extra

logger = logging.getLogger(__name__)

REPOSITORIES_PER_PAGE = 100


def _keyed(position: int, series: Series) -> Iterator[tuple[datetime, int, int]]:
    for point in series.points:
        yield point.time, position, point.stars


def merge_series(series: Iterable[Series]) -> tuple[SamplePoint, ...]:
    """
    Stepwise sum of growth curves

    At every distinct timestamp the result is the sum over all series of the
    last value at or before that timestamp. A series contributes 0 before its
    first point and holds its last value afterwards; nothing is interpolated.

    Args:
        series: Per-repository series, each ordered by time

    Returns:
        Merged points, one per distinct timestamp
    """
    streams = [_keyed(position, item) for position, item in enumerate(series)]
    current: dict[int, int] = {}
    total = 0
    merged: list[SamplePoint] = []

    for time, position, stars in heapq.merge(*streams):
        total += stars - current.get(position, 0)
        current[position] = stars
        if merged and merged[-1].time == time:
            merged[-1] = SamplePoint(time=time, stars=total)
        else:
            merged.append(SamplePoint(time=time, stars=total))

    return tuple(merged)


class SeriesAggregator:
    """Fans an account out to its repositories on a bounded worker pool."""

    def __init__(
        self,
        source: StarSource,
        governor: QuotaGovernor,
        sampler: StarCountSampler,
        *,
        pool: Optional[WorkerPool] = None,
        retry: Optional[RetryPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._source = source
        self._governor = governor
        self._sampler = sampler
        self._pool = pool or WorkerPool(5)
        self._retry = retry or RetryPolicy()
        self._clock = clock or (lambda: datetime.now(UTC))

    async def aggregate(self, account: Account, max_samples: int) -> Series:
        label = account.display_name
        as_of = self._clock()

        repositories = await self.list_repositories(account)
        if not repositories:
            logger.info("Account owns no repositories", extra=sanitize_log_extra(account=label))
            return Series(label=label, as_of=as_of)

        per_repository = await self._pool.map(
            [self._sample_job(repo, max_samples, as_of) for repo in repositories]
        )
        points = merge_series(per_repository)
        logger.info(
            "Aggregated account star history",
            extra=sanitize_log_extra(account=label, repositories=len(repositories), points=len(points)),
        )
        return Series(label=label, points=points, as_of=as_of)

    async def list_repositories(self, account: Account) -> list[Repository]:
        """All owned, non-fork repositories, one governed call per listing page."""
        repositories: list[Repository] = []
        page = 1
        while True:
            result = await self._governor.call(
                self._source,
                lambda: self._source.list_owned_repositories(account, page, REPOSITORIES_PER_PAGE),
                target=account.display_name,
                retry=self._retry,
            )
            repositories.extend(result.repositories)
            if not result.has_next:
                return repositories
            page += 1

    def _sample_job(self, repo: Repository, max_samples: int, as_of: datetime):
        async def _job() -> Series:
            return await self._sampler.sample(repo, max_samples, as_of=as_of)

        return _job
