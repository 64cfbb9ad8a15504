"""Star-count sampler: a repository growth curve from O(samples) page fetches."""

from __future__ import annotations

from bisect import bisect_left
from datetime import UTC, datetime
import logging
from operator import attrgetter
from typing import Callable, Optional

from star_history.crawlers.github.contracts import Event, StarSource
from star_history.errors import InconsistentPage
from star_history.models.series import SamplePoint, Series
from star_history.models.targets import Repository
from star_history.services.quota import QuotaGovernor
from star_history.services.retry import RetryPolicy
from star_history.utils.redaction import sanitize_log_extra

logger = logging.getLogger(__name__)

_event_index = attrgetter("index")


def sample_indices(total: int, samples: int) -> list[int]:
    """
    Evenly spaced star indices over ``[1, total]``, both endpoints included

    Args:
        total: Number of star events
        samples: Desired number of indices (capped at ``total``)

    Returns:
        Strictly increasing indices
    """
    if total <= 0:
        return []
    k = min(samples, total)
    if k <= 1:
        return [1]
    span = total - 1
    # round-half-up of i * span / (k - 1), in integers
    return [1 + (2 * i * span + (k - 1)) // (2 * (k - 1)) for i in range(k)]


def page_of(index: int, page_size: int) -> int:
    """1-based page number containing the 1-based ``index``."""
    return (index - 1) // page_size + 1


def find_event(events: list[Event], index: int) -> Optional[Event]:
    """Binary search a page (ordered by index) for ``index``."""
    position = bisect_left(events, index, key=_event_index)
    if position < len(events) and events[position].index == index:
        return events[position]
    return None


class StarCountSampler:
    """Reconstructs a repository's cumulative star curve.

    Small repositories (one page) are reproduced exactly. Larger ones are
    sampled at evenly spaced star indices; each index maps to one page and
    every page is fetched at most once per ``sample`` call.
    """

    def __init__(
        self,
        source: StarSource,
        governor: QuotaGovernor,
        *,
        retry: Optional[RetryPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._source = source
        self._governor = governor
        self._retry = retry or RetryPolicy()
        self._clock = clock or (lambda: datetime.now(UTC))

    async def sample(self, repo: Repository, max_samples: int, *, as_of: Optional[datetime] = None) -> Series:
        """
        Reconstruct the growth curve of ``repo``

        Args:
            repo: Repository to sample
            max_samples: Point budget for sampled curves, at least 2
            as_of: Right edge of the curve; an account passes its own so all of
                its repositories close at the same instant
        """
        if max_samples < 2:
            raise ValueError("max_samples must be at least 2 so both curve endpoints are kept")

        label = repo.display_name
        as_of = as_of or self._clock()
        total = await self._governor.call(
            self._source,
            lambda: self._source.total_count(repo),
            target=label,
            retry=self._retry,
        )
        if total <= 0:
            return Series(label=label, as_of=as_of)

        page_size = self._source.page_size
        page_cache: dict[int, list[Event]] = {}

        if total <= page_size:
            events = await self._load_page(repo, 1, page_cache)
            points = [_point_at(events, index, 1, label) for index in range(1, total + 1)]
        else:
            reachable = self._reachable(total)
            budget = max_samples if reachable == total else max_samples - 1
            points = []
            for index in sample_indices(reachable, budget):
                page_number = page_of(index, page_size)
                events = await self._load_page(repo, page_number, page_cache)
                points.append(_point_at(events, index, page_number, label))

            if reachable < total:
                # listing window ends early; close the curve at the observed total
                last_time = max((point.time for point in points), default=as_of)
                points.append(SamplePoint(time=max(as_of, last_time), stars=total))

        points.sort(key=lambda point: (point.time, point.stars))
        logger.info(
            "Sampled star history",
            extra=sanitize_log_extra(repo=label, total=total, points=len(points), pages=len(page_cache)),
        )
        return Series(label=label, points=tuple(points), as_of=as_of)

    def _reachable(self, total: int) -> int:
        page_limit = self._source.page_limit
        if page_limit is None:
            return total
        return min(total, page_limit * self._source.page_size)

    async def _load_page(self, repo: Repository, page_number: int, page_cache: dict[int, list[Event]]) -> list[Event]:
        if page_number not in page_cache:
            page_cache[page_number] = await self._governor.call(
                self._source,
                lambda: self._source.page(repo, page_number, self._source.page_size),
                target=repo.display_name,
                retry=self._retry,
            )
        return page_cache[page_number]


def _point_at(events: list[Event], index: int, page_number: int, label: str) -> SamplePoint:
    event = find_event(events, index)
    if event is None:
        raise InconsistentPage(
            f"page {page_number} does not contain star #{index}",
            target=label,
            page=page_number,
            index=index,
        )
    return SamplePoint(time=event.time, stars=event.index)
