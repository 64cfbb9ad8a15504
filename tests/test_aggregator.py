from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from star_history.errors import TargetNotFound
from star_history.models.series import SamplePoint, Series
from star_history.models.targets import Account
from star_history.services.aggregator import SeriesAggregator, merge_series
from star_history.services.pool import WorkerPool
from star_history.services.sampler import StarCountSampler

T1 = datetime(2021, 1, 1, tzinfo=UTC)
T2 = T1 + timedelta(days=1)
T3 = T1 + timedelta(days=2)
NOW = datetime(2024, 6, 1, tzinfo=UTC)


def _aggregator(source, governor, retry) -> SeriesAggregator:
    sampler = StarCountSampler(source, governor, retry=retry, clock=lambda: NOW)
    return SeriesAggregator(source, governor, sampler, pool=WorkerPool(4), retry=retry, clock=lambda: NOW)


def test_merge_holds_last_value_between_samples() -> None:
    a = Series(label="a", points=(SamplePoint(T1, 5), SamplePoint(T3, 10)))
    b = Series(label="b", points=(SamplePoint(T2, 3),))

    merged = merge_series([a, b])

    assert merged == (SamplePoint(T1, 5), SamplePoint(T2, 8), SamplePoint(T3, 13))


def test_merge_collapses_shared_timestamps() -> None:
    a = Series(label="a", points=(SamplePoint(T1, 1), SamplePoint(T2, 2)))
    b = Series(label="b", points=(SamplePoint(T2, 4), SamplePoint(T2, 5)))

    merged = merge_series([a, b])

    assert merged == (SamplePoint(T1, 1), SamplePoint(T2, 7))


def test_merge_of_nothing_is_empty() -> None:
    assert merge_series([]) == ()
    assert merge_series([Series(label="empty")]) == ()


def test_merge_is_independent_of_series_order() -> None:
    a = Series(label="a", points=(SamplePoint(T1, 5), SamplePoint(T3, 10)))
    b = Series(label="b", points=(SamplePoint(T2, 3),))

    assert merge_series([a, b]) == merge_series([b, a])


@pytest.mark.asyncio
async def test_account_without_repositories_yields_empty_series(make_source, governor, no_backoff) -> None:
    source = make_source({}, {"octocat": []})

    series = await _aggregator(source, governor, no_backoff).aggregate(Account("octocat"), max_samples=100)

    assert series.is_empty
    assert series.label == "octocat"
    assert series.as_of == NOW


@pytest.mark.asyncio
async def test_unknown_account_raises_target_not_found(make_source, governor, no_backoff) -> None:
    source = make_source({}, {})

    with pytest.raises(TargetNotFound) as excinfo:
        await _aggregator(source, governor, no_backoff).aggregate(Account("ghost"), max_samples=100)

    assert excinfo.value.target == "ghost"


@pytest.mark.asyncio
async def test_repository_listing_follows_every_page(make_source, times, governor, no_backoff) -> None:
    names = [f"repo{index}" for index in range(150)]
    source = make_source({f"many/{name}": times(1) for name in names}, {"many": names})

    repositories = await _aggregator(source, governor, no_backoff).list_repositories(Account("many"))

    assert [repo.name for repo in repositories] == names
    assert [call for call in source.calls if call[0] == "list"] == [("list", "many", 1), ("list", "many", 2)]


@pytest.mark.asyncio
async def test_octocat_account_sums_single_and_multi_page_repositories(make_source, times, governor, no_backoff) -> None:
    a_times = times(3, start=T1, step=timedelta(days=30))
    b_times = times(250, start=T1 + timedelta(days=1), step=timedelta(hours=6))
    source = make_source({"octocat/A": a_times, "octocat/B": b_times}, {"octocat": ["A", "B"]})

    series = await _aggregator(source, governor, no_backoff).aggregate(Account("octocat"), max_samples=100)

    assert series.points[-1].stars == 3 + 250
    assert series.last_time == max(a_times[-1], b_times[-1])
    assert all(left.time < right.time for left, right in zip(series.points, series.points[1:]))
    assert all(left.stars <= right.stars for left, right in zip(series.points, series.points[1:]))
    assert series.points[0].time == T1
    assert series.points[0].stars == 1


@pytest.mark.asyncio
async def test_capped_repositories_close_at_the_aggregation_start(make_source, times, governor, no_backoff) -> None:
    ticks = iter(NOW + timedelta(minutes=offset) for offset in range(100))
    clock = lambda: next(ticks)  # noqa: E731
    source = make_source(
        {"big/one": times(1000), "big/two": times(800, start=T1)},
        {"big": ["one", "two"]},
        page_limit=5,
    )
    sampler = StarCountSampler(source, governor, retry=no_backoff, clock=clock)
    aggregator = SeriesAggregator(source, governor, sampler, pool=WorkerPool(2), retry=no_backoff, clock=clock)

    series = await aggregator.aggregate(Account("big"), max_samples=10)

    assert series.as_of == NOW
    assert series.points[-1] == SamplePoint(NOW, 1800)
