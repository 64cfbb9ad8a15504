from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
import logging

import pytest

from star_history.crawlers.github.contracts import RateLimitStatus
from star_history.errors import DatasetAssemblyError, QuotaExhausted, StarHistoryError
from star_history.models.targets import parse_target
from star_history.orchestrator import StarHistoryOrchestrator
from star_history.services.retry import RetryPolicy


def _labeled(*raw: str):
    return [(parse_target(item).display_name, parse_target(item)) for item in raw]


@pytest.mark.asyncio
async def test_run_assembles_dataset_and_closes_client(make_source, times, caplog) -> None:
    source = make_source({"dtolnay/syn": times(250), "dtolnay/quote": times(3)}, {"dtolnay": ["syn", "quote"]})
    orchestrator = StarHistoryOrchestrator(client_factory=lambda: source, max_samples=50, max_concurrency=2)

    with caplog.at_level(logging.INFO, logger="star_history.orchestrator"):
        dataset = await orchestrator.run(_labeled("dtolnay/syn", "dtolnay"))

    assert [series.label for series in dataset.series] == ["dtolnay/syn", "dtolnay"]
    assert dataset.series[0].final_stars == 250
    assert dataset.series[1].final_stars == 253
    assert dataset.max_stars == 253
    assert source.closed is True
    messages = [record.msg for record in caplog.records]
    assert "Star history run started" in messages
    assert "Star history run completed" in messages


@pytest.mark.asyncio
async def test_non_blocking_run_fails_when_budget_is_spent(make_source, times) -> None:
    source = make_source({"owner/repo": times(3)})
    source.status = RateLimitStatus(remaining=0, reset_at=datetime.now(UTC) + timedelta(hours=1))
    orchestrator = StarHistoryOrchestrator(client_factory=lambda: source, blocking=False)

    with pytest.raises(DatasetAssemblyError) as excinfo:
        await orchestrator.run(_labeled("owner/repo"))

    assert isinstance(excinfo.value.cause, QuotaExhausted)
    assert source.page_calls() == []


@pytest.mark.asyncio
async def test_transient_failures_use_injected_sleep(make_source, times, transient_error, recording_sleep) -> None:
    source = make_source({"owner/repo": times(3)})
    source.fail_page("owner/repo", 1, transient_error())
    orchestrator = StarHistoryOrchestrator(
        client_factory=lambda: source,
        retry=RetryPolicy(max_attempts=2, backoff_base_seconds=0.5, backoff_max_seconds=0.5),
        governor_sleep=recording_sleep,
    )

    dataset = await orchestrator.run(_labeled("owner/repo"))

    assert dataset.series[0].final_stars == 3
    assert len(recording_sleep.delays) == 1
    assert 0.375 <= recording_sleep.delays[0] <= 0.625


@pytest.mark.asyncio
async def test_run_timeout_is_reported_as_star_history_error(make_source) -> None:
    source = make_source({"owner/repo": []})

    async def never_answers(_repo) -> int:
        await asyncio.sleep(3600)
        return 0

    source.total_count = never_answers
    orchestrator = StarHistoryOrchestrator(client_factory=lambda: source, timeout_seconds=0.05)

    with pytest.raises(StarHistoryError) as excinfo:
        await orchestrator.run(_labeled("owner/repo"))

    assert "timed out" in str(excinfo.value)
    assert source.closed is True
