"""Wires the client, quota governor, sampler, aggregator and assembler for one run."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
import logging
from typing import Any, Callable, Optional, Sequence

from star_history.config.settings import settings
from star_history.crawlers.github.client import GitHubStarClient
from star_history.errors import StarHistoryError
from star_history.models.series import Dataset
from star_history.models.targets import Target
from star_history.services.aggregator import SeriesAggregator
from star_history.services.assembler import DatasetAssembler
from star_history.services.pool import WorkerPool
from star_history.services.quota import QuotaGovernor
from star_history.services.retry import RetryPolicy
from star_history.services.sampler import StarCountSampler
from star_history.utils.redaction import sanitize_log_extra

logger = logging.getLogger(__name__)


class StarHistoryOrchestrator:
    """One invocation: a single governor shared by every fetch, one dataset out."""

    def __init__(
        self,
        *,
        client_factory: Callable[[], Any] = GitHubStarClient,
        max_samples: Optional[int] = None,
        blocking: Optional[bool] = None,
        timeout_seconds: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        retry: Optional[RetryPolicy] = None,
        governor_sleep: Optional[Callable[[float], Any]] = None,
    ) -> None:
        self._client_factory = client_factory
        self.max_samples = max_samples or settings.MAX_SAMPLES
        self.blocking = settings.QUOTA_BLOCKING if blocking is None else blocking
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.RUN_TIMEOUT_SECONDS
        self.max_concurrency = max_concurrency or settings.MAX_CONCURRENT_REQUESTS
        self._retry = retry or RetryPolicy.from_settings()
        self._governor_sleep = governor_sleep

    async def run(self, labeled_targets: Sequence[tuple[str, Target]]) -> Dataset:
        started_at = datetime.now(UTC)
        logger.info(
            "Star history run started",
            extra=sanitize_log_extra(targets=[label for label, _ in labeled_targets], max_samples=self.max_samples),
        )

        try:
            if self.timeout_seconds:
                dataset = await asyncio.wait_for(self._assemble(labeled_targets), self.timeout_seconds)
            else:
                dataset = await self._assemble(labeled_targets)
        except TimeoutError as exc:
            raise StarHistoryError(f"run timed out after {self.timeout_seconds:g}s") from exc

        logger.info(
            "Star history run completed",
            extra=sanitize_log_extra(
                series=len(dataset.series),
                elapsed_seconds=round((datetime.now(UTC) - started_at).total_seconds(), 2),
            ),
        )
        return dataset

    async def _assemble(self, labeled_targets: Sequence[tuple[str, Target]]) -> Dataset:
        async with self._client_factory() as client:
            governor = QuotaGovernor(
                blocking=self.blocking,
                max_wait_seconds=settings.QUOTA_MAX_WAIT_SECONDS,
                reset_buffer_seconds=settings.QUOTA_RESET_BUFFER_SECONDS,
                max_in_flight=self.max_concurrency,
                sleep=self._governor_sleep,
            )
            pool = WorkerPool(self.max_concurrency)
            sampler = StarCountSampler(client, governor, retry=self._retry)
            aggregator = SeriesAggregator(client, governor, sampler, pool=pool, retry=self._retry)
            assembler = DatasetAssembler(sampler, aggregator, max_samples=self.max_samples, pool=pool)
            return await assembler.assemble(labeled_targets)
