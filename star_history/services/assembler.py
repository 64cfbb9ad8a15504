"""Dataset assembly: one labeled, colored series per requested target."""

from __future__ import annotations

import colorsys
from dataclasses import replace
from datetime import UTC, datetime
import logging
from typing import Callable, Optional, Sequence

from star_history.errors import DatasetAssemblyError, StarHistoryError
from star_history.models.series import Dataset, Series
from star_history.models.targets import Account, Repository, Target
from star_history.services.aggregator import SeriesAggregator
from star_history.services.pool import WorkerPool
from star_history.services.sampler import StarCountSampler
from star_history.utils.redaction import sanitize_log_extra

logger = logging.getLogger(__name__)

PALETTE = (
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
)

_GOLDEN_RATIO_CONJUGATE = 0.618033988749895


def series_color(position: int) -> str:
    """Deterministic color for the series at ``position`` (argument order)."""
    if position < len(PALETTE):
        return PALETTE[position]
    hue = (position * _GOLDEN_RATIO_CONJUGATE) % 1.0
    red, green, blue = colorsys.hls_to_rgb(hue, 0.45, 0.65)
    return "#{:02x}{:02x}{:02x}".format(round(red * 255), round(green * 255), round(blue * 255))


class DatasetAssembler:
    """Builds the complete dataset or raises; a partial dataset is never returned."""

    def __init__(
        self,
        sampler: StarCountSampler,
        aggregator: SeriesAggregator,
        *,
        max_samples: int,
        pool: Optional[WorkerPool] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._sampler = sampler
        self._aggregator = aggregator
        self._max_samples = max_samples
        self._pool = pool or WorkerPool(5)
        self._clock = clock or (lambda: datetime.now(UTC))

    async def assemble(self, labeled_targets: Sequence[tuple[str, Target]]) -> Dataset:
        generated_at = self._clock()

        unique: list[tuple[str, Target]] = []
        seen: set[Target] = set()
        for label, target in labeled_targets:
            if target in seen:
                logger.info("Skipping duplicate target", extra=sanitize_log_extra(target=label))
                continue
            seen.add(target)
            unique.append((label, target))

        fetched = await self._pool.map([self._fetch_job(label, target) for label, target in unique])
        series = tuple(
            replace(item, label=label, color=series_color(position))
            for position, ((label, _), item) in enumerate(zip(unique, fetched))
        )
        return self._with_bounds(series, generated_at)

    def _fetch_job(self, label: str, target: Target):
        async def _job() -> Series:
            try:
                if isinstance(target, Repository):
                    return await self._sampler.sample(target, self._max_samples)
                if isinstance(target, Account):
                    return await self._aggregator.aggregate(target, self._max_samples)
                raise TypeError(f"unsupported target: {target!r}")
            except StarHistoryError as exc:
                logger.error(
                    "Target failed, aborting dataset",
                    extra=sanitize_log_extra(target=label, error=str(exc)),
                )
                raise DatasetAssemblyError(label, exc) from exc

        return _job

    @staticmethod
    def _with_bounds(series: tuple[Series, ...], generated_at: datetime) -> Dataset:
        populated = [item for item in series if not item.is_empty]
        if not populated:
            return Dataset(series=series, generated_at=generated_at)
        return Dataset(
            series=series,
            generated_at=generated_at,
            min_time=min(item.first_time for item in populated),
            max_time=max(item.last_time for item in populated),
            max_stars=max(max(point.stars for point in item.points) for item in populated),
        )
