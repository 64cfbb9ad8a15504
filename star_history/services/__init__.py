"""Sampling, aggregation and assembly services."""

from star_history.services.aggregator import SeriesAggregator, merge_series
from star_history.services.assembler import DatasetAssembler, series_color
from star_history.services.pool import WorkerPool
from star_history.services.quota import QuotaGovernor
from star_history.services.retry import RetryPolicy
from star_history.services.sampler import StarCountSampler, sample_indices

__all__ = [
    "QuotaGovernor",
    "RetryPolicy",
    "WorkerPool",
    "StarCountSampler",
    "sample_indices",
    "SeriesAggregator",
    "merge_series",
    "DatasetAssembler",
    "series_color",
]
