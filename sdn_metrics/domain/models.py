"""Histogram domain data model.

These Pydantic models describe the shapes flowing through the histogram
pipeline: normalized series in, aggregated cumulative values in the middle,
decumulated bucket rows and host coverage out. They are built fresh for every
metric and never shared between metrics.
"""

from __future__ import annotations

from typing import Dict, List, Set

from pydantic import BaseModel, Field

INF_BOUNDARY = "+Inf"


class Series(BaseModel):
    """One cumulative time series for a single host and bucket.

    Attributes
    ----------
    group: str
        Grouping key (e.g., zone name).
    bucket_boundary: str
        Upper bound label of the bucket; ``"+Inf"`` marks the unbounded one.
    host: str
        Source instance that reported the series.
    samples: List[float]
        Chronological sample values over the queried window.
    """

    group: str = Field(..., min_length=1)
    bucket_boundary: str
    host: str
    samples: List[float] = Field(default_factory=list)


class ResetCheck(BaseModel):
    """Verdict of the reset detector for one series.

    Attributes
    ----------
    contribution: float
        Increase over the window; 0.0 when the series is invalid.
    valid: bool
        False when a counter reset was observed.
    """

    contribution: float
    valid: bool


class AggregatedValue(BaseModel):
    """Running sum of per-series contributions for one ``(group, bucket)``."""

    group: str
    bucket_boundary: str
    value: float = 0.0


class BucketRow(BaseModel):
    """Decumulated value of one bucket in one group."""

    group: str
    bucket_boundary: str
    value: float


class HostCoverage(BaseModel):
    """Per-group host sets.

    Attributes
    ----------
    all_hosts: Dict[str, Set[str]]
        Hosts that reported at least one non-empty series in the group.
    invalid_hosts: Dict[str, Set[str]]
        Hosts with at least one series rejected for a counter reset. Always a
        subset of ``all_hosts`` for the same group.
    """

    all_hosts: Dict[str, Set[str]] = Field(default_factory=dict)
    invalid_hosts: Dict[str, Set[str]] = Field(default_factory=dict)

    def add_host(self, group: str, host: str) -> None:
        """Record ``host`` as contributing to ``group``."""
        self.all_hosts.setdefault(group, set()).add(host)

    def add_invalid_host(self, group: str, host: str) -> None:
        """Record ``host`` as contributing to ``group`` with a reset series."""
        self.add_host(group, host)
        self.invalid_hosts.setdefault(group, set()).add(host)

    def host_count(self, group: str) -> int:
        """Number of distinct hosts seen in ``group``."""
        return len(self.all_hosts.get(group, ()))

    def invalid_host_count(self, group: str) -> int:
        """Number of distinct hosts with a reset series in ``group``."""
        return len(self.invalid_hosts.get(group, ()))

    @property
    def groups(self) -> List[str]:
        """Groups with at least one host, sorted."""
        return sorted(self.all_hosts)


class HistogramReport(BaseModel):
    """Decumulated rows plus host coverage for one metric."""

    rows: List[BucketRow] = Field(default_factory=list)
    coverage: HostCoverage = Field(default_factory=HostCoverage)

    @property
    def is_empty(self) -> bool:
        """True when aggregation produced no rows (nothing to report)."""
        return not self.rows
