"""
Histogram reconstruction for cumulative bucket series.

Prometheus-style histograms expose one cumulative counter per bucket: the
series for bucket ``le="5"`` counts every observation <= 5 since the counter
started. To report how many observations fell into each bucket over a time
window, per group (zone), this module:

1. reads each series' increase over the window and rejects series whose
   counter went backwards (a reset, e.g. after a process restart),
2. sums the increases of all series sharing a ``(group, bucket)`` key while
   tracking which hosts contributed and which were rejected,
3. sorts each group's buckets by boundary (``+Inf`` last) and subtracts
   neighbouring cumulative values to get per-bucket counts.

Everything here is a pure, single-pass fold over an already fetched batch.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    INF_BOUNDARY,
    AggregatedValue,
    BucketRow,
    HistogramReport,
    HostCoverage,
    ResetCheck,
    Series,
)

logger = logging.getLogger(__name__)

SampleReader = Callable[[Sequence[float]], ResetCheck]

# Rank of a boundary label within its group
_NUMERIC = 0
_NON_NUMERIC = 1
_UNBOUNDED = 2


def detect_reset(samples: Optional[Sequence[float]]) -> ResetCheck:
    """
    Classify a cumulative series and compute its increase over the window.

    Only the first and last samples are compared; intermediate points are
    not checked for monotonicity.

    Parameters
    ----------
    samples : Sequence[float]
        Chronological, non-empty sample values

    Returns
    -------
    ResetCheck
        ``valid=False`` with a zero contribution when the first sample is
        greater than the last one (counter reset); otherwise the increase
        ``last - first``, or the value itself for a single sample.

    Raises
    ------
    TypeError
        If ``samples`` is None
    ValueError
        If ``samples`` is empty (empty series must be skipped by the caller)

    Examples
    --------
    >>> detect_reset([7.0])
    ResetCheck(contribution=7.0, valid=True)
    >>> detect_reset([100.0, 150.0])
    ResetCheck(contribution=50.0, valid=True)
    >>> detect_reset([150.0, 100.0])
    ResetCheck(contribution=0.0, valid=False)
    """
    if samples is None:
        raise TypeError("samples must be a sequence, not None")
    if len(samples) == 0:
        raise ValueError("cannot check an empty series")

    if len(samples) == 1:
        return ResetCheck(contribution=float(samples[0]), valid=True)

    first, last = samples[0], samples[-1]
    if first > last:
        return ResetCheck(contribution=0.0, valid=False)
    return ResetCheck(contribution=float(last - first), valid=True)


def read_snapshot(samples: Optional[Sequence[float]]) -> ResetCheck:
    """
    Read the first sample as the cumulative total at one point in time.

    Snapshot reads never report a reset.
    """
    if samples is None:
        raise TypeError("samples must be a sequence, not None")
    if len(samples) == 0:
        raise ValueError("cannot read an empty series")
    return ResetCheck(contribution=float(samples[0]), valid=True)


def aggregate_series(
    series: Iterable[Series],
    reader: SampleReader = detect_reset,
) -> Tuple[List[AggregatedValue], HostCoverage]:
    """
    Fold per-series contributions into per ``(group, bucket)`` sums.

    Parameters
    ----------
    series : Iterable[Series]
        Normalized series; those without samples are skipped entirely
    reader : SampleReader, default=detect_reset
        Turns a series' samples into a contribution and validity verdict

    Returns
    -------
    tuple of (List[AggregatedValue], HostCoverage)
        Aggregated values in first-seen order, and the per-group host sets
    """
    sums: Dict[Tuple[str, str], AggregatedValue] = {}
    coverage = HostCoverage()

    for item in series:
        if not item.samples:
            continue

        check = reader(item.samples)
        if not check.valid:
            coverage.add_invalid_host(item.group, item.host)
            logger.debug(
                "histogram.series.reset",
                extra={
                    "group": item.group,
                    "bucket": item.bucket_boundary,
                    "host": item.host,
                    "first": item.samples[0],
                    "last": item.samples[-1],
                },
            )
            continue

        coverage.add_host(item.group, item.host)
        key = (item.group, item.bucket_boundary)
        entry = sums.get(key)
        if entry is None:
            entry = AggregatedValue(group=item.group, bucket_boundary=item.bucket_boundary)
            sums[key] = entry
        entry.value += check.contribution

    log_coverage(coverage)
    return list(sums.values()), coverage


def log_coverage(coverage: HostCoverage) -> None:
    """Log the per-group host counts and invalid host counts."""
    for group in coverage.groups:
        logger.info(
            "The total host count in '%s': %d", group, coverage.host_count(group)
        )
    for group in sorted(coverage.invalid_hosts):
        logger.info(
            "The count of hosts with invalid metrics in '%s': %d",
            group,
            coverage.invalid_host_count(group),
        )


def bucket_sort_key(value: AggregatedValue) -> Tuple[str, int, float, str]:
    """
    Sort key ordering buckets by group, then by numeric boundary.

    The ``+Inf`` boundary always sorts last in its group. Labels that are
    not finite numbers sort after the numeric ones, by label.

    Examples
    --------
    >>> labels = ["+Inf", "10", "2.5"]
    >>> rows = [AggregatedValue(group="z", bucket_boundary=b) for b in labels]
    >>> [r.bucket_boundary for r in sorted(rows, key=bucket_sort_key)]
    ['2.5', '10', '+Inf']
    """
    label = value.bucket_boundary
    if label == INF_BOUNDARY:
        return (value.group, _UNBOUNDED, 0.0, label)
    try:
        bound = float(label)
    except ValueError:
        return (value.group, _NON_NUMERIC, 0.0, label)
    if not math.isfinite(bound):
        return (value.group, _NON_NUMERIC, 0.0, label)
    return (value.group, _NUMERIC, bound, label)


def decumulate_buckets(values: Iterable[AggregatedValue]) -> List[BucketRow]:
    """
    Convert cumulative bucket sums into per-bucket values.

    The lowest bucket of every group keeps its cumulative value; each higher
    bucket gets its cumulative value minus the previous bucket's cumulative
    value in the same group. Differencing restarts at every group change.
    Negative results (inconsistent input) are returned as-is.

    Examples
    --------
    >>> cumulative = [("1", 10.0), ("5", 25.0), ("+Inf", 40.0)]
    >>> values = [
    ...     AggregatedValue(group="z", bucket_boundary=b, value=v)
    ...     for b, v in cumulative
    ... ]
    >>> [row.value for row in decumulate_buckets(values)]
    [10.0, 15.0, 15.0]
    """
    rows: List[BucketRow] = []
    current_group: Optional[str] = None
    previous = 0.0

    for entry in sorted(values, key=bucket_sort_key):
        if entry.group != current_group:
            value = entry.value
            current_group = entry.group
        else:
            value = entry.value - previous
        rows.append(
            BucketRow(group=entry.group, bucket_boundary=entry.bucket_boundary, value=value)
        )
        previous = entry.value

    return rows


def aggregate_and_decumulate(series: Iterable[Series]) -> HistogramReport:
    """
    Build the per-group bucket table of a cumulative histogram over a window.

    Series with a counter reset are excluded and their hosts reported in
    ``coverage.invalid_hosts``. An empty ``rows`` list means there is nothing
    to report for the metric.
    """
    values, coverage = aggregate_series(series, detect_reset)
    return HistogramReport(rows=decumulate_buckets(values), coverage=coverage)


def aggregate_snapshot(series: Iterable[Series]) -> HistogramReport:
    """
    Build the per-group bucket table from the first sample of each series.

    Used when the configured window denotes a single point in time.
    """
    values, coverage = aggregate_series(series, read_snapshot)
    return HistogramReport(rows=decumulate_buckets(values), coverage=coverage)
