"""Normalization of Grafana data frames into histogram series.

Each frame returned by ``/api/ds/query`` is one labeled time series: the
first column holds timestamps, the second the sample values, and the second
field of the schema carries the series labels. This module turns such frames
into :class:`~sdn_metrics.domain.models.Series` records.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ..config.models import SeriesLabels
from ..schemas.grafana import ResultFrame
from .models import Series
from .utils.validation import filter_valid_samples

logger = logging.getLogger(__name__)

VALUE_COLUMN = 1


def series_from_frame(
    frame: ResultFrame, labels: Optional[SeriesLabels] = None
) -> Optional[Series]:
    """Normalize one data frame into a ``Series``.

    Parameters
    ----------
    frame: ResultFrame
        Frame from a Grafana query response.
    labels: Optional[SeriesLabels]
        Label keys for group, bucket and host. Defaults to the SDN labels.

    Returns
    -------
    Optional[Series]
        The series, or ``None`` when it has no usable samples or lacks the
        group or bucket label (the frame is skipped).

    Raises
    ------
    ValueError
        If the frame has columns but no value column.
    """
    keys = labels or SeriesLabels()
    fields = frame.schema_.fields
    values = frame.data.values
    if not values:
        # Grafana answers a query without data with a frame carrying no columns
        logger.debug("histogram.frame.no_data")
        return None
    if len(fields) <= VALUE_COLUMN or len(values) <= VALUE_COLUMN:
        raise ValueError(
            f"frame has {len(fields)} fields and {len(values)} value columns; "
            "expected a time column and a value column"
        )

    frame_labels = fields[VALUE_COLUMN].labels or {}
    group = frame_labels.get(keys.group, "")
    bucket = frame_labels.get(keys.bucket, "")
    host = frame_labels.get(keys.host, "")

    samples, _ = filter_valid_samples(values[VALUE_COLUMN], log_context=host)
    if not samples:
        logger.debug(
            "histogram.series.empty",
            extra={"group": group, "bucket": bucket, "host": host},
        )
        return None
    if not group:
        logger.warning(
            "Skipping series without '%s' label (host '%s', bucket '%s')",
            keys.group,
            host,
            bucket,
        )
        return None
    if not bucket:
        logger.warning(
            "Skipping series without '%s' label (host '%s', group '%s')",
            keys.bucket,
            host,
            group,
        )
        return None

    return Series(group=group, bucket_boundary=bucket, host=host, samples=samples)


def series_from_frames(
    frames: Iterable[ResultFrame], labels: Optional[SeriesLabels] = None
) -> List[Series]:
    """Normalize all frames of a response, dropping skipped ones."""
    result: List[Series] = []
    for frame in frames:
        series = series_from_frame(frame, labels)
        if series is not None:
            result.append(series)
    return result
