"""Metrics export batch.

This module drives one export run: for every enabled metric, in
configuration order, it fetches the series from the metrics source, builds
the decumulated histogram, and writes it to the workbook. Metrics are handled
one at a time and share no state; a failure is recorded and the batch moves
on to the next metric.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from ..adapters import MetricsSource
from ..config.models import MetricRequest, ReportConfig
from ..domain.histogram import aggregate_and_decumulate, aggregate_snapshot
from ..domain.models import HistogramReport
from ..report.xlsx import XlsxReportWriter, sheet_name_for
from ..utils.correlation import set_request_id
from ..utils.partial_results import PartialResult

logger = logging.getLogger(__name__)


def default_report_path(
    report: ReportConfig, now: Optional[datetime] = None
) -> Path:
    """Return ``<output_dir>/<file_prefix><YYYYmmddHHMMSS>.xlsx``."""
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
    return Path(report.output_dir) / f"{report.file_prefix}{stamp}.xlsx"


class MetricsExporter:
    """Export configured histogram metrics to a workbook.

    Parameters
    ----------
    source: MetricsSource
        Backend returning the normalized series of a metric.
    writer: XlsxReportWriter
        Workbook writer shared by all metrics of the run.
    report: Optional[ReportConfig]
        Sheet naming settings.
    """

    def __init__(
        self,
        source: MetricsSource,
        writer: XlsxReportWriter,
        report: Optional[ReportConfig] = None,
    ) -> None:
        self._source = source
        self._writer = writer
        self._report = report or ReportConfig()

    async def build_report(self, request: MetricRequest) -> HistogramReport:
        """Fetch one metric and build its histogram report."""
        start = time.monotonic()
        logger.info(
            "Starting to fetch metrics [%s] from [%s] ...", request.metric, request.region
        )
        series = await self._source.fetch_series(request)
        logger.info(
            "Fetching metrics [%s] from [%s] is finished. (%.3fs, %d series)",
            request.metric,
            request.region,
            time.monotonic() - start,
            len(series),
        )
        if request.mode == "snapshot":
            return aggregate_snapshot(series)
        return aggregate_and_decumulate(series)

    async def export_metric(self, index: int, request: MetricRequest) -> bool:
        """Export the ``index``-th (1-based) configured metric.

        Returns
        -------
        bool
            True if a sheet was written, False if there was no data.
        """
        sheet_name = sheet_name_for(
            request.metric, index, self._report.sheet_prefix_strip
        )
        report = await self.build_report(request)
        if report.is_empty:
            logger.info(
                "No histogram data for [%s] from [%s]; nothing to save",
                request.metric,
                request.region,
            )
            return False

        self._writer.write(sheet_name, report)
        logger.info(
            "The metrics [%s] from [%s] is saved to: %s (sheet %s)",
            request.metric,
            request.region,
            self._writer.path,
            sheet_name,
        )
        return True

    async def run(self, metrics: Sequence[MetricRequest]) -> PartialResult:
        """Export every enabled metric, continuing past failures.

        Sheet numbering follows the position in ``metrics`` so that it stays
        stable when metrics are toggled on and off.
        """
        result = PartialResult()
        for index, request in enumerate(metrics, start=1):
            if not request.enabled:
                continue
            identifier = sheet_name_for(
                request.metric, index, self._report.sheet_prefix_strip
            )
            set_request_id(identifier)
            logger.info("-----------------------------------------------")
            try:
                written = await self.export_metric(index, request)
            except Exception as exc:
                result.record_failure(identifier, exc)
                continue
            finally:
                set_request_id("")
            if written:
                result.successes.append(identifier)
            else:
                result.skipped.append(identifier)

        logger.info("SDN metrics query is finished!")
        return result
