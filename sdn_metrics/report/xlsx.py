"""Excel report writer.

Writes one worksheet per metric into a shared workbook: the decumulated
bucket table (``MZONE``, ``LE``, ``Metrics``), a column chart over that
table, and a small host coverage table next to the chart.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Tuple, Union

from openpyxl import Workbook, load_workbook
from openpyxl.chart import BarChart, Reference
from openpyxl.worksheet.worksheet import Worksheet

from ..domain.models import HistogramReport

logger = logging.getLogger(__name__)

MAX_SHEET_TITLE = 31
TABLE_HEADERS = ("MZONE", "LE", "Metrics")
COVERAGE_HEADERS = ("MZONE", "Hosts", "Invalid Hosts")
CHART_ANCHOR = "E1"
COVERAGE_COLUMN = 15  # column O, right of the chart

_INVALID_TITLE_CHARS = re.compile(r"[\[\]:*?/\\]")


def sheet_name_for(metric: str, index: int, strip_prefix: str = "") -> str:
    """Derive a worksheet title for the ``index``-th (1-based) metric.

    Examples
    --------
    >>> sheet_name_for("sysdig_container_sdn_latency_bucket", 2, "sysdig_container_")
    'sdn_latency_bucket_2'
    """
    base = metric
    if strip_prefix and base.startswith(strip_prefix):
        base = base[len(strip_prefix):]
    base = _INVALID_TITLE_CHARS.sub("_", base)
    suffix = f"_{index}"
    return base[: MAX_SHEET_TITLE - len(suffix)] + suffix


def _find_sheet(workbook: Workbook, sheet_name: str) -> Optional[str]:
    """Return the title of the sheet that ``sheet_name`` collides with."""
    wanted = sheet_name.casefold()
    for title in workbook.sheetnames:
        if title.casefold() == wanted:
            return title
    return None


class XlsxReportWriter:
    """Append histogram reports to an ``.xlsx`` workbook.

    Parameters
    ----------
    path: Union[str, Path]
        Workbook location. An existing file is loaded on the first write,
        otherwise a new workbook is created. The workbook stays in memory and
        is saved after every sheet, so each metric is on disk as soon as it is
        written. Sheets already in the file keep their tables and charts.
        Sheet names are matched case-insensitively, as Excel does, and an
        existing sheet is replaced in place.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._workbook: Optional[Workbook] = None

    def _open(self, sheet_name: str) -> Tuple[Workbook, Worksheet]:
        if self._workbook is None:
            if not self.path.exists():
                self._workbook = Workbook()
                sheet = self._workbook.active
                sheet.title = sheet_name
                return self._workbook, sheet
            self._workbook = load_workbook(self.path)

        workbook = self._workbook
        existing = _find_sheet(workbook, sheet_name)
        if existing is not None:
            logger.warning(
                "Sheet '%s' already exists in %s; replacing it", existing, self.path
            )
            position = workbook.sheetnames.index(existing)
            del workbook[existing]
            return workbook, workbook.create_sheet(sheet_name, position)
        return workbook, workbook.create_sheet(sheet_name)

    def write(self, sheet_name: str, report: HistogramReport) -> None:
        """Write ``report`` into the ``sheet_name`` worksheet and save.

        Raises
        ------
        ValueError
            If the report has no rows.
        OSError
            If the workbook cannot be saved.
        """
        if report.is_empty:
            raise ValueError(f"refusing to write empty report to sheet '{sheet_name}'")

        workbook, sheet = self._open(sheet_name)

        sheet.append(TABLE_HEADERS)
        for row in report.rows:
            sheet.append((row.group, row.bucket_boundary, float(row.value)))

        self._add_chart(sheet, sheet_name, len(report.rows) + 1)
        self._write_coverage(sheet, report)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(self.path)
        logger.debug(
            "report.xlsx.saved",
            extra={"path": str(self.path), "sheet": sheet_name, "rows": len(report.rows)},
        )

    @staticmethod
    def _add_chart(sheet: Worksheet, title: str, last_row: int) -> None:
        chart = BarChart()
        chart.type = "col"
        chart.title = title
        chart.legend = None

        values = Reference(sheet, min_col=3, min_row=2, max_row=last_row)
        categories = Reference(sheet, min_col=1, max_col=2, min_row=2, max_row=last_row)
        chart.add_data(values, titles_from_data=False)
        chart.set_categories(categories)
        sheet.add_chart(chart, CHART_ANCHOR)

    @staticmethod
    def _write_coverage(sheet: Worksheet, report: HistogramReport) -> None:
        coverage = report.coverage
        for offset, header in enumerate(COVERAGE_HEADERS):
            sheet.cell(row=1, column=COVERAGE_COLUMN + offset, value=header)
        for row_idx, group in enumerate(coverage.groups, start=2):
            sheet.cell(row=row_idx, column=COVERAGE_COLUMN, value=group)
            sheet.cell(
                row=row_idx, column=COVERAGE_COLUMN + 1, value=coverage.host_count(group)
            )
            sheet.cell(
                row=row_idx,
                column=COVERAGE_COLUMN + 2,
                value=coverage.invalid_host_count(group),
            )
