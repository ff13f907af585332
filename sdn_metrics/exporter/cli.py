"""Command-line interface for the SDN metrics exporter.

This CLI loads the YAML metrics configuration, connects to Grafana, exports
every enabled histogram metric into a timestamped workbook, and prints a
summary of the run.

Usage
-----
    sdn-metrics --config metrics.yaml
    python -m sdn_metrics.exporter.cli -v
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..adapters.grafana import GrafanaAdapter
from ..config.models import ConfigError, EnvSettings, MetricsConfig
from ..observability import setup_logging
from ..report.xlsx import XlsxReportWriter
from ..utils.partial_results import PartialResult, format_failure_summary
from .app import MetricsExporter, default_report_path

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_METRIC_FAILED = 1
EXIT_CONFIG_ERROR = 2


async def _run(config: MetricsConfig, output: Path) -> PartialResult:
    """Export the enabled metrics of ``config`` into ``output``."""
    adapter = GrafanaAdapter(config.grafana, config.labels)
    exporter = MetricsExporter(adapter, XlsxReportWriter(output), config.report)
    try:
        return await exporter.run(config.metrics)
    finally:
        await adapter.aclose()


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Export Grafana histogram metrics to an Excel workbook"
    )
    parser.add_argument(
        "--config", help="Path to YAML metrics config (default ./metrics.yaml)"
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Workbook path (default <output_dir>/<file_prefix><timestamp>.xlsx)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=[
            "CRITICAL",
            "ERROR",
            "WARNING",
            "INFO",
            "DEBUG",
        ],
        help="Logging level (overrides environment)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (once sets DEBUG)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint; returns the process exit status."""
    args = build_parser().parse_args(argv)
    settings = EnvSettings()

    effective_level = args.log_level or (
        "DEBUG" if args.verbose > 0 else settings.log_level.upper()
    )
    setup_logging(effective_level)

    config_path = Path(args.config or settings.config_file)
    try:
        config = MetricsConfig.load(config_path, api_key=settings.grafana_api_key)
    except ConfigError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG_ERROR

    if not config.enabled_metrics:
        logger.warning("No enabled metrics in %s; nothing to do", config_path)
        return EXIT_OK

    output = Path(args.output) if args.output else default_report_path(config.report)
    result = asyncio.run(_run(config, output))
    logger.info("%s", format_failure_summary(result))
    return EXIT_METRIC_FAILED if result.has_failures else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
