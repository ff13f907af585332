"""
Partial results handling for the per-metric export batch.

A failing metric (unknown region, HTTP error, unwritable workbook) must not
stop the batch. These helpers record which metrics were exported, skipped or
failed, classify failures, and format a summary for the end of the run.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List

import httpx

logger = logging.getLogger(__name__)


@dataclass
class FailureInfo:
    """
    Information about a failed metric export.

    Attributes
    ----------
    identifier : str
        Metric identifier (sheet name)
    error : str
        Error message
    error_type : str
        Type of error (e.g., "http_error", "timeout", "parse_error")
    retryable : bool
        Whether the export might succeed if run again
    """

    identifier: str
    error: str
    error_type: str
    retryable: bool = False


@dataclass
class PartialResult:
    """
    Outcome of an export batch.

    Attributes
    ----------
    successes : List[str]
        Identifiers of metrics written to the report
    skipped : List[str]
        Identifiers of metrics that returned no data
    failures : List[FailureInfo]
        Information about failed metrics
    """

    successes: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failures: List[FailureInfo] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of metrics attempted."""
        return len(self.successes) + len(self.skipped) + len(self.failures)

    @property
    def success_rate(self) -> float:
        """Ratio of non-failed metrics to attempts (0.0-1.0)."""
        if self.total == 0:
            return 0.0
        return (len(self.successes) + len(self.skipped)) / self.total

    @property
    def has_failures(self) -> bool:
        """Check if any metric failed."""
        return len(self.failures) > 0

    def record_failure(self, identifier: str, exc: Exception) -> FailureInfo:
        """Classify ``exc``, store it and log a warning."""
        error_type = classify_error(exc)
        failure = FailureInfo(
            identifier=identifier,
            error=str(exc) or type(exc).__name__,
            error_type=error_type,
            retryable=is_retryable(error_type),
        )
        self.failures.append(failure)
        logger.warning(
            "Metric %s failed (%s): %s", identifier, error_type, failure.error
        )
        return failure


def classify_error(exc: Exception) -> str:
    """Classify exception into error type."""
    error_type = "unknown_error"

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status >= 500:
            error_type = "server_error"
        elif status in (401, 403):
            error_type = "auth_error"
        elif status == 404:
            error_type = "not_found"
        elif status >= 400:
            error_type = "client_error"
        else:
            error_type = "http_error"
    elif isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        error_type = "timeout"
    elif isinstance(exc, httpx.ConnectError):
        error_type = "connection_error"
    elif isinstance(exc, httpx.HTTPError):
        error_type = "http_error"
    elif isinstance(exc, ValueError):
        error_type = "parse_error"
    elif isinstance(exc, OSError):
        error_type = "io_error"

    return error_type


def is_retryable(error_type: str) -> bool:
    """Determine if an error type is retryable."""
    retryable_types = {
        "timeout",
        "connection_error",
        "server_error",
    }
    return error_type in retryable_types


def format_failure_summary(result: PartialResult) -> str:
    """
    Format a human-readable summary of the batch outcome.

    Parameters
    ----------
    result : PartialResult
        The batch outcome to summarize

    Returns
    -------
    str
        Formatted summary string
    """
    if not result.has_failures:
        return (
            f"All {result.total} metric(s) processed: "
            f"{len(result.successes)} exported, {len(result.skipped)} without data."
        )

    lines = [
        f"Partial results: {len(result.successes)} exported, "
        f"{len(result.skipped)} without data, {len(result.failures)} failed "
        f"({result.success_rate:.1%} success rate)",
    ]

    failures_by_type: Dict[str, List[FailureInfo]] = {}
    for failure in result.failures:
        failures_by_type.setdefault(failure.error_type, []).append(failure)

    for error_type, failures in failures_by_type.items():
        retry_note = " (retryable)" if failures[0].retryable else " (not retryable)"
        lines.append(f"  - {len(failures)} {error_type}{retry_note}")

        identifiers = [f.identifier for f in failures[:3]]
        if len(failures) > 3:
            identifiers.append(f"... and {len(failures) - 3} more")
        lines.append(f"    Affected: {', '.join(identifiers)}")

    return "\n".join(lines)
