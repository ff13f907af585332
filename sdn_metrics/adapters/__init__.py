"""Metrics source interface."""

from __future__ import annotations

from typing import List, Protocol

from ..config.models import MetricRequest
from ..domain.models import Series


class MetricsSource(Protocol):
    """Protocol for the monitoring backend queried by the runner.

    Implementations resolve the configured region, run the metric query over
    the configured window, and return the normalized series.
    """

    async def fetch_series(self, request: MetricRequest) -> List[Series]:
        """Return the non-empty series of one configured metric."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release the underlying connections."""
        raise NotImplementedError
