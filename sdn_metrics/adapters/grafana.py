"""Grafana metrics source adapter.

This adapter queries a Grafana server that fronts the Sysdig/Prometheus data
sources of each region. It encapsulates transport concerns (base URL,
headers, timeouts), resolves the data source of a region by name, runs the
PromQL range query through ``/api/ds/query`` and returns validated Pydantic
models.

Notes
-----
- Connection settings are passed in explicitly as a ``GrafanaConfig``.
- Requests are not retried; failures surface as ``httpx.HTTPError`` or
  ``ValueError`` and are handled per metric by the runner.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx
import orjson
from pydantic import ValidationError

from ..config.models import GrafanaConfig, MetricRequest, SeriesLabels
from ..domain.models import Series
from ..domain.normalize import series_from_frames
from ..schemas.grafana import DataSource, QueryRequest, QueryResponse, QueryTarget
from ..utils.correlation import get_request_id

logger = logging.getLogger(__name__)


class GrafanaAdapter:
    """Adapter for the Grafana HTTP API.

    Parameters
    ----------
    config: GrafanaConfig
        Server address, API key and timeout.
    labels: Optional[SeriesLabels]
        Label keys used when normalizing returned series.

    Attributes
    ----------
    _client: httpx.AsyncClient
        Shared async client configured with base URL, timeout, and headers.
    """

    def __init__(
        self, config: GrafanaConfig, labels: Optional[SeriesLabels] = None
    ) -> None:
        self._config = config
        self._labels = labels or SeriesLabels()
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            headers=self._headers(config.api_key),
        )
        logger.debug(
            "grafana.adapter.init",
            extra={
                "base_url": config.base_url,
                "timeout_seconds": config.timeout_seconds,
            },
        )

    def inject_http_client_for_testing(self, client: Any) -> None:
        """Replace underlying HTTP client (testing only).

        This allows unit tests to provide a mock compatible with ``get()``
        and ``post()``.
        """
        self._client = client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @staticmethod
    def _headers(api_key: Optional[str]) -> dict:
        """Build default headers.

        A key that already carries a scheme (e.g. ``"Bearer abc"``) is sent
        verbatim; a bare token gets the ``Bearer`` scheme.
        """
        headers = {"Content-Type": "application/json"}
        if api_key:
            token = api_key.strip()
            headers["Authorization"] = token if " " in token else f"Bearer {token}"
        return headers

    @staticmethod
    def build_expr(metric: str, labels: Sequence[str]) -> str:
        """Build a PromQL selector from a metric name and label matchers.

        Examples
        --------
        >>> GrafanaAdapter.build_expr("m_bucket", ['zone="z1"', 'le!=""'])
        'm_bucket{zone="z1",le!=""}'
        """
        return metric + "{" + ",".join(labels) + "}"

    def _decode(self, resp: Any, path: str) -> Any:
        """Decode a JSON response body with orjson."""
        try:
            return orjson.loads(resp.content)
        except orjson.JSONDecodeError as exc:
            raise ValueError(f"invalid JSON in response from {path}: {exc}") from exc

    def _raise_for_status(self, resp: Any, path: str) -> None:
        """Raise ``httpx.HTTPStatusError`` on non-2xx, logging a body preview."""
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            text = exc.response.text or ""
            body_preview = text if len(text) <= 500 else text[:500] + "..."
            logger.error(
                "grafana.http.status_error",
                extra={
                    "req_id": get_request_id(),
                    "path": path,
                    "status": exc.response.status_code,
                    "body_preview": body_preview,
                },
            )
            raise

    async def _get_json(self, path: str) -> Any:
        logger.debug("grafana.http.get", extra={"req_id": get_request_id(), "path": path})
        resp = await self._client.get(path)
        self._raise_for_status(resp, path)
        return self._decode(resp, path)

    async def _post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        """POST JSON to an endpoint and return the parsed JSON body.

        Raises
        ------
        httpx.HTTPError
            On transport errors or non-2xx responses.
        ValueError
            If response body is not valid JSON.
        """
        logger.debug(
            "grafana.http.post",
            extra={
                "req_id": get_request_id(),
                "path": path,
                "payload_keys": list(payload.keys()),
            },
        )
        resp = await self._client.post(path, json=payload)
        self._raise_for_status(resp, path)
        data = self._decode(resp, path)
        logger.debug(
            "grafana.http.response",
            extra={
                "req_id": get_request_id(),
                "path": path,
                "status_code": resp.status_code,
            },
        )
        return data

    async def get_datasource(self, region: str) -> DataSource:
        """Resolve the data source registered under ``region``.

        Raises
        ------
        ValueError
            If the response does not describe a data source.
        """
        path = f"/api/datasources/name/{quote(region, safe='')}"
        data = await self._get_json(path)
        try:
            return DataSource.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"no datasource found for region '{region}'") from exc

    async def query(
        self, datasource_id: int, expr: str, start_ms: int, end_ms: int
    ) -> QueryResponse:
        """Run a range query against one data source.

        Parameters
        ----------
        datasource_id: int
            Numeric Grafana data source id.
        expr: str
            PromQL expression.
        start_ms, end_ms: int
            Query window as Unix epoch milliseconds.

        Raises
        ------
        ValueError
            If the response cannot be parsed or a query result carries an
            error.
        """
        request = QueryRequest(
            queries=[QueryTarget(expr=expr, datasource_id=datasource_id)],
            from_time=str(start_ms),
            to_time=str(end_ms),
        )
        data = await self._post_json(
            "/api/ds/query", request.model_dump(by_alias=True)
        )
        try:
            response = QueryResponse.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"unexpected query response shape: {exc}") from exc
        for ref_id, result in response.results.items():
            if result.error:
                # Grafana reports PromQL errors per query, often with a 207
                logger.warning(
                    "Query %s for %s returned an error: %s", ref_id, expr, result.error
                )
                raise ValueError(f"query {ref_id} failed: {result.error}")
        return response

    async def fetch_series(self, request: MetricRequest) -> List[Series]:
        """Fetch and normalize the series of one configured metric."""
        datasource = await self.get_datasource(request.region)
        expr = self.build_expr(request.metric, request.labels)
        response = await self.query(
            datasource.id,
            expr,
            request.time_range.start_ms,
            request.time_range.end_ms,
        )
        frames = response.frames()
        logger.debug(
            "grafana.query.frames",
            extra={"req_id": get_request_id(), "expr": expr, "frames": len(frames)},
        )
        return series_from_frames(frames, self._labels)
