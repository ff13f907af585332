"""Config models and loader.

This module defines Pydantic models for the YAML metrics configuration and
for environment-based settings. The YAML file describes the Grafana server
and the list of histogram metrics to export; environment settings cover
values that should not live in the file (log level, API key).
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_CONFIG_FILE = "./metrics.yaml"


class ConfigError(Exception):
    """Raised when the metrics configuration cannot be read or validated."""


class GrafanaConfig(BaseModel):
    """Connection settings for the Grafana server.

    Attributes
    ----------
    server: str
        Host name or IP address of the Grafana server.
    port: str
        TCP port of the Grafana HTTP API.
    api_key: Optional[str]
        Token sent in the Authorization header.
    scheme: str
        URL scheme ("http" or "https").
    timeout_seconds: int
        HTTP request timeout in seconds.
    """

    server: str = Field(..., min_length=1)
    port: str = Field("3000")
    api_key: Optional[str] = Field(None, description="Authentication token")
    scheme: Literal["http", "https"] = "http"
    timeout_seconds: int = Field(30, ge=1)

    @field_validator("port", mode="before")
    @classmethod
    def _port_as_str(cls, value: object) -> object:
        # YAML reads an unquoted port as an int
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def base_url(self) -> str:
        """Return the base URL of the Grafana HTTP API."""
        return f"{self.scheme}://{self.server}:{self.port}"


class TimeRange(BaseModel):
    """Query window, written as ``YYYY-MM-DD HH:MM:SS`` in UTC."""

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_format(cls, value: str) -> str:
        try:
            datetime.strptime(value, TIME_FORMAT)
        except ValueError as exc:
            raise ValueError(
                f"time '{value}' does not match format '{TIME_FORMAT}'"
            ) from exc
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if self.start_ms > self.end_ms:
            raise ValueError(f"time range start {self.start} is after end {self.end}")
        return self

    @staticmethod
    def _to_epoch_ms(value: str) -> int:
        parsed = datetime.strptime(value, TIME_FORMAT).replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)

    @property
    def start_ms(self) -> int:
        """Window start as Unix epoch milliseconds."""
        return self._to_epoch_ms(self.start)

    @property
    def end_ms(self) -> int:
        """Window end as Unix epoch milliseconds."""
        return self._to_epoch_ms(self.end)


class SeriesLabels(BaseModel):
    """Label keys used to read group, bucket and host from a series."""

    group: str = "agent_tag_mzone_name"
    bucket: str = "le"
    host: str = "host_hostname"


class ReportConfig(BaseModel):
    """Output workbook settings.

    Attributes
    ----------
    output_dir: str
        Directory in which the workbook is created.
    file_prefix: str
        Workbook file name prefix; a ``YYYYmmddHHMMSS`` stamp is appended.
    sheet_prefix_strip: str
        Prefix removed from metric names when deriving sheet titles.
    """

    output_dir: str = "."
    file_prefix: str = "sdn_metrics_"
    sheet_prefix_strip: str = ""


class MetricRequest(BaseModel):
    """One histogram metric to export.

    ``mode`` selects how each series is read: ``window`` uses the increase
    between the first and last sample, ``snapshot`` uses the first sample as
    the cumulative total at a single point in time.
    """

    metric: str = Field(..., min_length=1)
    region: str = Field(..., min_length=1)
    mzone: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    time_range: TimeRange
    enabled: bool = False
    mode: Literal["window", "snapshot"] = "window"


class MetricsConfig(BaseModel):
    """Top-level metrics configuration.

    Attributes
    ----------
    grafana: GrafanaConfig
        Grafana connection settings.
    metrics: List[MetricRequest]
        Metrics to export, processed in file order.
    report: ReportConfig
        Output workbook settings.
    labels: SeriesLabels
        Label keys of the returned series.
    """

    grafana: GrafanaConfig
    metrics: List[MetricRequest] = Field(default_factory=list)
    report: ReportConfig = Field(default_factory=ReportConfig)
    labels: SeriesLabels = Field(default_factory=SeriesLabels)

    @property
    def enabled_metrics(self) -> List[MetricRequest]:
        """Return the metrics flagged ``enabled``, in file order."""
        return [m for m in self.metrics if m.enabled]

    @staticmethod
    def load(path: Path, api_key: Optional[str] = None) -> "MetricsConfig":
        """Load the metrics configuration from a YAML file.

        Parameters
        ----------
        path: Path
            Location of the YAML file.
        api_key: Optional[str]
            When given, replaces ``grafana.api_key`` from the file.

        Raises
        ------
        ConfigError
            If the file is missing, is not valid YAML, or fails validation.
        """
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"cannot read config file {path}: {exc}") from exc
        try:
            data = yaml.safe_load(raw) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a mapping")
        try:
            config = MetricsConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"invalid config in {path}: {exc}") from exc
        if api_key:
            config.grafana.api_key = api_key
        return config


class EnvSettings(BaseSettings):
    """Environment-driven settings and .env support.

    Attributes
    ----------
    log_level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".
    config_file: str
        Path of the YAML metrics configuration.
    grafana_api_key: Optional[str]
        Grafana token; overrides ``grafana.api_key`` from the YAML file.
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="SDN_METRICS_")

    log_level: str = Field("INFO")
    config_file: str = Field(DEFAULT_CONFIG_FILE)
    grafana_api_key: Optional[str] = None
