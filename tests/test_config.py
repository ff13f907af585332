"""Tests for YAML config loading and environment settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from sdn_metrics.config.models import (
    ConfigError,
    EnvSettings,
    MetricsConfig,
    TimeRange,
)

CONFIG_YAML = """
grafana:
  server: grafana.local
  port: 3000
  api_key: "Bearer file-key"
metrics:
  - metric: sysdig_container_sdn_latency_bucket
    region: us-south
    mzone: mzone1
    labels: ['agent_tag_mzone_name="mzone1"']
    time_range:
      start: "2024-01-01 00:00:00"
      end: "2024-01-01 01:00:00"
    enabled: true
  - metric: other_bucket
    region: eu-de
    time_range:
      start: "2024-01-01 00:00:00"
      end: "2024-01-01 00:00:00"
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "metrics.yaml"
    path.write_text(text)
    return path


def test_load_config(tmp_path: Path) -> None:
    """A complete file loads with defaults for optional sections."""
    cfg = MetricsConfig.load(_write(tmp_path, CONFIG_YAML))

    assert cfg.grafana.port == "3000"
    assert cfg.grafana.base_url == "http://grafana.local:3000"
    assert cfg.grafana.api_key == "Bearer file-key"
    assert len(cfg.metrics) == 2
    assert [m.metric for m in cfg.enabled_metrics] == [
        "sysdig_container_sdn_latency_bucket"
    ]
    assert cfg.metrics[1].enabled is False
    assert cfg.metrics[1].mode == "window"
    assert cfg.labels.group == "agent_tag_mzone_name"
    assert cfg.report.file_prefix == "sdn_metrics_"


def test_api_key_override(tmp_path: Path) -> None:
    """An explicit key replaces the one from the file."""
    cfg = MetricsConfig.load(_write(tmp_path, CONFIG_YAML), api_key="env-key")
    assert cfg.grafana.api_key == "env-key"


def test_time_range_epoch_millis() -> None:
    """Times are read as UTC and converted to epoch milliseconds."""
    tr = TimeRange(start="2024-01-01 00:00:00", end="2024-01-01 00:01:00")
    assert tr.start_ms == 1_704_067_200_000
    assert tr.end_ms == tr.start_ms + 60_000


def test_time_range_rejects_bad_format() -> None:
    """Times must use YYYY-MM-DD HH:MM:SS."""
    with pytest.raises(ValueError):
        TimeRange(start="2024-01-01T00:00:00Z", end="2024-01-01 00:01:00")


def test_time_range_rejects_reversed_window() -> None:
    """Start after end is invalid."""
    with pytest.raises(ValueError, match="after end"):
        TimeRange(start="2024-01-02 00:00:00", end="2024-01-01 00:00:00")


def test_missing_file_is_config_error(tmp_path: Path) -> None:
    """A missing file raises ConfigError."""
    with pytest.raises(ConfigError, match="cannot read"):
        MetricsConfig.load(tmp_path / "nope.yaml")


def test_invalid_yaml_is_config_error(tmp_path: Path) -> None:
    """Broken YAML raises ConfigError."""
    with pytest.raises(ConfigError, match="invalid YAML"):
        MetricsConfig.load(_write(tmp_path, "grafana: [unclosed"))


def test_validation_failure_is_config_error(tmp_path: Path) -> None:
    """A file without the grafana section fails validation."""
    with pytest.raises(ConfigError, match="invalid config"):
        MetricsConfig.load(_write(tmp_path, "metrics: []\n"))


def test_non_mapping_is_config_error(tmp_path: Path) -> None:
    """The top level must be a mapping."""
    with pytest.raises(ConfigError, match="mapping"):
        MetricsConfig.load(_write(tmp_path, "- a\n- b\n"))


def test_env_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables with the SDN_METRICS_ prefix are read."""
    monkeypatch.setenv("SDN_METRICS_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("SDN_METRICS_GRAFANA_API_KEY", "secret")
    monkeypatch.setenv("SDN_METRICS_CONFIG_FILE", "/etc/sdn/metrics.yaml")
    settings = EnvSettings()
    assert settings.log_level == "DEBUG"
    assert settings.grafana_api_key == "secret"
    assert settings.config_file == "/etc/sdn/metrics.yaml"
