"""CLI smoke tests.

Runs the command-line entry point against temporary configs with the Grafana
adapter replaced, checking exit codes and the produced workbook.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List

import pytest
from openpyxl import load_workbook

from sdn_metrics.domain.models import Series
from sdn_metrics.exporter import cli

CONFIG = """
grafana:
  server: grafana.local
  port: "3000"
metrics:
  - metric: sdn_latency_bucket
    region: us-south
    time_range:
      start: "2024-01-01 00:00:00"
      end: "2024-01-01 01:00:00"
    enabled: {enabled}
  - metric: sdn_broken_bucket
    region: nowhere
    time_range:
      start: "2024-01-01 00:00:00"
      end: "2024-01-01 01:00:00"
    enabled: {broken_enabled}
"""


class _FakeAdapter:
    """Stand-in for GrafanaAdapter returning fixed series."""

    closed: List[bool] = []

    def __init__(self, config: Any, labels: Any = None) -> None:
        self.config = config

    async def fetch_series(self, request: Any) -> List[Series]:
        if request.region == "nowhere":
            raise ValueError("no datasource found for region 'nowhere'")
        return [
            Series(group="z1", bucket_boundary="1", host="h1", samples=[0, 4]),
            Series(group="z1", bucket_boundary="+Inf", host="h1", samples=[0, 6]),
        ]

    async def aclose(self) -> None:
        _FakeAdapter.closed.append(True)


@pytest.fixture(autouse=True)
def _fake_adapter(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(cli, "GrafanaAdapter", _FakeAdapter)
    monkeypatch.delenv("SDN_METRICS_GRAFANA_API_KEY", raising=False)
    _FakeAdapter.closed = []
    yield


def _config(tmp_path: Path, enabled: bool = True, broken_enabled: bool = False) -> Path:
    path = tmp_path / "metrics.yaml"
    path.write_text(
        CONFIG.format(
            enabled=str(enabled).lower(), broken_enabled=str(broken_enabled).lower()
        )
    )
    return path


def test_cli_writes_workbook(tmp_path: Path) -> None:
    """A successful run exits 0 and writes the sheet."""
    out = tmp_path / "out.xlsx"
    code = cli.main(["--config", str(_config(tmp_path)), "--output", str(out)])

    assert code == cli.EXIT_OK
    ws = load_workbook(out)["sdn_latency_bucket_1"]
    assert [ws["C2"].value, ws["C3"].value] == [4.0, 2.0]
    assert _FakeAdapter.closed == [True]


def test_cli_metric_failure_exit_code(tmp_path: Path) -> None:
    """A failed metric is reported with exit status 1, others still export."""
    out = tmp_path / "out.xlsx"
    code = cli.main(
        ["--config", str(_config(tmp_path, broken_enabled=True)), "-o", str(out)]
    )
    assert code == cli.EXIT_METRIC_FAILED
    assert load_workbook(out).sheetnames == ["sdn_latency_bucket_1"]


def test_cli_config_error(tmp_path: Path) -> None:
    """A missing config file exits with status 2."""
    code = cli.main(["--config", str(tmp_path / "missing.yaml")])
    assert code == cli.EXIT_CONFIG_ERROR


def test_cli_nothing_enabled(tmp_path: Path) -> None:
    """No enabled metrics is a no-op success."""
    out = tmp_path / "out.xlsx"
    code = cli.main(["--config", str(_config(tmp_path, enabled=False)), "-o", str(out)])
    assert code == cli.EXIT_OK
    assert not out.exists()


def test_parser_defaults() -> None:
    """Verbosity and log level flags parse."""
    args = cli.build_parser().parse_args(["-vv", "--log-level", "WARNING"])
    assert args.verbose == 2
    assert args.log_level == "WARNING"
    assert args.config is None
