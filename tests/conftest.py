"""Pytest configuration for test suite.

Ensures the project root is on ``sys.path`` so imports like
``import sdn_metrics`` resolve correctly regardless of the working directory
pytest chooses, and provides builders for Grafana frames and series.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


def _ensure_project_root_on_syspath() -> None:
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        # Prepend to prefer local sources over site-packages
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_syspath()


def frame_dict(
    zone: str,
    le: str,
    host: str,
    values: List[Optional[float]],
) -> Dict[str, Any]:
    """Build one ``/api/ds/query`` frame as returned by Grafana."""
    times = [1_700_000_000_000 + i * 60_000 for i in range(len(values))]
    return {
        "schema": {
            "fields": [
                {"name": "Time", "type": "time"},
                {
                    "name": "Value",
                    "type": "number",
                    "labels": {
                        "agent_tag_mzone_name": zone,
                        "le": le,
                        "host_hostname": host,
                        "agent_id": "1",
                    },
                },
            ]
        },
        "data": {"values": [times, values]},
    }


@pytest.fixture
def make_frame():
    """Factory fixture for Grafana frame dictionaries."""
    return frame_dict


@pytest.fixture
def make_series():
    """Factory fixture for ``Series`` records."""
    from sdn_metrics.domain.models import Series

    def _make(group: str, le: str, host: str, samples: List[float]) -> Series:
        return Series(group=group, bucket_boundary=le, host=host, samples=samples)

    return _make
