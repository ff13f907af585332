"""
SDN metrics histogram reporting package.

This package fetches cumulative histogram metrics from Grafana, rebuilds
per-bucket values per zone, and writes them to an Excel workbook.
"""

from .__version__ import __version__

__all__ = ["__version__"]
