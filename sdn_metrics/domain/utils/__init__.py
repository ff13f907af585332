"""
Shared utilities for the histogram pipeline.

Modules
-------
validation
    Sample validation (drops null, NaN and infinite values)
"""

__all__ = []
