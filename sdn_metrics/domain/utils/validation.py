"""
Validation utilities for sample values.

Grafana returns gaps in a series as ``null`` and may pass through ``NaN`` or
infinite values from the backend. These helpers drop such samples so that the
histogram pipeline only sees finite floats.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


def is_valid_sample(value: Optional[float]) -> bool:
    """
    Check if a sample is present and finite.

    Examples
    --------
    >>> is_valid_sample(42.5)
    True
    >>> is_valid_sample(None)
    False
    >>> is_valid_sample(float('nan'))
    False
    """
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def filter_valid_samples(
    values: Sequence[Optional[float]],
    log_context: str = "unknown",
) -> Tuple[List[float], int]:
    """
    Filter samples down to present, finite values, preserving order.

    Parameters
    ----------
    values : Sequence[Optional[float]]
        Raw sample values
    log_context : str, default="unknown"
        Context string for logging (e.g., the host name of the series)

    Returns
    -------
    tuple of (List[float], int)
        Tuple of (valid samples as floats, count of samples removed)

    Examples
    --------
    >>> filter_valid_samples([1.0, None, 3.0, float('inf')])
    ([1.0, 3.0], 2)
    """
    valid: List[float] = []
    dropped = 0
    for value in values:
        if is_valid_sample(value):
            valid.append(float(value))  # type: ignore[arg-type]
        else:
            dropped += 1

    if dropped:
        logger.debug(
            "samples.invalid_filtered",
            extra={"context": log_context, "dropped": dropped, "kept": len(valid)},
        )
    return valid, dropped
