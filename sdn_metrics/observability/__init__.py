"""Observability utilities: logging setup.

This module configures standard logging for the command-line tool. HTTP
client libraries are kept quiet unless DEBUG output is requested, so that the
per-metric progress and host coverage summaries stay readable.
"""

from __future__ import annotations

import logging

_NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Parameters
    ----------
    level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".

    Behavior
    --------
    - Initializes Python's logging with the requested level.
    - Holds ``httpx``/``httpcore`` at WARNING unless the level is DEBUG.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=("%(asctime)s %(levelname)s %(name)s - %(message)s"),
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    library_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(library_level)
