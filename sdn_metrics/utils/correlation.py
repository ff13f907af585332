"""Lightweight correlation ID utilities for structured logging.

Provides a per-metric correlation identifier via a ContextVar so that the
Grafana adapter can tag its log records with the metric currently being
processed, without passing the identifier through every call.
"""

from __future__ import annotations

from contextvars import ContextVar

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def set_request_id(request_id: str) -> None:
    """Set the current correlation id in a context variable."""

    _request_id_var.set(request_id)


def get_request_id() -> str:
    """Return the current correlation id, or empty string."""

    return _request_id_var.get()
