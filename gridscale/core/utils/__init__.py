"""Utility helpers for GridScale."""

from .logging import configure_runtime_logging, format_event, log_event  # noqa: F401

__all__ = [
    "configure_runtime_logging",
    "format_event",
    "log_event",
]
