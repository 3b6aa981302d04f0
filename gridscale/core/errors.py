"""
Exception hierarchy for GridScale.

All custom exceptions inherit from :class:`GridScaleError` so callers can
filter autoscaler failures from unrelated errors.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "ClusterCommandError",
    "ConfigurationError",
    "GridScaleError",
]


class GridScaleError(Exception):
    """Base exception for all GridScale errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
    """

    code: str = "GRIDSCALE_ERROR"

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "context": dict(self.context)}


class ConfigurationError(GridScaleError, ValueError):
    """Invalid or inconsistent configuration detected before the loop starts."""

    code = "CONFIGURATION_ERROR"


class ClusterCommandError(GridScaleError, RuntimeError):
    """A cluster manager query or lifecycle command failed."""

    code = "CLUSTER_COMMAND_ERROR"

    def __init__(
        self,
        message: str,
        *,
        command: Optional[str] = None,
        detail: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        merged = dict(context or {})
        if command is not None:
            merged["command"] = command
        if detail:
            merged["detail"] = detail
        super().__init__(message, context=merged)
        self.command = command
        self.detail = detail or ""
