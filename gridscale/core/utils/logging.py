"""Logging utilities for GridScale runtime components."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Optional, Union


_HANDLER_NAME = "_gridscale_stream_handler"
_FILE_HANDLER_NAME = "_gridscale_file_handler"
_DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_runtime_logging(
    level: int = logging.INFO,
    formatter: Optional[logging.Formatter] = None,
    *,
    log_file: Union[str, Path, None] = None,
) -> None:
    """Ensure that runtime processes emit logs to stdout (and optionally a file) with a consistent format."""
    root_logger = logging.getLogger()
    if formatter is None:
        formatter = logging.Formatter(_DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    existing = None
    for handler in root_logger.handlers:
        if getattr(handler, _HANDLER_NAME, False):
            existing = handler
            break

    if existing is None:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        setattr(stream_handler, _HANDLER_NAME, True)
        root_logger.addHandler(stream_handler)
    else:
        existing.setFormatter(formatter)
        existing.setLevel(level)

    if log_file is not None:
        _attach_file_handler(root_logger, Path(log_file).expanduser(), level, formatter)

    if root_logger.level > level or root_logger.level == logging.NOTSET:
        root_logger.setLevel(level)


def _attach_file_handler(root_logger: logging.Logger, path: Path, level: int, formatter: logging.Formatter) -> None:
    for handler in list(root_logger.handlers):
        if getattr(handler, _FILE_HANDLER_NAME, False):
            if Path(handler.baseFilename) == path.resolve():
                handler.setFormatter(formatter)
                handler.setLevel(level)
                return
            root_logger.removeHandler(handler)
            handler.close()

    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    setattr(file_handler, _FILE_HANDLER_NAME, True)
    root_logger.addHandler(file_handler)


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple, set, frozenset)):
        value = ",".join(str(item) for item in value)
    text = str(value)
    if not text or any(ch.isspace() for ch in text) or "=" in text:
        return '"' + text.replace('"', '\\"') + '"'
    return text


def format_event(component: str, action: str, status: str, **fields: Any) -> str:
    """Render ``component=.. action=.. status=..`` followed by sorted ``key=value`` pairs."""
    parts = [
        f"component={_format_value(component)}",
        f"action={_format_value(action)}",
        f"status={_format_value(status)}",
    ]
    parts.extend(f"{key}={_format_value(value)}" for key, value in sorted(fields.items()))
    return " ".join(parts)


def log_event(
    logger: logging.Logger,
    component: str,
    action: str,
    status: str,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit one line-oriented structured record for external monitoring."""
    if logger.isEnabledFor(level):
        logger.log(level, "%s", format_event(component, action, status, **fields))
