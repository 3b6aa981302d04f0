"""Configuration helpers for GridScale.

This module loads YAML configuration files that drive the autoscaler.
Configuration precedence:

1. An explicit path passed to :func:`load_autoscale_config` (``--config``).
2. Environment variable ``GRIDSCALE_CONFIG`` pointing to a YAML file.
3. ``gridscale.yaml`` in the current working directory.
4. Built-in defaults bundled with the package (``config/default.yaml``).

Values from the chosen file are layered over the bundled defaults, and
explicit overrides (typically CLI flags) are layered over both.  The result is
validated once and never mutated afterwards.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from gridscale.config.policy import NodeType, default_node_group, excludes_head_node, resolve_node_type
from gridscale.core.errors import ConfigurationError

__all__ = [
    "AutoscaleConfig",
    "get_autoscale_config",
    "load_autoscale_config",
    "reset_autoscale_config",
]


_ENV_VAR = "GRIDSCALE_CONFIG"
_CWD_FILE = "gridscale.yaml"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class AutoscaleConfig:
    node_type: NodeType = NodeType.COMPUTE
    node_group: str = "ComputeNodes"
    node_templates: Tuple[str, ...] = field(default_factory=tuple)
    job_templates: Tuple[str, ...] = field(default_factory=tuple)
    call_queue_threshold: int = 2000
    grid_minutes_threshold: float = 15.0
    queued_jobs_threshold: int = 1
    initial_growth: int = 10
    incremental_growth: int = 5
    extra_growth_ratio: int = 0
    shrink_debounce: int = 3
    interval_seconds: float = 60.0
    dry_run: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None
    state_path: Optional[str] = None

    @property
    def exclude_head_node(self) -> bool:
        return excludes_head_node(self.node_type)

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["node_type"] = self.node_type.value
        data["node_templates"] = list(self.node_templates)
        data["job_templates"] = list(self.job_templates)
        return data


_autoscale_config: Optional[AutoscaleConfig] = None


def _resolve_config_path(explicit: Optional[os.PathLike] = None) -> Optional[Path]:
    if explicit is not None:
        candidate = Path(explicit).expanduser()
        if not candidate.is_file():
            raise ConfigurationError(f"Configuration file '{candidate}' does not exist")
        return candidate

    env_path = os.environ.get(_ENV_VAR)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate.is_file():
            return candidate

    cwd_file = Path.cwd() / _CWD_FILE
    if cwd_file.is_file():
        return cwd_file
    return None


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Configuration file '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{path}' must contain a mapping")
    return data


def _load_default_dict() -> Dict[str, Any]:
    from importlib import resources

    with resources.files("gridscale.config").joinpath("default.yaml").open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _merge(base: Dict[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    node = data.get(name) or {}
    if not isinstance(node, Mapping):
        raise ConfigurationError(f"'{name}' section must be a mapping")
    return node


def _flatten(data: Mapping[str, Any]) -> Dict[str, Any]:
    cluster = _section(data, "cluster")
    thresholds = _section(data, "thresholds")
    growth = _section(data, "growth")
    shrink = _section(data, "shrink")
    loop = _section(data, "loop")
    log_section = _section(data, "logging")
    state = _section(data, "state")
    return {
        "node_type": cluster.get("node_type"),
        "node_group": cluster.get("node_group"),
        "node_templates": cluster.get("node_templates"),
        "job_templates": cluster.get("job_templates"),
        "call_queue_threshold": thresholds.get("call_queue"),
        "grid_minutes_threshold": thresholds.get("grid_minutes"),
        "queued_jobs_threshold": thresholds.get("queued_jobs"),
        "initial_growth": growth.get("initial"),
        "incremental_growth": growth.get("incremental"),
        "extra_growth_ratio": growth.get("extra_ratio"),
        "shrink_debounce": shrink.get("debounce"),
        "interval_seconds": loop.get("interval_seconds"),
        "dry_run": loop.get("dry_run"),
        "log_level": log_section.get("level"),
        "log_file": log_section.get("file"),
        "state_path": state.get("path"),
    }


def _coerce_names(value: Any, name: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    if isinstance(value, (list, tuple)):
        return tuple(str(item).strip() for item in value if str(item).strip())
    raise ConfigurationError(f"'{name}' must be a list of names or a comma separated string")


def _coerce_number(raw: Dict[str, Any], name: str, kind: type, minimum: float) -> Any:
    value = raw.get(name)
    if value is None or isinstance(value, bool):
        raise ConfigurationError(f"'{name}' is required and must be a number")
    try:
        number = kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'{name}' must be a number, got {value!r}") from exc
    if kind is int and isinstance(value, float) and not value.is_integer():
        raise ConfigurationError(f"'{name}' must be a whole number, got {value!r}")
    if number < minimum:
        raise ConfigurationError(f"'{name}' must be >= {minimum}, got {number}")
    return number


def _build_autoscale_config(raw: Dict[str, Any]) -> AutoscaleConfig:
    node_type, hint = resolve_node_type(raw.get("node_type") or NodeType.COMPUTE.value)
    if node_type is None:
        raise ConfigurationError(
            f"Unknown node type ({hint}). Expected one of: {', '.join(member.value for member in NodeType)}"
        )

    node_group = str(raw.get("node_group") or "").strip() or default_node_group(node_type)

    interval = _coerce_number(raw, "interval_seconds", float, 0.0)
    if interval <= 0:
        raise ConfigurationError(f"'interval_seconds' must be positive, got {interval}")

    log_level = str(raw.get("log_level") or "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigurationError(f"'log_level' must be one of {', '.join(_LOG_LEVELS)}, got {log_level!r}")

    log_file = raw.get("log_file")
    state_path = raw.get("state_path")

    return AutoscaleConfig(
        node_type=node_type,
        node_group=node_group,
        node_templates=_coerce_names(raw.get("node_templates"), "node_templates"),
        job_templates=_coerce_names(raw.get("job_templates"), "job_templates"),
        call_queue_threshold=_coerce_number(raw, "call_queue_threshold", int, 0),
        grid_minutes_threshold=_coerce_number(raw, "grid_minutes_threshold", float, 0.0),
        queued_jobs_threshold=_coerce_number(raw, "queued_jobs_threshold", int, 0),
        initial_growth=_coerce_number(raw, "initial_growth", int, 1),
        incremental_growth=_coerce_number(raw, "incremental_growth", int, 1),
        extra_growth_ratio=_coerce_number(raw, "extra_growth_ratio", int, 0),
        shrink_debounce=_coerce_number(raw, "shrink_debounce", int, 0),
        interval_seconds=interval,
        dry_run=bool(raw.get("dry_run") or False),
        log_level=log_level,
        log_file=str(log_file) if log_file else None,
        state_path=str(state_path) if state_path else None,
    )


def load_autoscale_config(
    path: Optional[os.PathLike] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> AutoscaleConfig:
    """
    Load, merge and validate the autoscaler configuration.

    Args:
        path: Optional explicit YAML file; must exist when given.
        overrides: Flat mapping keyed by :class:`AutoscaleConfig` field names.
            ``None`` values are ignored so unset CLI flags keep file values.
            Overriding ``node_type`` without ``node_group`` re-derives the group
            from the new type.

    Raises:
        ConfigurationError: If any value is missing, malformed or out of range.
    """
    data = _load_default_dict()
    config_path = _resolve_config_path(path)
    if config_path is not None:
        data = _merge(data, _read_yaml(config_path))

    raw = _flatten(data)
    if overrides:
        unknown = set(overrides) - set(raw)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        supplied = {key: value for key, value in overrides.items() if value is not None}
        if "node_type" in supplied and "node_group" not in supplied:
            # A file-pinned group belongs to the file's node type.
            raw["node_group"] = None
        raw.update(supplied)

    return _build_autoscale_config(raw)


def get_autoscale_config() -> AutoscaleConfig:
    global _autoscale_config
    if _autoscale_config is None:
        _autoscale_config = load_autoscale_config()
    return _autoscale_config


def reset_autoscale_config() -> None:
    """Reset cached autoscale configuration (intended for tests)."""
    global _autoscale_config
    _autoscale_config = None
