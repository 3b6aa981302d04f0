from pathlib import Path
from textwrap import dedent

import pytest

from gridscale.config import NodeType
from gridscale.core.config import get_autoscale_config, load_autoscale_config, reset_autoscale_config
from gridscale.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clear_config(monkeypatch, tmp_path):
    monkeypatch.delenv("GRIDSCALE_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    reset_autoscale_config()
    yield
    reset_autoscale_config()


def _write(path: Path, text: str) -> Path:
    path.write_text(dedent(text), encoding="utf-8")
    return path


def test_bundled_defaults():
    cfg = get_autoscale_config()
    assert cfg.node_type is NodeType.COMPUTE
    assert cfg.node_group == "ComputeNodes"
    assert cfg.exclude_head_node is True
    assert cfg.call_queue_threshold == 2000
    assert cfg.initial_growth == 10
    assert cfg.incremental_growth == 5
    assert cfg.shrink_debounce == 3
    assert cfg.interval_seconds == pytest.approx(60.0)
    assert cfg.dry_run is False
    assert cfg.node_templates == ()


def test_env_file_is_layered_over_defaults(tmp_path: Path, monkeypatch):
    config_file = _write(
        tmp_path / "custom.yaml",
        """
        cluster:
          node_type: iaas
          node_templates: [Small, Large]
        thresholds:
          call_queue: 0
        growth:
          extra_ratio: 10
        """,
    )
    monkeypatch.setenv("GRIDSCALE_CONFIG", str(config_file))

    cfg = get_autoscale_config()
    assert cfg.node_type is NodeType.AZURE_IAAS
    assert cfg.node_group == "AzureIaaSNodes"
    assert cfg.exclude_head_node is False
    assert cfg.node_templates == ("Small", "Large")
    assert cfg.call_queue_threshold == 0
    assert cfg.extra_growth_ratio == 10
    # untouched sections keep their defaults
    assert cfg.shrink_debounce == 3


def test_cwd_file_is_picked_up(tmp_path: Path):
    _write(tmp_path / "gridscale.yaml", "shrink:\n  debounce: 7\n")
    assert load_autoscale_config().shrink_debounce == 7


def test_explicit_path_and_overrides_win(tmp_path: Path, monkeypatch):
    env_file = _write(tmp_path / "env.yaml", "growth:\n  initial: 20\n")
    explicit = _write(tmp_path / "explicit.yaml", "growth:\n  initial: 30\n  incremental: 4\n")
    monkeypatch.setenv("GRIDSCALE_CONFIG", str(env_file))

    cfg = load_autoscale_config(explicit, {"incremental_growth": 2, "job_templates": "Soa, Batch", "dry_run": None})
    assert cfg.initial_growth == 30
    assert cfg.incremental_growth == 2
    assert cfg.job_templates == ("Soa", "Batch")
    assert cfg.dry_run is False


def test_explicit_node_group_is_kept():
    cfg = load_autoscale_config(overrides={"node_type": "azure", "node_group": "BurstPool"})
    assert cfg.node_type is NodeType.AZURE
    assert cfg.node_group == "BurstPool"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"call_queue_threshold": -1}, "call_queue_threshold"),
        ({"grid_minutes_threshold": "soon"}, "grid_minutes_threshold"),
        ({"initial_growth": 0}, "initial_growth"),
        ({"shrink_debounce": 1.5}, "shrink_debounce"),
        ({"interval_seconds": 0}, "interval_seconds"),
        ({"node_type": "mainframe"}, "Unknown node type"),
        ({"log_level": "chatty"}, "log_level"),
        ({"max_nodes": 3}, "Unknown configuration keys"),
    ],
)
def test_invalid_values_fail_fast(overrides, message):
    with pytest.raises(ConfigurationError, match=message):
        load_autoscale_config(overrides=overrides)


def test_missing_explicit_file(tmp_path: Path):
    with pytest.raises(ConfigurationError, match="does not exist"):
        load_autoscale_config(tmp_path / "nope.yaml")


def test_malformed_sections_are_rejected(tmp_path: Path):
    bad = _write(tmp_path / "bad.yaml", "thresholds: [1, 2]\n")
    with pytest.raises(ConfigurationError, match="'thresholds' section must be a mapping"):
        load_autoscale_config(bad)


def test_config_is_immutable():
    cfg = load_autoscale_config()
    with pytest.raises(AttributeError):
        cfg.shrink_debounce = 10  # type: ignore[misc]


def test_to_dict_is_plain_data():
    data = load_autoscale_config(overrides={"node_templates": ["A"]}).to_dict()
    assert data["node_type"] == "ComputeNodes"
    assert data["node_templates"] == ["A"]


def test_node_type_override_rederives_file_pinned_group(tmp_path: Path):
    pinned = _write(
        tmp_path / "pinned.yaml",
        """
        cluster:
          node_type: ComputeNodes
          node_group: ComputeNodes
        """,
    )

    cfg = load_autoscale_config(pinned, {"node_type": "iaas"})
    assert cfg.node_type is NodeType.AZURE_IAAS
    assert cfg.node_group == "AzureIaaSNodes"

    both = load_autoscale_config(pinned, {"node_type": "iaas", "node_group": "BurstPool"})
    assert both.node_group == "BurstPool"

    untouched = load_autoscale_config(pinned, {"shrink_debounce": 2})
    assert untouched.node_group == "ComputeNodes"
