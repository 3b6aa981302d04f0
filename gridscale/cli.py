"""GridScale command line interface.

Usage:
    gridscale run                         # loop forever against HPC Pack
    gridscale run --ray                   # host the loop in a Ray actor
    gridscale --dry-run once              # one cycle, print the report as JSON
    gridscale show-config                 # print the effective configuration
    gridscale --cluster-snapshot cluster.json once   # simulate against a snapshot

Configuration comes from ``--config``, ``$GRIDSCALE_CONFIG``, ``./gridscale.yaml``
or the bundled defaults; global flags (given before the command) override
the file values.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from gridscale.core.cluster import ClusterManager, InMemoryClusterManager, PowerShellClusterManager
from gridscale.core.config import AutoscaleConfig, load_autoscale_config
from gridscale.core.controllers import ControlLoop, IntervalScheduler
from gridscale.core.entities import Job, Node
from gridscale.core.errors import ClusterCommandError, ConfigurationError
from gridscale.core.utils import configure_runtime_logging

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2


def _add_overrides(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("configuration overrides")
    group.add_argument("--node-type", dest="node_type", help="ComputeNodes, AzureNodes or AzureIaaSNodes")
    group.add_argument("--node-group", dest="node_group", help="Node group to manage")
    group.add_argument("--node-templates", dest="node_templates", help="Comma separated node template names")
    group.add_argument("--job-templates", dest="job_templates", help="Comma separated job template names")
    group.add_argument("--call-queue-threshold", dest="call_queue_threshold", type=int,
                       help="Outstanding calls that trigger growth (0 disables)")
    group.add_argument("--grid-minutes-threshold", dest="grid_minutes_threshold", type=float,
                       help="Grid minutes remaining that trigger growth (0 disables)")
    group.add_argument("--queued-jobs-threshold", dest="queued_jobs_threshold", type=int,
                       help="Queued jobs that trigger growth (0 disables)")
    group.add_argument("--initial-growth", dest="initial_growth", type=int,
                       help="Nodes to add when no node is active")
    group.add_argument("--incremental-growth", dest="incremental_growth", type=int,
                       help="Nodes to add when some nodes are already active")
    group.add_argument("--extra-growth-ratio", dest="extra_growth_ratio", type=int,
                       help="Percentage uplift applied to each growth step")
    group.add_argument("--shrink-debounce", dest="shrink_debounce", type=int,
                       help="Consecutive idle checks required before shrinking")
    group.add_argument("--interval", dest="interval_seconds", type=float, help="Seconds between cycles")
    group.add_argument("--dry-run", dest="dry_run", action="store_true", default=None,
                       help="Log intended lifecycle calls without issuing them")
    group.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING, ERROR")
    group.add_argument("--log-file", dest="log_file", help="Also write log records to this file")
    group.add_argument("--state-path", dest="state_path", help="Directory for the persisted idle counter")


_OVERRIDE_KEYS = (
    "node_type",
    "node_group",
    "node_templates",
    "job_templates",
    "call_queue_threshold",
    "grid_minutes_threshold",
    "queued_jobs_threshold",
    "initial_growth",
    "incremental_growth",
    "extra_growth_ratio",
    "shrink_debounce",
    "interval_seconds",
    "dry_run",
    "log_level",
    "log_file",
    "state_path",
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gridscale",
        description="Grow and shrink a cluster node pool based on job queue pressure.",
    )
    parser.add_argument("--config", type=Path, help="YAML configuration file")
    parser.add_argument("--scheduler", help="HPC Pack head node to connect to")
    parser.add_argument("--powershell", default="powershell", help="PowerShell executable")
    parser.add_argument("--command-timeout", type=float, default=None,
                        help="Seconds before a cluster command is abandoned")
    parser.add_argument("--cluster-snapshot", type=Path,
                        help="JSON file with nodes/jobs/node_jobs; simulate instead of calling HPC Pack")
    _add_overrides(parser)

    sub = parser.add_subparsers(dest="command", required=True)
    run_parser = sub.add_parser("run", help="Run the control loop until interrupted")
    run_parser.add_argument("--ray", action="store_true", help="Host the loop in a Ray actor")
    run_parser.add_argument("--max-cycles", type=int, default=None, help=argparse.SUPPRESS)
    sub.add_parser("once", help="Run a single cycle and print its report")
    sub.add_parser("show-config", help="Print the effective configuration")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {key: getattr(args, key, None) for key in _OVERRIDE_KEYS}


def load_cluster_snapshot(path: Path) -> InMemoryClusterManager:
    """Build an in-memory cluster from ``{"nodes": [...], "jobs": [...], "node_jobs": {...}}``."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Cannot read cluster snapshot '{path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Cluster snapshot '{path}' must contain a JSON object")
    nodes = [Node.from_dict(item) for item in data.get("nodes", [])]
    jobs = [Job.from_dict(item) for item in data.get("jobs", [])]
    node_jobs = {str(name): int(count) for name, count in (data.get("node_jobs") or {}).items()}
    return InMemoryClusterManager(nodes, jobs, node_jobs=node_jobs, groups=data.get("groups"))


def build_cluster(args: argparse.Namespace) -> ClusterManager:
    if args.cluster_snapshot is not None:
        return load_cluster_snapshot(args.cluster_snapshot)
    return PowerShellClusterManager(
        scheduler=args.scheduler,
        executable=args.powershell,
        timeout=args.command_timeout,
    )


def _run_local(config: AutoscaleConfig, cluster: ClusterManager, max_cycles: Optional[int]) -> int:
    loop = ControlLoop(config, cluster)
    loop.validate()
    scheduler = IntervalScheduler(loop.run_cycle, config.interval_seconds)
    try:
        scheduler.run(max_cycles=max_cycles)
    except KeyboardInterrupt:
        logger.info("Interrupted; stopping after %d cycles", scheduler.iterations)
    return 0


def _run_ray(config: AutoscaleConfig, cluster: ClusterManager) -> int:
    import ray

    from gridscale.core.actors import GridScaleHead

    try:
        ray.init(address="auto", ignore_reinit_error=True)
    except ConnectionError:
        ray.init(ignore_reinit_error=True)
    head = GridScaleHead(config, cluster)
    head.start()
    try:
        while True:
            time.sleep(config.interval_seconds)
    except KeyboardInterrupt:
        logger.info("Interrupted; stopping autoscaler actor")
    finally:
        head.stop()
        ray.shutdown()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_autoscale_config(args.config, _overrides(args))
    except ConfigurationError as exc:
        print(f"gridscale: configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.command == "show-config":
        print(json.dumps(config.to_dict(), indent=2, ensure_ascii=False))
        return 0

    configure_runtime_logging(config.log_level_value, log_file=config.log_file)

    try:
        cluster = build_cluster(args)
        if args.command == "once":
            loop = ControlLoop(config, cluster)
            loop.validate()
            report = loop.run_cycle()
            print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
            return 0 if report.success else 1
        if args.ray:
            return _run_ray(config, cluster)
        return _run_local(config, cluster, args.max_cycles)
    except ConfigurationError as exc:
        print(f"gridscale: configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ClusterCommandError as exc:
        print(f"gridscale: cluster manager unavailable: {exc} {exc.detail}".rstrip(), file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
