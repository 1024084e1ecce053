"""
loadctl Command Line Interface

Inspect cluster topology and live configuration from the command line.
"""

from __future__ import annotations

import argparse
import json
import sys
import threading
from pathlib import Path
from typing import List, Optional

from loadctl.cluster.topology import CacheTopologyBuilder
from loadctl.config.snapshot import DOMAINS
from loadctl.config.store import ConfigStore
from loadctl.core.config import ControllerSettings, get_settings, set_settings
from loadctl.core.errors import LoadCtlError
from loadctl.core.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loadctl",
        description="Cluster topology and live configuration for the load-testing controller",
    )
    parser.add_argument("--home", type=Path, help="Controller home directory")
    parser.add_argument("--ex-home", type=Path, help="Extended home directory")
    parser.add_argument("--log-level", default=None, help="Log level")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    topology_parser = subparsers.add_parser("topology", help="Print the cache peer topology")
    topology_parser.add_argument(
        "--members", help="Cluster members, e.g. '10.0.0.1;10.0.0.2:40003' (default: from config)"
    )
    topology_parser.add_argument("--port", type=int, help="Cluster listener port")
    topology_parser.add_argument(
        "--caches", default="", help="Comma separated replicated cache names"
    )

    show_parser = subparsers.add_parser("show", help="Print the current configuration")
    show_parser.add_argument("--domain", choices=DOMAINS, help="Only print one domain")

    watch_parser = subparsers.add_parser("watch", help="Watch configuration files and log reloads")
    watch_parser.add_argument("--poll-delay-ms", type=int, help="Poll delay per watcher")

    return parser


def _settings_from_args(args: argparse.Namespace) -> ControllerSettings:
    settings = get_settings()
    updates = {}
    if args.home:
        updates["home"] = args.home
    if args.ex_home:
        updates["ex_home"] = args.ex_home
    if args.log_level:
        updates["log_level"] = args.log_level.upper()
    if getattr(args, "poll_delay_ms", None):
        updates["watch"] = settings.watch.model_copy(update={"poll_delay_ms": args.poll_delay_ms})
    if updates:
        settings = ControllerSettings(**{**settings.model_dump(), **updates})
        set_settings(settings)
    return settings


def cmd_topology(settings: ControllerSettings, members: Optional[str], port: Optional[int], caches: str) -> None:
    cache_names = [c.strip() for c in caches.split(",") if c.strip()]

    if members is None or port is None:
        store = ConfigStore(settings)
        store.load()
        members = members if members is not None else store.current().get("cluster.members", "")
        port = port if port is not None else store.cluster_listener_port()

    topology = CacheTopologyBuilder().build_for_membership(cache_names, members, port)
    print(json.dumps(topology.to_dict(), indent=2))


def cmd_show(settings: ControllerSettings, domain: Optional[str]) -> None:
    store = ConfigStore(settings)
    snapshot = store.load()
    payload = dict(snapshot.domain(domain)) if domain else snapshot.to_dict()
    print(json.dumps(payload, indent=2, sort_keys=True))


def cmd_watch(settings: ControllerSettings) -> None:
    store = ConfigStore(settings)
    store.add_listener(
        lambda snapshot: print(f"Configuration reloaded (generation {snapshot.generation})")
    )
    done = threading.Event()
    with store:
        print(f"Watching {store.home.directory} (Ctrl+C to stop)")
        try:
            while not done.wait(1.0):
                pass
        except KeyboardInterrupt:
            print("\nStopping")


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = _settings_from_args(args)
    setup_logging(settings.log_level.value, settings.json_logs)

    try:
        if args.command == "topology":
            cmd_topology(settings, args.members, args.port, args.caches)
        elif args.command == "show":
            cmd_show(settings, args.domain)
        elif args.command == "watch":
            cmd_watch(settings)
    except LoadCtlError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
