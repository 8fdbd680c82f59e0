# app_firewall/cli.py

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from . import activity_log
from .activity_log import log_event
from .config import load_config
from .errors import ConfigError, RuleSyncError, SessionLookupError
from .firewall_win import FirewallBackend, NetshFirewall, is_admin
from .session import ExplorerSessionResolver, InteractiveUserResolver
from .sync import remove_all, sync_all

EXIT_OK = 0
EXIT_SYNC_FAILED = 1
EXIT_NO_SESSION = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="app-firewall-sync",
        description="Create inbound firewall allow-rules for an application "
                    "installed in the interactive user's profile.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="JSON config file (default: config.json next to the package).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the netsh commands instead of changing the firewall.",
    )
    parser.add_argument(
        "--remove",
        action="store_true",
        help="Remove the rules for the candidate executables instead of creating them.",
    )
    parser.add_argument(
        "--recent",
        metavar="N",
        type=int,
        help="Print the N most recent log entries and exit.",
    )
    return parser


def main(
    argv: Optional[List[str]] = None,
    resolver: Optional[InteractiveUserResolver] = None,
    firewall: Optional[FirewallBackend] = None,
) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return EXIT_SYNC_FAILED

    activity_log.set_log_dir(cfg.resolved_log_dir())

    if args.recent is not None:
        for e in activity_log.get_recent_events(limit=args.recent):
            print(f"{e.timestamp}  {e.severity:<7}  {e.message}")
        return EXIT_OK

    dry_run = args.dry_run or cfg.dry_run
    if firewall is None:
        if not dry_run and not is_admin():
            log_event("ERROR", "Administrator rights are required to change firewall rules")
            return EXIT_SYNC_FAILED
        firewall = NetshFirewall(dry_run=dry_run)

    resolver = resolver or ExplorerSessionResolver()
    action = remove_all if args.remove else sync_all

    try:
        action(resolver, firewall, cfg)
    except SessionLookupError as exc:
        log_event("ERROR", f"Session lookup failed: {exc}")
        return EXIT_NO_SESSION
    except RuleSyncError as exc:
        log_event("ERROR", str(exc))
        return EXIT_SYNC_FAILED
    return EXIT_OK


def run() -> None:
    """Console entry point; the exit code signals failure to management tooling."""
    sys.exit(main())
