"""
Command-line interface for MultiLaunch.

Usage:
    multilaunch list                   # All discovered applications
    multilaunch list term --json       # Filter by name or bundle id
    multilaunch launch Terminal        # Start another instance
    multilaunch running com.apple.Terminal
    multilaunch favorites add com.apple.Terminal
    multilaunch config                 # Effective settings
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

import yaml
from loguru import logger

from . import __version__
from .core.config import ensure_directories, get_config
from .core.errors import (
    ApplicationNotFoundError,
    ConfigurationError,
    LaunchFailedError,
    get_error_message,
)
from .core.logger import setup_logging
from .service import MultiLaunchService
from .system.launcher import WORKSPACE_API_AVAILABLE

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

SCAN_TIMEOUT = 120.0


def _load(service: MultiLaunchService) -> None:
    service.refresh()
    if not service.registry.wait(SCAN_TIMEOUT):
        logger.warning("Application scan is still running; results may be incomplete")


def cmd_list(service: MultiLaunchService, args: argparse.Namespace) -> int:
    _load(service)
    apps = service.list_applications(args.filter or "")

    running = service.detector.running_bundle_identifiers() if args.running else set()
    favorites = service.favorites.favorites() if args.favorites else set()
    if args.favorites:
        apps = [a for a in apps if a.bundle_identifier in favorites]

    if args.json:
        rows = []
        for app in apps:
            row = app.to_dict()
            if args.running:
                row["running"] = app.bundle_identifier in running
            rows.append(row)
        print(json.dumps(rows, indent=2, ensure_ascii=False))
        return EXIT_OK

    if not apps:
        print("(no applications found)")
        return EXIT_OK

    for app in apps:
        version = f" {app.version}" if app.version else ""
        marker = "* " if args.running and app.bundle_identifier in running else "  "
        ident = app.bundle_identifier or "-"
        print(f"{marker}{app.name}{version}  [{ident}]  {app.path}")
    return EXIT_OK


def cmd_launch(service: MultiLaunchService, args: argparse.Namespace) -> int:
    _load(service)
    try:
        app = service.require(args.query)
        result = service.launch_or_raise(app)
    except ApplicationNotFoundError as e:
        print(e, file=sys.stderr)
        print(get_error_message("app_not_found", detailed=True), file=sys.stderr)
        return EXIT_FAILED
    except LaunchFailedError as e:
        print(e, file=sys.stderr)
        key = "launch_failed" if WORKSPACE_API_AVAILABLE else "appkit_unavailable"
        print(get_error_message(key, detailed=True), file=sys.stderr)
        return EXIT_FAILED

    print(result.message)
    return EXIT_OK


def cmd_running(service: MultiLaunchService, args: argparse.Namespace) -> int:
    running = service.is_running(args.bundle_id)
    print("running" if running else "not running")
    return EXIT_OK if running else EXIT_FAILED


def cmd_favorites(service: MultiLaunchService, args: argparse.Namespace) -> int:
    favorites = service.favorites
    if args.action == "list":
        for ident in sorted(favorites.favorites()):
            print(ident)
        return EXIT_OK

    if not args.bundle_id:
        print(f"favorites {args.action} needs a bundle identifier", file=sys.stderr)
        return EXIT_USAGE

    if args.action == "add":
        changed = favorites.add(args.bundle_id)
        print("Added" if changed else "Already a favorite", args.bundle_id)
    elif args.action == "remove":
        changed = favorites.remove(args.bundle_id)
        print("Removed" if changed else "Not a favorite", args.bundle_id)
    else:
        state = favorites.toggle(args.bundle_id)
        print("Added" if state else "Removed", args.bundle_id)
    return EXIT_OK


def cmd_config(service: MultiLaunchService, args: argparse.Namespace) -> int:
    print(yaml.safe_dump(service.settings.model_dump(), sort_keys=False), end="")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="multilaunch", description="Discover applications and launch extra instances.")
    p.add_argument("--config", type=str, help="Path to configuration file")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="cmd", required=True)

    pl = sub.add_parser("list", help="List discovered applications.")
    pl.add_argument("filter", nargs="?", default="", help="Case-insensitive name or bundle id filter.")
    pl.add_argument("--json", action="store_true", help="Emit JSON instead of human-readable output.")
    pl.add_argument("--running", action="store_true", help="Mark applications that are running.")
    pl.add_argument("--favorites", action="store_true", help="Only show favorites.")
    pl.set_defaults(func=cmd_list)

    pa = sub.add_parser("launch", help="Launch a new instance of an application.")
    pa.add_argument("query", help="Bundle id, display name or bundle path.")
    pa.set_defaults(func=cmd_launch)

    pr = sub.add_parser("running", help="Check whether an application is running.")
    pr.add_argument("bundle_id")
    pr.set_defaults(func=cmd_running)

    pf = sub.add_parser("favorites", help="Manage favorite applications.")
    pf.add_argument("action", choices=["list", "add", "remove", "toggle"])
    pf.add_argument("bundle_id", nargs="?", default="")
    pf.set_defaults(func=cmd_favorites)

    sub.add_parser("config", help="Show the effective configuration.").set_defaults(func=cmd_config)

    return p


def main(argv: Optional[List[str]] = None, service: Optional[MultiLaunchService] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)

    if service is None:
        try:
            settings = get_config(args.config)
        except ConfigurationError as e:
            print(f"{get_error_message('invalid_config')}: {e}", file=sys.stderr)
            return EXIT_USAGE
        if args.verbose:
            settings.general.debug = True
        ensure_directories(settings)
        setup_logging(settings)
        service = MultiLaunchService(settings)

    try:
        return int(args.func(service, args))
    finally:
        service.close()


if __name__ == "__main__":
    raise SystemExit(main())
