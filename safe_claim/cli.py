"""
Safe Claim CLI — Unified command-line interface.

Commands:
    safeclaim claim <id> --owner NAME [--team T]   Claim a task
    safeclaim teams                                List team directories
    safeclaim serve                                Run the MCP stdio server

Exit codes for `claim`:
    0  claimed
    1  error (not found, malformed task, I/O, bad config)
    2  denied (already claimed, in progress, completed or deleted)
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DENIED = 2


def _configure_logging(verbosity: int, cfg: dict) -> None:
    """Send log records to stderr; -v for INFO, -vv for DEBUG."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.getLevelName(str(cfg.get("logging", {}).get("level", "WARNING")).upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_claimer(args: argparse.Namespace):
    from .claim import TaskClaimer
    from .config import load_config

    try:
        cfg = load_config(args.project_root, fail_on_error=True)
    except SystemExit:
        # load_config exits with 2, which would read as a denial here
        raise SystemExit(EXIT_ERROR) from None
    if args.base_dir:
        cfg["tasks"]["base_dir"] = args.base_dir
    _configure_logging(args.verbose, cfg)
    return TaskClaimer.from_config(cfg)


def cmd_claim(args: argparse.Namespace) -> int:
    """Claim a task and print the outcome."""
    claimer = _build_claimer(args)
    result = claimer.try_claim(args.task_id, args.owner, args.team)
    print(result)
    if result.ok:
        return EXIT_OK
    return EXIT_DENIED if result.denied else EXIT_ERROR


def cmd_teams(args: argparse.Namespace) -> int:
    """List team directories under the base directory."""
    from .errors import ResolutionError
    from .resolver import list_teams

    claimer = _build_claimer(args)
    try:
        teams = list_teams(claimer.base_dir)
    except ResolutionError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_ERROR

    if not teams:
        print(f"📭 No teams found in {claimer.base_dir}")
        return EXIT_OK

    for team in teams:
        print(f"  {team}")
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the MCP server on stdio."""
    from .server import main as server_main

    claimer = _build_claimer(args)
    try:
        server_main(claimer)
    except KeyboardInterrupt:
        pass
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="safeclaim",
        description="Lock-guarded task claiming for cooperating agents",
    )
    parser.add_argument(
        "--project-root", "-p",
        default=".",
        help="Directory containing config.yaml (default: current dir)",
    )
    parser.add_argument(
        "--base-dir",
        default=None,
        help="Tasks base directory (overrides config and SAFE_CLAIM_BASE_DIR)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count", default=0,
        help="Log to stderr (-v info, -vv debug)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ── claim ─────────────────────────────────────────────────────────
    claim_parser = subparsers.add_parser(
        "claim", help="Claim a task for an owner"
    )
    claim_parser.add_argument("task_id", help="Task ID to claim")
    claim_parser.add_argument(
        "--owner", "-o", required=True,
        help="Agent name claiming the task"
    )
    claim_parser.add_argument(
        "--team", "-t", default=None,
        help="Team name (default: first team directory)"
    )
    claim_parser.set_defaults(func=cmd_claim)

    # ── teams ─────────────────────────────────────────────────────────
    teams_parser = subparsers.add_parser(
        "teams", help="List team directories"
    )
    teams_parser.set_defaults(func=cmd_teams)

    # ── serve ─────────────────────────────────────────────────────────
    serve_parser = subparsers.add_parser(
        "serve", help="Run the MCP server on stdio"
    )
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
