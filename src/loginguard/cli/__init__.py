"""loginguard CLI — inspect and operate a SQLite attempt store.

Entry point registered as ``loginguard`` in ``pyproject.toml``::

    [project.scripts]
    loginguard = "loginguard.cli:main"
"""

import argparse
import sys

from loginguard.records import Namespace


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``loginguard`` command."""
    parser = argparse.ArgumentParser(
        prog="loginguard",
        description="loginguard — brute-force protection for login endpoints.",
    )
    subparsers = parser.add_subparsers(dest="command")
    namespaces = [str(ns) for ns in Namespace]

    # -- loginguard status ------------------------------------------------
    status_parser = subparsers.add_parser("status", help="List tracked identities")
    status_parser.add_argument("db", help="Path to the SQLite attempt store")
    status_parser.add_argument(
        "--namespace",
        choices=namespaces,
        default=None,
        help="Only show one namespace",
    )
    status_parser.add_argument(
        "--locked",
        action="store_true",
        help="Only show identities that are currently locked",
    )
    status_parser.add_argument(
        "--window",
        type=float,
        default=None,
        help="Attempt window in seconds (default: GuardConfig default)",
    )

    # -- loginguard unlock ------------------------------------------------
    unlock_parser = subparsers.add_parser("unlock", help="Clear one identity's failures and lock")
    unlock_parser.add_argument("db", help="Path to the SQLite attempt store")
    unlock_parser.add_argument("namespace", choices=namespaces, help="Tracking namespace")
    unlock_parser.add_argument("identity", help="IP address or username")

    # -- loginguard sweep -------------------------------------------------
    sweep_parser = subparsers.add_parser("sweep", help="Delete stale records")
    sweep_parser.add_argument("db", help="Path to the SQLite attempt store")
    sweep_parser.add_argument(
        "--window",
        type=float,
        default=None,
        help="Attempt window in seconds (default: GuardConfig default)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "status":
        from loginguard.cli._status import run_status

        run_status(args)
    elif args.command == "unlock":
        from loginguard.cli._unlock import run_unlock

        run_unlock(args)
    elif args.command == "sweep":
        from loginguard.cli._sweep import run_sweep

        run_sweep(args)
