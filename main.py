"""CLI entry point for the job search quota service."""

import argparse
import asyncio
import json
import logging
import sys

from jobquota.api.app import build_orchestrator
from jobquota.core.config import Settings
from jobquota.core.db import init_db
from jobquota.core.errors import SearchError
from jobquota.core.schemas import SearchPreferences
from jobquota.stores.sqlite import SQLiteStore


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file; defaults apply if missing (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Job search quota service - monthly-quota job search over JSearch",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- serve ---
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    _add_common(serve_parser)

    # --- search ---
    search_parser = subparsers.add_parser("search", help="Run one search for a user")
    search_parser.add_argument("--user", required=True, help="User ID")
    search_parser.add_argument("--role", required=True, help="Role, e.g. 'software engineer'")
    search_parser.add_argument("--job-type", default="", help="e.g. 'full time job'")
    search_parser.add_argument("--experience", default="", help="e.g. '3+ years'")
    search_parser.add_argument("--location", default="", help="e.g. 'remote' or 'in Pune'")
    search_parser.add_argument("--salary", default="", help="Expected salary, free-form")
    _add_common(search_parser)

    # --- quota ---
    quota_parser = subparsers.add_parser("quota", help="Show a user's monthly quota")
    quota_parser.add_argument("--user", required=True, help="User ID")
    _add_common(quota_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


async def cmd_search(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the search subcommand. Returns the process exit code."""
    conn = init_db(settings.database.path)
    try:
        orchestrator = build_orchestrator(settings, SQLiteStore(conn))
        preferences = SearchPreferences(
            job_type=args.job_type,
            role=args.role,
            experience=args.experience,
            location=args.location,
            salary=args.salary,
        )
        try:
            response = await orchestrator.search(args.user, preferences)
        except SearchError as e:
            print(json.dumps(e.to_payload(), indent=2), file=sys.stderr)
            return 1
        print(json.dumps(response.to_payload(), indent=2))
        return 0
    finally:
        conn.close()


async def cmd_quota(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the quota subcommand."""
    conn = init_db(settings.database.path)
    try:
        orchestrator = build_orchestrator(settings, SQLiteStore(conn))
        status = await orchestrator.quota_status(args.user)
    finally:
        conn.close()

    print(f"User '{args.user}' ({status['month_year']}): "
          f"{status['searches_used']}/{status['max_searches']} searches used, "
          f"{status['remaining_searches']} remaining")
    if status["degraded"]:
        print("Warning: quota store unavailable - enforcement inactive")
    return 0


def cmd_serve(args: argparse.Namespace, settings: Settings) -> None:
    """Handle the serve subcommand."""
    import uvicorn

    from jobquota.api.app import create_app

    uvicorn.run(create_app(settings), host=args.host, port=args.port)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.load(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "serve":
        cmd_serve(args, settings)
    elif args.command == "search":
        sys.exit(asyncio.run(cmd_search(args, settings)))
    else:
        sys.exit(asyncio.run(cmd_quota(args, settings)))


if __name__ == "__main__":
    main()
