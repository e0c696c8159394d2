"""Command-line interface for the user records service."""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

import yaml

from userapi.config import Settings, load_settings
from userapi.database import Database
from userapi.errors import UserAPIError
from userapi.models import parse_date_of_birth
from userapi.store import UserStore

logger = logging.getLogger("userapi.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User records service utilities")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML configuration file (defaults to USERAPI_CONFIG)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the user database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default=None, help="Bind address for the API")
    serve_parser.add_argument("--port", type=int, default=None, help="Port for the HTTP API")

    list_parser = subparsers.add_parser("list", help="Print stored users")
    list_parser.add_argument("--limit", type=int, default=None, help="Maximum number of users to print")
    list_parser.add_argument("--offset", type=int, default=0, help="Number of users to skip")

    add_parser = subparsers.add_parser("add", help="Create a user")
    add_parser.add_argument("name", help="Display name for the user")
    add_parser.add_argument("date_of_birth", help="Date of birth in YYYY-MM-DD format")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "list", "add"}

    # Global options may precede the subcommand; only a leading unknown token
    # (e.g. ``--host``) means the default ``serve`` command was implied.
    index = 0
    while index < len(args_list):
        if args_list[index] == "--config":
            index += 2
        elif args_list[index].startswith("--config="):
            index += 1
        else:
            break
    remaining = args_list[index:]
    if remaining and remaining[0] not in known_commands and remaining[0] not in ("-h", "--help"):
        args_list = [*args_list[:index], "serve", *remaining]
    elif not remaining:
        args_list = [*args_list, "serve"]

    return parser.parse_args(args_list)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(*, database: Database, settings: Settings, host: str | None, port: int | None) -> None:
    from userapi.api import create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting user API on http://%s:%s", bind_host, bind_port)
    app = create_app(database=database, settings=settings)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level=settings.log_level.lower())


def _list_users(store: UserStore, *, limit: int | None, offset: int) -> None:
    users = store.list_users(limit, offset)
    if not users:
        print("No users are currently stored.")
        return

    total = store.count_users()
    print(f"Showing {len(users)} of {total} user(s):")
    print(f"{'ID':<36}  {'Name':<32}  Date of birth")
    print("-" * 84)
    for user in users:
        print(f"{str(user.id):<36}  {user.name:<32}  {user.date_of_birth.isoformat()}")


def _add_user(store: UserStore, name: str, raw_date_of_birth: str) -> int:
    if not name.strip():
        print("Error: name must not be empty", file=sys.stderr)
        return 1
    try:
        date_of_birth = parse_date_of_birth(raw_date_of_birth)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    user = store.create_user(name, date_of_birth)
    print(f"Created user {user.id}: {user.name} ({raw_date_of_birth.strip()})")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1
    logging.getLogger().setLevel(settings.log_level)

    try:
        database = _initialise_database(settings)
        store = UserStore(database)

        if args.command == "serve":
            _serve(database=database, settings=settings, host=args.host, port=args.port)
        elif args.command == "list":
            _list_users(store, limit=args.limit, offset=args.offset)
        elif args.command == "add":
            return _add_user(store, args.name, args.date_of_birth)
        elif args.command == "init-db":
            print("Database initialisation complete.")
    except UserAPIError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
