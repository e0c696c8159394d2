import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userapi.database import Database, resolve_database_path
from userapi.errors import StorageError
from userapi.models import parse_date_of_birth
from userapi.store import UserStore


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user record")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("date_of_birth", help="Date of birth in YYYY-MM-DD format")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to USERAPI_DB_PATH or data/users.sqlite3)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    name = args.name
    if not name.strip():
        print("Error: name must not be empty", file=sys.stderr)
        return 1
    try:
        date_of_birth = parse_date_of_birth(args.date_of_birth)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    db_env = args.db_path or os.getenv("USERAPI_DB_PATH")
    db_path = resolve_database_path(db_env)

    database = Database(db_path)
    try:
        database.initialize()
        user = UserStore(database).create_user(name, date_of_birth)
    except StorageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user {user.id}: {user.name} ({args.date_of_birth.strip()})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
