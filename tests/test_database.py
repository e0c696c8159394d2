from __future__ import annotations

import sqlite3
import uuid
from datetime import date
from pathlib import Path

import pytest

from userapi.database import Database, resolve_database_path
from userapi.errors import StorageError, ValidationError
from userapi.store import UserStore


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db_path = tmp_path / "users.sqlite3"
    db = Database(db_path)
    db.initialize()
    return db


@pytest.fixture()
def store(database: Database) -> UserStore:
    return UserStore(database)


def _insert_raw(database: Database, user_id: str, name: str, date_of_birth: str) -> None:
    with database.connection() as conn:
        conn.execute(
            "INSERT INTO users (id, name, date_of_birth) VALUES (?, ?, ?)",
            (user_id, name, date_of_birth),
        )


def test_resolve_database_path_prefers_environment(tmp_path: Path) -> None:
    assert resolve_database_path(str(tmp_path / "custom.db")) == (tmp_path / "custom.db").resolve()
    assert resolve_database_path(None).name == "users.sqlite3"


def test_initialize_is_idempotent(database: Database) -> None:
    database.initialize()
    with database.connection() as conn:
        columns = [row["name"] for row in conn.execute("PRAGMA table_info(users)").fetchall()]
    assert columns == ["id", "name", "date_of_birth"]


def test_create_then_get_returns_equal_record(store: UserStore) -> None:
    created = store.create_user("Ada Lovelace", date(1815, 12, 10))

    assert isinstance(created.id, uuid.UUID)
    assert store.get_user(created.id) == created


def test_create_generates_distinct_ids_for_duplicate_names(store: UserStore) -> None:
    first = store.create_user("Alan Turing", date(1912, 6, 23))
    second = store.create_user("Alan Turing", date(1912, 6, 23))

    assert first.id != second.id
    assert len(store.list_users()) == 2


def test_get_unknown_user_returns_none(store: UserStore) -> None:
    assert store.get_user(uuid.uuid4()) is None


def test_update_changes_fields_and_keeps_id(store: UserStore) -> None:
    created = store.create_user("Grace Hopper", date(1906, 12, 9))

    assert store.update_user(created.id, "Rear Admiral Hopper", date(1906, 12, 10)) is True

    refreshed = store.get_user(created.id)
    assert refreshed is not None
    assert refreshed.id == created.id
    assert refreshed.name == "Rear Admiral Hopper"
    assert refreshed.date_of_birth == date(1906, 12, 10)


def test_update_and_delete_of_missing_user_report_no_match(store: UserStore) -> None:
    missing = uuid.uuid4()

    assert store.update_user(missing, "Nobody", date(2000, 1, 1)) is False
    assert store.delete_user(missing) is False


def test_delete_then_get_returns_none(store: UserStore) -> None:
    created = store.create_user("Edsger Dijkstra", date(1930, 5, 11))

    assert store.delete_user(created.id) is True
    assert store.get_user(created.id) is None
    assert store.list_users() == []


def test_list_returns_each_live_record_once_in_insertion_order(store: UserStore) -> None:
    created = [store.create_user(f"User {index}", date(1990, 1, index + 1)) for index in range(4)]
    store.delete_user(created[1].id)

    listed = store.list_users()

    assert listed == [created[0], created[2], created[3]]
    assert store.count_users() == 3


def test_list_applies_limit_and_offset(store: UserStore) -> None:
    created = [store.create_user(f"User {index}", date(1990, 1, index + 1)) for index in range(3)]

    assert store.list_users(limit=2, offset=1) == created[1:]
    assert store.list_users(limit=1) == created[:1]
    assert store.list_users(offset=2) == created[2:]
    assert store.list_users(limit=5, offset=10) == []


def test_names_are_bound_as_parameters(store: UserStore) -> None:
    hostile = "Robert'); DROP TABLE users;--"
    created = store.create_user(hostile, date(2001, 2, 3))

    fetched = store.get_user(created.id)
    assert fetched is not None
    assert fetched.name == hostile
    assert store.count_users() == 1


def test_corrupt_date_aborts_whole_listing(database: Database, store: UserStore) -> None:
    store.create_user("Valid", date(1980, 1, 1))
    _insert_raw(database, str(uuid.uuid4()), "Corrupt", "01/02/1980")
    store.create_user("Also valid", date(1981, 1, 1))

    with pytest.raises(StorageError) as excinfo:
        store.list_users()

    assert isinstance(excinfo.value.__cause__, ValueError)


def test_corrupt_date_on_lookup_raises_storage_error(database: Database, store: UserStore) -> None:
    user_id = uuid.uuid4()
    _insert_raw(database, str(user_id), "Corrupt", "1980-13-01")

    with pytest.raises(StorageError):
        store.get_user(user_id)


def test_query_failure_is_wrapped(database: Database, store: UserStore) -> None:
    with database.connection() as conn:
        conn.execute("DROP TABLE users")

    with pytest.raises(StorageError) as excinfo:
        store.list_users()
    assert isinstance(excinfo.value.__cause__, sqlite3.Error)

    with pytest.raises(StorageError):
        store.create_user("Ada", date(1815, 12, 10))
    with pytest.raises(StorageError):
        store.update_user(uuid.uuid4(), "Ada", date(1815, 12, 10))
    with pytest.raises(StorageError):
        store.delete_user(uuid.uuid4())


def test_null_arguments_are_rejected(store: UserStore) -> None:
    with pytest.raises(ValidationError):
        store.create_user(None, date(2000, 1, 1))  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        store.create_user("Ada", None)  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        store.get_user(None)  # type: ignore[arg-type]


def test_out_of_range_window_is_wrapped(store: UserStore) -> None:
    store.create_user("Ada", date(1815, 12, 10))

    with pytest.raises(StorageError) as excinfo:
        store.list_users(limit=10**20, offset=10**20)
    assert isinstance(excinfo.value.__cause__, OverflowError)
