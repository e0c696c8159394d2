"""Persistence of user records on top of :class:`~userapi.database.Database`."""
from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import date
from typing import List, Optional
from uuid import UUID

from .database import Database
from .errors import StorageError, ValidationError
from .models import User, format_date_of_birth, parse_date_of_birth

logger = logging.getLogger("userapi.store")


def _require(value: object, field: str) -> None:
    if value is None:
        raise ValidationError(f"{field} must not be null")


class UserStore:
    """Translate CRUD operations on users into parameterised SQL statements.

    The store keeps no state besides the injected database handle: every call
    opens its own connection, runs one statement and releases the connection
    before returning. ``sqlite3`` failures surface as :class:`StorageError`.
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    @property
    def database(self) -> Database:
        return self._database

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_users(self, limit: Optional[int] = None, offset: int = 0) -> List[User]:
        """Return users in insertion order, optionally windowed by ``limit``/``offset``.

        A single undecodable row aborts the whole listing.
        """

        query = "SELECT id, name, date_of_birth FROM users ORDER BY rowid"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params = (limit, offset)
        elif offset:
            # SQLite only accepts OFFSET after a LIMIT clause; -1 means unbounded.
            query += " LIMIT -1 OFFSET ?"
            params = (offset,)

        try:
            with self._database.connection() as conn:
                rows = conn.execute(query, params).fetchall()
        except (sqlite3.Error, OverflowError) as exc:
            raise StorageError("Failed to list users") from exc
        return [self._row_to_user(row) for row in rows]

    def count_users(self) -> int:
        try:
            with self._database.connection() as conn:
                row = conn.execute("SELECT COUNT(*) AS total FROM users").fetchone()
        except sqlite3.Error as exc:
            raise StorageError("Failed to count users") from exc
        return int(row["total"])

    def get_user(self, user_id: UUID) -> Optional[User]:
        _require(user_id, "id")
        try:
            with self._database.connection() as conn:
                row = conn.execute(
                    "SELECT id, name, date_of_birth FROM users WHERE id = ?",
                    (str(user_id),),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to load user {user_id}") from exc
        if row is None:
            return None
        return self._row_to_user(row)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create_user(self, name: str, date_of_birth: date) -> User:
        """Insert a new user with a freshly generated id and return it."""

        _require(name, "name")
        _require(date_of_birth, "date_of_birth")

        user = User(id=uuid.uuid4(), name=name, date_of_birth=date_of_birth)
        try:
            with self._database.connection() as conn:
                conn.execute(
                    "INSERT INTO users (id, name, date_of_birth) VALUES (?, ?, ?)",
                    (str(user.id), user.name, format_date_of_birth(user.date_of_birth)),
                )
        except sqlite3.Error as exc:
            raise StorageError("Failed to create user") from exc

        logger.info("Created user %s", user.id)
        return user

    def update_user(self, user_id: UUID, name: str, date_of_birth: date) -> bool:
        """Overwrite name and date of birth; return ``False`` if no row matched."""

        _require(user_id, "id")
        _require(name, "name")
        _require(date_of_birth, "date_of_birth")

        try:
            with self._database.connection() as conn:
                cursor = conn.execute(
                    "UPDATE users SET name = ?, date_of_birth = ? WHERE id = ?",
                    (name, format_date_of_birth(date_of_birth), str(user_id)),
                )
                matched = cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to update user {user_id}") from exc

        if matched:
            logger.info("Updated user %s", user_id)
        return matched

    def delete_user(self, user_id: UUID) -> bool:
        """Delete a user; return ``False`` if no row matched."""

        _require(user_id, "id")
        try:
            with self._database.connection() as conn:
                cursor = conn.execute("DELETE FROM users WHERE id = ?", (str(user_id),))
                matched = cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to delete user {user_id}") from exc

        if matched:
            logger.info("Deleted user %s", user_id)
        return matched

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        try:
            return User(
                id=UUID(row["id"]),
                name=row["name"],
                date_of_birth=parse_date_of_birth(row["date_of_birth"]),
            )
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Stored user row {row['id']!r} could not be decoded") from exc


__all__ = ["UserStore"]
