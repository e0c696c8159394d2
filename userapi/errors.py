"""Exception types shared by the store, the HTTP layer and the CLI."""

from __future__ import annotations


class UserAPIError(Exception):
    """Base class for errors raised by the user records service."""


class ValidationError(UserAPIError, ValueError):
    """Raised when caller supplied input is missing or malformed."""


class UserNotFoundError(UserAPIError):
    """Raised when a well-formed user id does not match any record."""

    def __init__(self, user_id: object) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class StorageError(UserAPIError):
    """Raised when the data store fails or returns a row that cannot be decoded."""


__all__ = ["StorageError", "UserAPIError", "UserNotFoundError", "ValidationError"]
