"""FastAPI application that exposes CRUD endpoints for user records."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Callable, List, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import Settings, load_settings
from .database import Database
from .errors import StorageError, UserNotFoundError, ValidationError
from .models import User, format_date_of_birth, parse_date_of_birth
from .store import UserStore

logger = logging.getLogger("userapi.api")

# SQLite binds integers as signed 64-bit values.
_MAX_SQL_INTEGER = 2**63 - 1


def _coerce_date_of_birth(value: object) -> date:
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError("dateOfBirth must be a YYYY-MM-DD string")
    return parse_date_of_birth(value)


def _check_non_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("name must not be empty")
    return value


class UserCreateRequest(BaseModel):
    # A client supplied ``id`` is ignored rather than rejected.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    date_of_birth: date = Field(..., alias="dateOfBirth")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _check_non_blank(value)

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def _check_date_of_birth(cls, value: object) -> date:
        return _coerce_date_of_birth(value)


class UserUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    date_of_birth: Optional[date] = Field(default=None, alias="dateOfBirth")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _check_non_blank(value)

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def _check_date_of_birth(cls, value: object) -> Optional[date]:
        if value is None:
            return None
        return _coerce_date_of_birth(value)


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    name: str
    date_of_birth: str = Field(..., alias="dateOfBirth")


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        date_of_birth=format_date_of_birth(user.date_of_birth),
    )


def parse_user_id(raw: str) -> UUID:
    """Parse a path segment into a user id, raising :class:`ValidationError`."""

    try:
        return UUID(raw.strip())
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid user id {raw!r}") from exc


def _parse_int(raw: str, name: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be an integer, got {raw!r}") from exc


def parse_pagination(limit: Optional[str], offset: Optional[str]) -> Tuple[int, int]:
    """Validate the ``limit``/``offset`` query parameters of the list endpoint."""

    if limit is None or not limit.strip():
        raise ValidationError("limit query parameter is required")
    parsed_limit = _parse_int(limit, "limit")
    if parsed_limit <= 0:
        raise ValidationError("limit must be a positive integer")

    parsed_offset = 0
    if offset is not None and offset.strip():
        parsed_offset = _parse_int(offset, "offset")
        if parsed_offset < 0:
            raise ValidationError("offset must not be negative")
    return min(parsed_limit, _MAX_SQL_INTEGER), min(parsed_offset, _MAX_SQL_INTEGER)


def _describe_validation_errors(errors: Sequence[Any]) -> str:
    messages: List[str] = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = str(error.get("msg", "invalid value"))
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Malformed request"


def create_app(
    *,
    database: Database | None = None,
    store: UserStore | None = None,
    settings: Settings | None = None,
    initialize_database: bool = False,
) -> FastAPI:
    if settings is None:
        settings = load_settings()

    if store is None:
        if database is None:
            database = Database(settings.database_path)
            database.initialize()
        elif initialize_database:
            database.initialize()
        store = UserStore(database)
    elif initialize_database:
        store.database.initialize()

    app = FastAPI(
        title=settings.title,
        description="CRUD API for user records",
        version="1.0.0",
    )
    app.state.store = store

    @app.exception_handler(ValidationError)
    async def _handle_validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
        logger.debug("Rejected request: %s", exc)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": _describe_validation_errors(exc.errors())},
        )

    @app.exception_handler(UserNotFoundError)
    async def _handle_not_found(_request: Request, exc: UserNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def _handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage failure while handling %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal storage error"},
        )

    def get_store() -> UserStore:
        return store

    def healthcheck() -> dict:
        return {"status": "ok"}

    def list_users(
        limit: Optional[str] = Query(default=None),
        offset: Optional[str] = Query(default=None),
        users: UserStore = Depends(get_store),
    ) -> List[UserResponse]:
        parsed_limit, parsed_offset = parse_pagination(limit, offset)
        return [user_to_response(user) for user in users.list_users(parsed_limit, parsed_offset)]

    def create_user(payload: UserCreateRequest, users: UserStore = Depends(get_store)) -> UserResponse:
        user = users.create_user(payload.name, payload.date_of_birth)
        return user_to_response(user)

    def read_user(user_id: str, users: UserStore = Depends(get_store)) -> UserResponse:
        parsed_id = parse_user_id(user_id)
        user = users.get_user(parsed_id)
        if user is None:
            raise UserNotFoundError(parsed_id)
        return user_to_response(user)

    def update_user(
        user_id: str,
        payload: UserUpdateRequest,
        users: UserStore = Depends(get_store),
    ) -> UserResponse:
        parsed_id = parse_user_id(user_id)
        existing = users.get_user(parsed_id)
        if existing is None:
            raise UserNotFoundError(parsed_id)

        updated = replace(
            existing,
            name=payload.name if payload.name is not None else existing.name,
            date_of_birth=payload.date_of_birth if payload.date_of_birth is not None else existing.date_of_birth,
        )
        if not users.update_user(updated.id, updated.name, updated.date_of_birth):
            # Deleted between the lookup and the update.
            raise UserNotFoundError(parsed_id)
        return user_to_response(updated)

    def delete_user(user_id: str, users: UserStore = Depends(get_store)) -> Response:
        parsed_id = parse_user_id(user_id)
        if not users.delete_user(parsed_id):
            raise UserNotFoundError(parsed_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    routes: List[Tuple[str, str, Callable[..., Any], int, Any]] = [
        ("GET", "/health", healthcheck, status.HTTP_200_OK, None),
        ("GET", "/users", list_users, status.HTTP_200_OK, List[UserResponse]),
        ("POST", "/users", create_user, status.HTTP_201_CREATED, UserResponse),
        ("GET", "/users/{user_id}", read_user, status.HTTP_200_OK, UserResponse),
        ("PUT", "/users/{user_id}", update_user, status.HTTP_200_OK, UserResponse),
        ("DELETE", "/users/{user_id}", delete_user, status.HTTP_204_NO_CONTENT, None),
    ]
    for method, path, endpoint, status_code, response_model in routes:
        app.add_api_route(
            path,
            endpoint,
            methods=[method],
            status_code=status_code,
            response_model=response_model,
            name=endpoint.__name__,
        )

    return app


__all__ = ["create_app", "parse_pagination", "parse_user_id", "user_to_response"]
