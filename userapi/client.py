"""HTTP client for talking to a running user records service."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

import httpx

from .models import User, format_date_of_birth, parse_date_of_birth


class UserAPIClientError(Exception):
    """Raised when the service rejects a request or returns an unusable payload."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("API base URL must not be empty")
    return cleaned.rstrip("/")


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return default


def _payload_to_user(payload: object) -> User:
    if not isinstance(payload, dict):
        raise UserAPIClientError("User API returned an unexpected response payload")
    try:
        return User(
            id=UUID(str(payload["id"])),
            name=str(payload["name"]),
            date_of_birth=parse_date_of_birth(str(payload["dateOfBirth"])),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise UserAPIClientError("User API response was missing required fields") from exc


class UserAPIClient:
    """Perform CRUD calls against the ``/users`` endpoints.

    ``client`` may be any :class:`httpx.Client`, including FastAPI's
    ``TestClient``; when omitted a client bound to ``base_url`` is created and
    owned by this instance.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        *,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            client = httpx.Client(base_url=_normalize_base_url(base_url), timeout=timeout)
        self._client = client

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "UserAPIClient":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:  # pragma: no cover - network failure
            raise UserAPIClientError(f"Failed to contact user API: {exc}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        default = f"User API request failed with status {response.status_code}"
        try:
            parsed = response.json()
        except ValueError:
            parsed = response.text
        raise UserAPIClientError(
            _extract_error_message(parsed, default),
            status_code=response.status_code,
        )

    def list_users(self, limit: int, offset: int = 0) -> List[User]:
        response = self._request("GET", "/users", params={"limit": limit, "offset": offset})
        self._raise_for_status(response)
        payload = response.json()
        if not isinstance(payload, list):
            raise UserAPIClientError("User API returned an unexpected response payload")
        return [_payload_to_user(item) for item in payload]

    def create_user(self, name: str, date_of_birth: date) -> User:
        body = {"name": name, "dateOfBirth": format_date_of_birth(date_of_birth)}
        response = self._request("POST", "/users", json=body)
        self._raise_for_status(response)
        return _payload_to_user(response.json())

    def get_user(self, user_id: UUID) -> Optional[User]:
        response = self._request("GET", f"/users/{user_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return _payload_to_user(response.json())

    def update_user(
        self,
        user_id: UUID,
        *,
        name: Optional[str] = None,
        date_of_birth: Optional[date] = None,
    ) -> Optional[User]:
        body: Dict[str, str] = {}
        if name is not None:
            body["name"] = name
        if date_of_birth is not None:
            body["dateOfBirth"] = format_date_of_birth(date_of_birth)
        response = self._request("PUT", f"/users/{user_id}", json=body)
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return _payload_to_user(response.json())

    def delete_user(self, user_id: UUID) -> bool:
        response = self._request("DELETE", f"/users/{user_id}")
        if response.status_code == 404:
            return False
        self._raise_for_status(response)
        return True


__all__ = ["UserAPIClient", "UserAPIClientError"]
