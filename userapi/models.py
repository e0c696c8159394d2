"""Domain models for the user records service."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from uuid import UUID

_DATE_PATTERN = re.compile(r"^([0-9]{4})-([0-9]{2})-([0-9]{2})$")


def format_date_of_birth(value: date) -> str:
    """Render a date as ``YYYY-MM-DD`` with a zero-padded four digit year."""

    # strftime does not pad years below 1000 on every platform.
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_of_birth(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string, raising :class:`ValueError` otherwise."""

    match = _DATE_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Date of birth must use the YYYY-MM-DD format, got {value!r}")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)


@dataclass(frozen=True)
class User:
    """Represents a user record stored in the ``users`` table."""

    id: UUID
    name: str
    date_of_birth: date


__all__ = ["User", "format_date_of_birth", "parse_date_of_birth"]
