from __future__ import annotations

from datetime import date

import pytest

from userapi.models import format_date_of_birth, parse_date_of_birth


@pytest.mark.parametrize(
    "value",
    [date(1, 1, 1), date(999, 3, 7), date(1815, 12, 10), date(2000, 2, 29), date(9999, 12, 31)],
)
def test_date_of_birth_round_trips(value: date) -> None:
    text = format_date_of_birth(value)

    assert len(text) == 10
    assert parse_date_of_birth(text) == value


def test_format_pads_year_to_four_digits() -> None:
    assert format_date_of_birth(date(42, 1, 5)) == "0042-01-05"


@pytest.mark.parametrize(
    "text",
    ["", "1815-12", "1815/12/10", "10-12-1815", "1815-1-10", "18151-12-10", "1815-13-01", "2001-02-29", "0000-01-01"],
)
def test_parse_rejects_malformed_dates(text: str) -> None:
    with pytest.raises(ValueError):
        parse_date_of_birth(text)


def test_parse_rejects_non_strings() -> None:
    with pytest.raises(ValueError):
        parse_date_of_birth(18151210)  # type: ignore[arg-type]
