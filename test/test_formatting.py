from datetime import date, datetime

import pytest

from brilho.domain.errors import ValidationError
from brilho.domain.formatting import (
    format_currency,
    format_date,
    format_datetime,
    parse_date,
    parse_decimal,
    parse_int,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "R$ 0,00"),
        (1234.5, "R$ 1.234,50"),
        (1234567.891, "R$ 1.234.567,89"),
        (-15, "-R$ 15,00"),
        (None, "R$ 0,00"),
    ],
)
def test_format_currency(value, expected):
    assert format_currency(value) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("10", 10.0),
        ("10,5", 10.5),
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("R$ 39,90", 39.9),
        ("", 0.0),
        (12, 12.0),
    ],
)
def test_parse_decimal(text, expected):
    assert parse_decimal(text) == expected


def test_parse_decimal_rejects_text():
    with pytest.raises(ValidationError, match="Custo deve ser um número"):
        parse_decimal("abc", "Custo")


def test_parse_int():
    assert parse_int("3") == 3
    assert parse_int(" ") == 0
    assert parse_int(4.0) == 4
    assert parse_int("2,0") == 2
    with pytest.raises(ValidationError, match="inteiro"):
        parse_int("dois")


@pytest.mark.parametrize("text", ["1,5", "2.9", 0.5])
def test_parse_int_rejects_fractions(text):
    with pytest.raises(ValidationError, match="Quantidade deve ser um número inteiro"):
        parse_int(text)


def test_dates():
    assert parse_date("25/05/1990") == date(1990, 5, 25)
    assert parse_date("1990-05-25") == date(1990, 5, 25)
    assert parse_date(datetime(1990, 5, 25, 13, 0)) == date(1990, 5, 25)
    assert parse_date("") is None
    with pytest.raises(ValidationError):
        parse_date("25-05-1990x")

    assert format_date("1990-05-25") == "25/05/1990"
    assert format_date(None) == ""
    assert format_datetime("2026-03-05 14:30:00") == "05/03/2026 14:30"
