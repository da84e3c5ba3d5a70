"""pt-BR display helpers for money and dates.

Values typed by the user in forms go through the ``parse_*`` functions, values
read from the database go through the ``format_*`` ones. ``parse_x(format_x(v))``
gives ``v`` back.
"""
from __future__ import annotations

from datetime import date, datetime
import re
from typing import Optional

from brilho.domain.errors import ValidationError

_DATE_BR = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def format_currency(value: float) -> str:
    amount = round(float(value or 0), 2)
    sign = "-" if amount < 0 else ""
    # 1,234.56 -> 1.234,56
    text = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {text}"


def parse_decimal(text, field: str = "Valor", default: float = 0.0) -> float:
    if isinstance(text, (int, float)):
        return float(text)
    s = (text or "").strip().replace("R$", "").replace(" ", "").replace("\xa0", "")
    if s == "":
        return default
    negative = s.startswith("-")
    if negative:
        s = s[1:]
    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", ".")
    try:
        value = float(s)
    except ValueError:
        raise ValidationError(f"{field} deve ser um número.")
    return -value if negative else value


def parse_int(text, field: str = "Quantidade", default: int = 0) -> int:
    if isinstance(text, int):
        return text
    s = (str(text) if text is not None else "").strip()
    if s == "":
        return default
    try:
        value = float(s.replace(",", "."))
    except ValueError:
        raise ValidationError(f"{field} deve ser um número inteiro.")
    if not value.is_integer():
        raise ValidationError(f"{field} deve ser um número inteiro.")
    return int(value)


def _to_datetime(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).strip())


def format_date(value) -> str:
    dt = _to_datetime(value)
    return dt.strftime("%d/%m/%Y") if dt else ""


def format_datetime(value) -> str:
    dt = _to_datetime(value)
    return dt.strftime("%d/%m/%Y %H:%M") if dt else ""


def parse_date(value, field: str = "Data") -> Optional[date]:
    """Accepts ``dd/mm/aaaa``, ``aaaa-mm-dd`` (optionally with a time part),
    ``date`` and ``datetime``. Blank input gives ``None``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        m = _DATE_BR.match(s)
        if m:
            day, month, year = (int(g) for g in m.groups())
            return date(year, month, day)
        return date.fromisoformat(s[:10])
    except ValueError:
        raise ValidationError(f"{field} inválida: {s}. Use dd/mm/aaaa ou aaaa-mm-dd.")
