"""Validators for Israeli-specific identity and contact data."""

import re
from datetime import date, datetime
from typing import Optional, Union

_ID_SEPARATORS = re.compile(r"[\s\-]")
_NON_DIGITS = re.compile(r"\D")
_MOBILE = re.compile(r"^05\d{8}$")
_LANDLINE = re.compile(r"^0[2-489]\d{7,8}$")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_israeli_id(value: str) -> bool:
    """
    Validate an Israeli ID number (teudat zehut) by its check digit.

    Spaces and dashes are ignored; anything else must leave exactly 9 digits.
    Digits are weighted 1,2,1,2,...; a product over 9 has 9 subtracted; the
    weighted sum must be divisible by 10.
    """
    if not isinstance(value, str):
        return False
    cleaned = _ID_SEPARATORS.sub("", value)
    if len(cleaned) != 9 or not cleaned.isdigit():
        return False

    total = 0
    for index, digit in enumerate(cleaned):
        num = int(digit) * ((index % 2) + 1)
        if num > 9:
            num -= 9
        total += num
    return total % 10 == 0


def validate_phone(value: str) -> bool:
    """Mobile 05XXXXXXXX or landline 0[2-4,8-9] followed by 7-8 digits; separators ignored."""
    if not isinstance(value, str):
        return False
    cleaned = _NON_DIGITS.sub("", value)
    return bool(_MOBILE.match(cleaned) or _LANDLINE.match(cleaned))


def validate_email(value: str) -> bool:
    return isinstance(value, str) and bool(_EMAIL.match(value))


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Parse an ISO date (time part ignored); None when the value is not a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def calculate_age(birth_date: Union[str, date], today: Optional[date] = None) -> int:
    """Age in completed years."""
    born = parse_date(birth_date)
    if born is None:
        raise ValueError(f"Invalid birth date: {birth_date!r}")
    today = today or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def is_legal_adult(birth_date: Union[str, date], today: Optional[date] = None) -> bool:
    return calculate_age(birth_date, today) >= 18
