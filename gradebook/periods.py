"""
Month/year helpers.

Grade records store the Khmer month name together with its number; callers
may pass a Khmer name, an English name or a month number.
"""
import calendar
from datetime import date

from core.choices import MONTHS
from .exceptions import InvalidPeriod


_MONTH_LOOKUP = {}
for _number, _khmer, _english in MONTHS:
    _MONTH_LOOKUP[_khmer] = (_khmer, _number)
    _MONTH_LOOKUP[_english.lower()] = (_khmer, _number)
    _MONTH_LOOKUP[str(_number)] = (_khmer, _number)


def normalize_month(value):
    """
    Resolve a month to its canonical (Khmer name, number) pair.

    Raises:
        InvalidPeriod: if the value is not a known month.
    """
    if value is None or isinstance(value, bool):
        raise InvalidPeriod(f"Invalid month: {value!r}")
    key = str(value).strip()
    if key.lower() in _MONTH_LOOKUP:
        return _MONTH_LOOKUP[key.lower()]
    if key in _MONTH_LOOKUP:
        return _MONTH_LOOKUP[key]
    raise InvalidPeriod(f"Invalid month: {value!r}")


def normalize_year(value):
    try:
        year = int(value)
    except (TypeError, ValueError):
        raise InvalidPeriod(f"Invalid year: {value!r}")
    if year < 1900 or year > 9999:
        raise InvalidPeriod(f"Invalid year: {value!r}")
    return year


def month_span(year, month_number):
    """First and last calendar day of a month (inclusive)."""
    last_day = calendar.monthrange(year, month_number)[1]
    return date(year, month_number, 1), date(year, month_number, last_day)


def year_span(year):
    return date(year, 1, 1), date(year, 12, 31)
