"""
Fiscal calendar arithmetic.

A fiscal year can start on any calendar month. Fiscal month 1 is the
start month. When the start month is not January, the fiscal year is
named for the calendar year in which it ends: with a July start,
July 2024 through June 2025 is FY 2025.

Pure functions only. No I/O, no logging, no clock reads except where
a default "today" is requested explicitly.
"""

import calendar
import math
from datetime import date, datetime
from typing import NamedTuple

from ledger_reconciler.errors import InvalidArgument

MONTH_NAMES_FULL = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
MONTH_NAMES_SHORT = [name[:3] for name in MONTH_NAMES_FULL]


class FiscalYearBounds(NamedTuple):
    start_date: date
    end_date: date


def _validate_month(month, name: str) -> None:
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise InvalidArgument(f"{name} must be an integer between 1 and 12, got {month!r}")


def _validate_date(value, name: str) -> None:
    if not isinstance(value, date):
        raise InvalidArgument(f"{name} must be a date, got {type(value).__name__}")


def calendar_to_fiscal_month(calendar_month: int, fiscal_start_month: int) -> int:
    """
    Position of a calendar month within the fiscal year.

    calendar_to_fiscal_month(7, 7) == 1, (6, 7) == 12, (1, 7) == 7.
    """
    _validate_month(calendar_month, "calendar_month")
    _validate_month(fiscal_start_month, "fiscal_start_month")
    return (calendar_month - fiscal_start_month) % 12 + 1


def fiscal_to_calendar_month(fiscal_month: int, fiscal_start_month: int) -> int:
    """Inverse of calendar_to_fiscal_month."""
    _validate_month(fiscal_month, "fiscal_month")
    _validate_month(fiscal_start_month, "fiscal_start_month")
    return (fiscal_month + fiscal_start_month - 2) % 12 + 1


def get_fiscal_year(value: date, fiscal_start_month: int) -> int:
    """Fiscal year containing a date."""
    _validate_date(value, "value")
    _validate_month(fiscal_start_month, "fiscal_start_month")

    if fiscal_start_month == 1:
        return value.year
    if value.month >= fiscal_start_month:
        return value.year + 1
    return value.year


def get_fiscal_year_bounds(fiscal_year: int, fiscal_start_month: int) -> FiscalYearBounds:
    """
    First and last day of a fiscal year.

    FY 2025 with a July start runs 2024-07-01 .. 2025-06-30;
    with a January start it runs 2025-01-01 .. 2025-12-31.
    """
    if isinstance(fiscal_year, bool) or not isinstance(fiscal_year, int) or fiscal_year < 1:
        raise InvalidArgument(f"fiscal_year must be a positive integer, got {fiscal_year!r}")
    _validate_month(fiscal_start_month, "fiscal_start_month")

    if fiscal_start_month == 1:
        start = date(fiscal_year, 1, 1)
        end = date(fiscal_year, 12, 31)
    else:
        start = date(fiscal_year - 1, fiscal_start_month, 1)
        end_month = fiscal_start_month - 1
        end = date(fiscal_year, end_month, calendar.monthrange(fiscal_year, end_month)[1])
    return FiscalYearBounds(start, end)


def get_fiscal_quarter(fiscal_month: int) -> int:
    _validate_month(fiscal_month, "fiscal_month")
    return math.ceil(fiscal_month / 3)


def get_fiscal_month_name(fiscal_month: int, fiscal_start_month: int, short: bool = False) -> str:
    names = MONTH_NAMES_SHORT if short else MONTH_NAMES_FULL
    return names[fiscal_to_calendar_month(fiscal_month, fiscal_start_month) - 1]


def get_fiscal_month_names(fiscal_start_month: int, short: bool = False) -> list[str]:
    """All twelve month names in fiscal order."""
    return [
        get_fiscal_month_name(month, fiscal_start_month, short=short)
        for month in range(1, 13)
    ]


def get_fiscal_year_label(fiscal_year: int, fiscal_start_month: int) -> str:
    _validate_month(fiscal_start_month, "fiscal_start_month")
    if fiscal_start_month == 1:
        return str(fiscal_year)
    return f"FY {fiscal_year}"


def get_current_fiscal_month(fiscal_start_month: int, today: date | None = None) -> int:
    if today is None:
        today = datetime.now().date()
    _validate_date(today, "today")
    return calendar_to_fiscal_month(today.month, fiscal_start_month)


def is_fiscal_year(fiscal_start_month: int) -> bool:
    """True when the client does not use a plain calendar year."""
    _validate_month(fiscal_start_month, "fiscal_start_month")
    return fiscal_start_month != 1
