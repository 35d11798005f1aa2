"""
Fiscal calendar and membership-age arithmetic.

Pure functions, no I/O.  The cooperative's fiscal year starts on the first
day of a configurable month (October by default): a date before that month
belongs to the fiscal year that started the previous calendar year.

    fiscal_year_for(date(2024, 9, 30))   -> 2023
    fiscal_year_for(date(2024, 10, 1))   -> 2024
"""

from datetime import date
from typing import Callable

FiscalYearResolver = Callable[[date], int]

DEFAULT_FISCAL_START_MONTH = 10


def fiscal_year_for(day: date, start_month: int = DEFAULT_FISCAL_START_MONTH) -> int:
    """Fiscal year that ``day`` falls in."""
    if not 1 <= start_month <= 12:
        raise ValueError(f"start_month must be 1..12, got {start_month}")
    if day.month < start_month:
        return day.year - 1
    return day.year


def make_fiscal_year_resolver(start_month: int = DEFAULT_FISCAL_START_MONTH) -> FiscalYearResolver:
    """Bind a start month into a ``date -> int`` resolver."""
    if not 1 <= start_month <= 12:
        raise ValueError(f"start_month must be 1..12, got {start_month}")

    def resolve(day: date) -> int:
        return fiscal_year_for(day, start_month)

    return resolve


def full_years_between(start: date, end: date) -> int:
    """
    Whole years elapsed from ``start`` to ``end``.

    A year counts once its anniversary is reached.  A Feb 29 start reaches
    its anniversary on Mar 1 in non-leap years.  Returns 0 when ``end`` is
    before ``start``.
    """
    if end < start:
        return 0
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years
