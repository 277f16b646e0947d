"""Period selection: previous-period lookup, month bounds and entry filtering."""

from __future__ import annotations

import calendar
from datetime import date
from typing import Iterable, List, NamedTuple, Tuple, Union

from roikit.constants import ALL
from roikit.models import Filter, WeeklyEntry
from roikit.utils.numbers import safe_number

MonthSelector = Union[int, str]


class Period(NamedTuple):
    year: int
    month: MonthSelector


def resolve_previous(year: int, month: MonthSelector) -> Period:
    """The comparable prior period.

    >>> resolve_previous(2025, 1)
    Period(year=2024, month=12)
    >>> resolve_previous(2025, "all")
    Period(year=2024, month='all')
    """
    if month == ALL:
        return Period(year - 1, ALL)
    m = int(month)
    if m > 1:
        return Period(year, m - 1)
    return Period(year - 1, 12)


def month_date_range(year: int, month: MonthSelector) -> Tuple[date, date]:
    """First and last calendar day of the month, or of the whole year for ``"all"``."""
    if month == ALL:
        return date(year, 1, 1), date(year, 12, 31)
    m = int(month)
    _, ndays = calendar.monthrange(year, m)
    return date(year, m, 1), date(year, m, ndays)


def _matches(entry: WeeklyEntry, year: int, month: MonthSelector, channel: str) -> bool:
    if safe_number(entry.year) != year:
        return False
    if month != ALL and safe_number(entry.month) != int(month):
        return False
    if channel != ALL and entry.channel != channel:
        return False
    return True


def filter_entries(entries: Iterable[WeeklyEntry], flt: Filter) -> List[WeeklyEntry]:
    """Active entries inside the filter's year / month / channel."""
    return [e for e in entries if e.is_active and _matches(e, flt.year, flt.month, flt.channel)]


def previous_filter(flt: Filter) -> Filter:
    prev = resolve_previous(flt.year, flt.month)
    return Filter(year=prev.year, month=prev.month, channel=flt.channel)


def previous_entries(entries: Iterable[WeeklyEntry], flt: Filter) -> List[WeeklyEntry]:
    """Active entries in the period before *flt*, same channel selection."""
    return filter_entries(entries, previous_filter(flt))


def available_years(entries: Iterable[WeeklyEntry], default: int | None = None) -> List[int]:
    """Distinct integral years among active entries, ascending.

    Falls back to ``[default]`` (today's year when not given) when there are none.
    """
    years = sorted(
        {int(safe_number(e.year)) for e in entries if e.is_active and float(safe_number(e.year)).is_integer() and safe_number(e.year) > 0}
    )
    if years:
        return years
    return [default if default is not None else date.today().year]
