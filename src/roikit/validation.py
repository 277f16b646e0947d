"""Field-level validation for weekly entries.

Validation never mutates and never raises: it returns ``{field: message}``,
empty when the entry is fine.  Invalid entries stay visible; the ledger and
the import commit use the result to decide what may be persisted.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable

from roikit.constants import CHANNELS
from roikit.models import WeeklyEntry
from roikit.utils.dates import parse_iso_date
from roikit.utils.numbers import safe_number

NON_NEGATIVE = {
    "spend": "Spend cannot be negative.",
    "revenue": "Revenue cannot be negative.",
    "leads": "Leads cannot be negative.",
    "new_customers": "New customers cannot be negative.",
    "number_of_sales": "Number of sales cannot be negative.",
}


def _as_integer(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        n = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(n) or not n.is_integer():
        return None
    return int(n)


def validate_entry(entry: WeeklyEntry) -> Dict[str, str]:
    errors: Dict[str, str] = {}

    year = _as_integer(entry.year)
    if year is None or year < 2000:
        errors["year"] = "Invalid year."

    month = _as_integer(entry.month)
    if month is None or not 1 <= month <= 12:
        errors["month"] = "Invalid month (1-12)."

    week = _as_integer(entry.week_of_month)
    if week is None or not 1 <= week <= 5:
        errors["week_of_month"] = "Invalid week (1-5)."

    if entry.channel not in CHANNELS:
        errors["channel"] = "Channel must be one of the catalogue channels."

    for name, message in NON_NEGATIVE.items():
        if safe_number(getattr(entry, name)) < 0:
            errors[name] = message

    start = parse_iso_date(entry.week_start_date) if entry.week_start_date else None
    end = parse_iso_date(entry.week_end_date) if entry.week_end_date else None
    if entry.week_start_date and start is None:
        errors["week_start_date"] = "Invalid week start date."
    if entry.week_end_date and end is None:
        errors["week_end_date"] = "Invalid week end date."
    if start is not None and end is not None and start > end:
        errors["week_end_date"] = "Week end date must not be before the start date."

    return errors


def has_errors(errors: Dict[str, str]) -> bool:
    return bool(errors)


def is_valid(entry: WeeklyEntry) -> bool:
    return not validate_entry(entry)


def count_invalid(entries: Iterable[WeeklyEntry]) -> int:
    return sum(1 for e in entries if validate_entry(e))
