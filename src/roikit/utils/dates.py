"""Date-string helpers for ISO ``YYYY-MM-DD`` fields."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse the ``YYYY-MM-DD`` prefix of *value*; ``None`` when blank or invalid."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if len(s) < 10:
        return None
    try:
        return datetime.strptime(s[:10], "%Y-%m-%d").date()
    except ValueError:
        return None

