"""Lenient numeric helpers shared by every metric and report.

Blank, missing or garbled values degrade to ``0`` instead of raising, so a
hand-edited spreadsheet can never take a dashboard down.
"""

from __future__ import annotations

import math
from typing import Any


def safe_number(value: Any) -> float:
    """Coerce *value* to a finite float; blank/None/NaN/inf/garbage → ``0.0``."""
    if value is None or isinstance(value, bool):
        return float(value or 0)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0.0
    return n if math.isfinite(n) else 0.0


def safe_div(numerator: Any, denominator: Any) -> float:
    """Divide two safe numbers, returning ``0.0`` on a zero denominator."""
    num = safe_number(numerator)
    den = safe_number(denominator)
    if den == 0:
        return 0.0
    return num / den


def pct_change(current: Any, previous: Any) -> float:
    """Percentage change from *previous* to *current*.

    A zero baseline yields ``0`` when *current* is also zero, else ``100``.
    """
    c = safe_number(current)
    p = safe_number(previous)
    if p == 0:
        return 0.0 if c == 0 else 100.0
    return (c - p) / p * 100


def format_currency(value: Any, symbol: str = "$") -> str:
    """``1234.5`` → ``$1,234.50`` (negative values keep a leading minus)."""
    n = safe_number(value)
    sign = "-" if n < 0 else ""
    return f"{sign}{symbol}{abs(n):,.2f}"


def format_number(value: Any, decimals: int = 0) -> str:
    return f"{safe_number(value):,.{decimals}f}"


def format_pct(value: Any, decimals: int = 1) -> str:
    return f"{format_number(value, decimals)}%"
