"""Month-vs-month comparison of weekly-ledger aggregates.

Differences are always ``month1 - month2`` and percentage change treats
``month2`` as the baseline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from roikit.constants import month_label
from roikit.metrics import aggregate
from roikit.models import Aggregate, WeeklyEntry
from roikit.utils.numbers import format_number, pct_change, safe_number

# (aggregate attribute, label, unit)
COMPARED_METRICS: List[Tuple[str, str, str]] = [
    ("new_customers", "New customers", "count"),
    ("revenue", "Revenue", "currency"),
    ("spend", "Spend", "currency"),
    ("cac", "CAC", "currency"),
    ("roi", "ROI", "percent"),
]

PRACTICALLY_EQUAL_PCT = 0.1


@dataclass(frozen=True)
class MetricDelta:
    key: str
    label: str
    unit: str
    value1: float
    value2: float
    diff: float
    pct: float


@dataclass(frozen=True)
class Comparison:
    year: int
    month1: int
    month2: int
    aggregate1: Aggregate
    aggregate2: Aggregate
    rows: List[MetricDelta]
    narrative: str


def _month_entries(entries: Iterable[WeeklyEntry], year: int, month: int) -> List[WeeklyEntry]:
    return [
        e for e in entries
        if e.is_active and safe_number(e.year) == year and safe_number(e.month) == month
    ]


def build_narrative(metric: str, delta_pct: float, label1: str, label2: str) -> str:
    """One sentence comparing *metric* between two labelled periods."""
    magnitude = abs(delta_pct)
    if magnitude < PRACTICALLY_EQUAL_PCT:
        return f"{label1} and {label2} were practically equal in {metric.lower()}."
    direction = "more" if delta_pct > 0 else "fewer"
    return f"{label1} had {format_number(magnitude, 1)}% {direction} {metric.lower()} than {label2}."


def compare_months(entries: Iterable[WeeklyEntry], year: int, month1: int, month2: int) -> Comparison:
    entries = list(entries)
    agg1 = aggregate(_month_entries(entries, year, month1))
    agg2 = aggregate(_month_entries(entries, year, month2))

    rows = []
    for key, label, unit in COMPARED_METRICS:
        v1 = getattr(agg1, key)
        v2 = getattr(agg2, key)
        rows.append(MetricDelta(key, label, unit, v1, v2, v1 - v2, pct_change(v1, v2)))

    narrative = build_narrative(
        "new customers",
        pct_change(agg1.new_customers, agg2.new_customers),
        month_label(month1),
        month_label(month2),
    )
    return Comparison(year, month1, month2, agg1, agg2, rows, narrative)


def available_months(entries: Iterable[WeeklyEntry], year: int) -> List[int]:
    """Months of *year* that have at least one active entry, ascending."""
    months = {
        int(safe_number(e.month))
        for e in entries
        if e.is_active and safe_number(e.year) == year and 1 <= safe_number(e.month) <= 12
    }
    return sorted(months)


def can_compare(entries: Iterable[WeeklyEntry], year: int) -> bool:
    return len(available_months(entries, year)) >= 2


def default_months(entries: Iterable[WeeklyEntry], year: int, month1: int | None = None, month2: int | None = None) -> Tuple[int, int] | None:
    """Keep the requested months when they have data, else fall back to the first two available."""
    months = available_months(entries, year)
    if len(months) < 2:
        return None
    m1 = month1 if month1 in months else months[0]
    m2 = month2 if month2 in months else months[1]
    return m1, m2
