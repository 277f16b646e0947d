"""Assemble every dashboard view for one filter selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from roikit.comparison import Comparison, can_compare, compare_months, default_months
from roikit.crm import CrmBucket, CrmLedger
from roikit.grouping import (
    ChannelRow,
    ProfitabilityBar,
    SpendShare,
    WeekBucket,
    channel_ranking,
    group_by_channel,
    group_weekly,
    profitability_bars,
    spend_distribution,
)
from roikit.metrics import aggregate
from roikit.models import Aggregate, CrmAggregate, CrmMovement, Filter, WeeklyEntry
from roikit.periods import filter_entries, previous_filter
from roikit.utils.numbers import pct_change
from roikit.validation import count_invalid

# (aggregate attribute, label, unit)
KPI_CARDS = [
    ("spend", "Spend", "currency"),
    ("revenue", "Revenue", "currency"),
    ("roi", "ROI", "percent"),
    ("new_customers", "New customers", "count"),
    ("cac", "CAC", "currency"),
    ("avg_ticket", "Average ticket", "currency"),
]


@dataclass(frozen=True)
class KpiCard:
    key: str
    label: str
    unit: str
    value: float
    previous: float
    delta_pct: float


@dataclass
class Dashboard:
    filter: Filter
    previous_filter: Filter
    current: Aggregate
    previous: Aggregate
    kpis: List[KpiCard]
    weekly: List[WeekBucket]
    channels: List[ChannelRow]
    bars: List[ProfitabilityBar]
    ranking: List[ChannelRow]
    spend_shares: List[SpendShare]
    invalid_count: int
    entry_count: int
    comparison: Optional[Comparison] = None
    crm: Optional[CrmAggregate] = None
    crm_series: List[CrmBucket] = field(default_factory=list)


def kpi_cards(current: Aggregate, previous: Aggregate) -> List[KpiCard]:
    cards = []
    for key, label, unit in KPI_CARDS:
        now = getattr(current, key)
        before = getattr(previous, key)
        cards.append(KpiCard(key, label, unit, now, before, pct_change(now, before)))
    return cards


def build_dashboard(
    entries: Iterable[WeeklyEntry],
    flt: Filter,
    movements: Optional[Iterable[CrmMovement]] = None,
) -> Dashboard:
    entries = list(entries)
    prev_flt = previous_filter(flt)
    scoped = filter_entries(entries, flt)
    current = aggregate(scoped)
    previous = aggregate(filter_entries(entries, prev_flt))
    channels = group_by_channel(scoped)

    comparison = None
    if can_compare(entries, flt.year):
        m1, m2 = default_months(entries, flt.year)
        comparison = compare_months(entries, flt.year, m1, m2)

    dash = Dashboard(
        filter=flt,
        previous_filter=prev_flt,
        current=current,
        previous=previous,
        kpis=kpi_cards(current, previous),
        weekly=group_weekly(scoped),
        channels=channels,
        bars=profitability_bars(channels),
        ranking=channel_ranking(channels),
        spend_shares=spend_distribution(channels),
        invalid_count=count_invalid(scoped),
        entry_count=len(scoped),
        comparison=comparison,
    )
    if movements is not None:
        crm = CrmLedger(movements)
        dash.crm = crm.summary(flt)
        dash.crm_series = crm.series(flt)
    return dash
