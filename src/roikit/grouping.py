"""Weekly and per-channel breakdowns of weekly entries.

Weekly buckets sort on the numeric ``(year, month, week)`` tuple, so month 10
follows month 9.  Channel breakdowns always return every catalogue channel,
zero-filled, so charts compare a stable set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

import numpy as np

from roikit.constants import CHANNELS, PROFITABILITY_CONVENTION, Channel, Profitability
from roikit.metrics import add_ratio_columns, entries_frame
from roikit.models import ADDITIVE_FIELDS, WeeklyEntry
from roikit.utils.numbers import safe_number


@dataclass(frozen=True)
class WeekBucket:
    year: int | float
    month: int | float
    week_of_month: int | float
    label: str
    spend: float
    revenue: float
    roi: float


@dataclass(frozen=True)
class ChannelRow:
    channel: str
    spend: float
    revenue: float
    leads: float
    new_customers: float
    number_of_sales: float
    roi: float
    roas: float
    cac: float
    avg_ticket: float
    convention: Profitability
    profitability: float


@dataclass(frozen=True)
class ProfitabilityBar:
    channel: str
    metric_label: str
    metric_value: float


@dataclass(frozen=True)
class SpendShare:
    channel: str
    spend: float
    pct: float


def _as_int(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def week_label(month: object, week: object) -> str:
    return f"M{_as_int(safe_number(month))} · W{_as_int(safe_number(week))}"


def group_weekly(entries: Iterable[WeeklyEntry]) -> List[WeekBucket]:
    """Spend and revenue per ``(year, month, week_of_month)``, oldest first."""
    df = entries_frame(entries)
    if df.empty:
        return []

    keys = ["year", "month", "week_of_month"]
    grouped = df.groupby(keys, sort=True)[["spend", "revenue"]].sum()
    grouped = add_ratio_columns(grouped)

    buckets: List[WeekBucket] = []
    for (year, month, week), row in grouped.iterrows():
        buckets.append(
            WeekBucket(
                year=_as_int(year),
                month=_as_int(month),
                week_of_month=_as_int(week),
                label=week_label(month, week),
                spend=float(row["spend"]),
                revenue=float(row["revenue"]),
                roi=float(row["roi"]),
            )
        )
    return buckets


def group_by_channel(entries: Iterable[WeeklyEntry]) -> List[ChannelRow]:
    """One row per catalogue channel (zero-filled), in catalogue order.

    Entries whose channel is not in the catalogue are left out.
    """
    df = entries_frame(entries)
    cols = list(ADDITIVE_FIELDS)
    sums = df.groupby("channel")[cols].sum().reindex(CHANNELS, fill_value=0.0)
    sums = add_ratio_columns(sums.astype(float))

    conventions = [PROFITABILITY_CONVENTION[Channel(c)] for c in sums.index]
    sums["profitability"] = np.where(
        [conv is Profitability.ROAS for conv in conventions], sums["roas"], sums["roi"]
    )

    rows: List[ChannelRow] = []
    for (channel, row), convention in zip(sums.iterrows(), conventions):
        rows.append(
            ChannelRow(
                channel=str(channel),
                spend=float(row["spend"]),
                revenue=float(row["revenue"]),
                leads=float(row["leads"]),
                new_customers=float(row["new_customers"]),
                number_of_sales=float(row["number_of_sales"]),
                roi=float(row["roi"]),
                roas=float(row["roas"]),
                cac=float(row["cac"]),
                avg_ticket=float(row["avg_ticket"]),
                convention=convention,
                profitability=float(row["profitability"]),
            )
        )
    return rows


def profitability_bars(rows: Iterable[ChannelRow]) -> List[ProfitabilityBar]:
    """ROI (or ROAS for paid social) per channel, best first."""
    bars = [ProfitabilityBar(r.channel, r.convention.value, r.profitability) for r in rows]
    return sorted(bars, key=lambda b: b.metric_value, reverse=True)


def channel_ranking(rows: Iterable[ChannelRow]) -> List[ChannelRow]:
    return sorted(rows, key=lambda r: r.profitability, reverse=True)


def spend_distribution(rows: Iterable[ChannelRow]) -> List[SpendShare]:
    """Share of spend per channel, only channels that spent something, largest first."""
    rows = list(rows)
    total = sum(r.spend for r in rows)
    shares = [
        SpendShare(r.channel, r.spend, r.spend / total * 100 if total > 0 else 0.0)
        for r in rows
        if r.spend > 0
    ]
    return sorted(shares, key=lambda s: s.spend, reverse=True)
