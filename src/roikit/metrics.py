"""ROI / ROAS / CAC formulas for single records and for collections.

Portfolio figures are always ratio-of-sums: additive fields are summed first
and the ratios derived from the totals, never averaged across records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import numpy as np
import pandas as pd

from roikit.constants import is_roas_channel
from roikit.models import ADDITIVE_FIELDS, Aggregate, WeeklyEntry
from roikit.utils.numbers import safe_div, safe_number

FRAME_COLUMNS = ["id", "year", "month", "week_of_month", "channel", *ADDITIVE_FIELDS]


@dataclass(frozen=True)
class RowMetrics:
    roi: float
    roas: float
    cac: float
    avg_ticket: float
    conversion_rate: float
    primary_profitability: float


def _value(row: Any, attr: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(attr)
    return getattr(row, attr, None)


def roi(spend: Any, revenue: Any) -> float:
    s = safe_number(spend)
    r = safe_number(revenue)
    return (r - s) / s * 100 if s > 0 else 0.0


def roas(spend: Any, revenue: Any) -> float:
    s = safe_number(spend)
    return safe_number(revenue) / s if s > 0 else 0.0


def compute_row_metrics(row: WeeklyEntry | Mapping[str, Any]) -> RowMetrics:
    """Derived metrics for one weekly entry (or any mapping with the same fields)."""
    spend = safe_number(_value(row, "spend"))
    revenue = safe_number(_value(row, "revenue"))
    leads = safe_number(_value(row, "leads"))
    new_customers = safe_number(_value(row, "new_customers"))
    number_of_sales = safe_number(_value(row, "number_of_sales"))

    row_roi = roi(spend, revenue)
    row_roas = roas(spend, revenue)
    return RowMetrics(
        roi=row_roi,
        roas=row_roas,
        cac=safe_div(spend, new_customers),
        avg_ticket=safe_div(revenue, number_of_sales),
        conversion_rate=new_customers / leads * 100 if leads > 0 else 0.0,
        primary_profitability=row_roas if is_roas_channel(_value(row, "channel")) else row_roi,
    )


# ---------------------------------------------------------------------------
# 📊  Frame helpers
# ---------------------------------------------------------------------------


def entries_frame(entries: Iterable[WeeklyEntry]) -> pd.DataFrame:
    """One row per entry with every additive field coerced through ``safe_number``.

    Bucket keys (year, month, week) are coerced the same way so malformed rows
    still land somewhere instead of disappearing from totals.
    """
    records = [
        {
            "id": e.id,
            "year": safe_number(e.year),
            "month": safe_number(e.month),
            "week_of_month": safe_number(e.week_of_month),
            "channel": str(e.channel),
            **{col: safe_number(getattr(e, col)) for col in ADDITIVE_FIELDS},
        }
        for e in entries
    ]
    df = pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)
    for col in ["year", "month", "week_of_month", *ADDITIVE_FIELDS]:
        df[col] = df[col].astype(float)
    return df


def add_ratio_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Add roi / roas / cac / avg_ticket / conversion_rate computed from each row's totals."""
    out = df.copy()
    spend = out["spend"]
    revenue = out["revenue"]

    def _clean(series: pd.Series) -> pd.Series:
        return series.replace([np.inf, -np.inf], np.nan).fillna(0.0)

    out["roi"] = _clean((revenue - spend) / spend * 100).where(spend > 0, 0.0)
    out["roas"] = _clean(revenue / spend).where(spend > 0, 0.0)
    if "new_customers" in out.columns:
        out["cac"] = _clean(spend / out["new_customers"]).where(out["new_customers"] != 0, 0.0)
    if "number_of_sales" in out.columns:
        out["avg_ticket"] = _clean(revenue / out["number_of_sales"]).where(out["number_of_sales"] != 0, 0.0)
    if "leads" in out.columns and "new_customers" in out.columns:
        out["conversion_rate"] = _clean(out["new_customers"] / out["leads"] * 100).where(out["leads"] > 0, 0.0)
    return out


def aggregate_totals(totals: Mapping[str, Any]) -> Aggregate:
    spend = safe_number(totals.get("spend"))
    revenue = safe_number(totals.get("revenue"))
    new_customers = safe_number(totals.get("new_customers"))
    number_of_sales = safe_number(totals.get("number_of_sales"))
    return Aggregate(
        spend=spend,
        revenue=revenue,
        leads=safe_number(totals.get("leads")),
        new_customers=new_customers,
        number_of_sales=number_of_sales,
        roi=roi(spend, revenue),
        cac=safe_div(spend, new_customers),
        avg_ticket=safe_div(revenue, number_of_sales),
    )


def aggregate_frame(df: pd.DataFrame) -> Aggregate:
    return aggregate_totals({col: float(df[col].sum()) for col in ADDITIVE_FIELDS})


def aggregate(entries: Iterable[WeeklyEntry]) -> Aggregate:
    """Fold *entries* into portfolio totals; empty input gives an all-zero aggregate."""
    return aggregate_frame(entries_frame(entries))
