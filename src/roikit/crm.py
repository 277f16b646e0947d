"""CRM movement aggregates and reconciliation against the weekly ledger.

Only confirmed, non-trashed movements count.  Sales and refunds are split
once; each customer's first sale is found across the *whole* sales history
(earliest ``fecha``, then ``created_at``) and a customer is "new" in a period
only when that first sale falls inside the period and channel.  A repeat
purchase in May from a customer acquired in March is revenue in May but not
a new customer in May.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional

import pandas as pd

from roikit.constants import ALL, CHANNELS
from roikit.metrics import aggregate
from roikit.models import CrmAggregate, CrmMovement, Filter, MovementType, WeeklyEntry
from roikit.periods import filter_entries, month_date_range
from roikit.utils.dates import parse_iso_date
from roikit.utils.logs import report

logger = report.settings(__file__)

MOVEMENT_COLUMNS = ["id", "cliente_id", "fecha", "day", "created_at", "tipo", "monto", "canal"]


@dataclass(frozen=True)
class ChannelCrmRow:
    channel: str
    totals: CrmAggregate


@dataclass(frozen=True)
class CrmBucket:
    label: str
    start: date
    end: date
    totals: CrmAggregate


@dataclass(frozen=True)
class CustomerSummary:
    revenue_gross: float
    refunds: float
    revenue_net: float
    number_of_sales: int
    avg_ticket: float
    first_purchase: Optional[str]
    last_purchase: Optional[str]


@dataclass(frozen=True)
class ChannelReconciliation:
    channel: str
    ledger_revenue: float
    crm_revenue_gross: float
    crm_revenue_net: float
    revenue_gap: float
    ledger_new_customers: float
    crm_new_customers: int
    new_customers_gap: float


def movements_frame(movements: Iterable[CrmMovement]) -> pd.DataFrame:
    """Confirmed, active movements as a frame with a parsed ``day`` column (NaT when unparsable)."""
    records = []
    for m in movements:
        if not (m.is_active and m.is_confirmed):
            continue
        day = parse_iso_date(m.fecha)
        records.append(
            {
                "id": m.id,
                "cliente_id": m.cliente_id,
                "fecha": m.fecha,
                "day": pd.Timestamp(day) if day else pd.NaT,
                "created_at": m.created_at or "",
                "tipo": m.tipo_movimiento.value if m.tipo_movimiento else None,
                "monto": float(m.monto),
                "canal": m.canal_atribucion,
            }
        )
    df = pd.DataFrame.from_records(records, columns=MOVEMENT_COLUMNS)
    df["day"] = pd.to_datetime(df["day"])
    df["monto"] = df["monto"].astype(float)
    return df


def first_sales(sales: pd.DataFrame) -> pd.DataFrame:
    """One row per customer: their earliest sale by ``(day, created_at)``."""
    ordered = sales.sort_values(["day", "created_at"], na_position="last", kind="mergesort")
    return ordered.drop_duplicates("cliente_id", keep="first")


class CrmLedger:
    """Confirmed movements split into sales / refunds, with first sales precomputed."""

    def __init__(self, movements: Iterable[CrmMovement]):
        df = movements_frame(movements)
        self.sales = df[df["tipo"] == MovementType.SALE.value]
        self.refunds = df[df["tipo"] == MovementType.REFUND.value]
        self.first = first_sales(self.sales)
        logger.debug(
            "CRM ledger: %d sales, %d refunds, %d customers",
            len(self.sales), len(self.refunds), len(self.first),
        )

    @staticmethod
    def _scope(df: pd.DataFrame, start: date, end: date, channel: str) -> pd.Series:
        mask = (df["day"] >= pd.Timestamp(start)) & (df["day"] <= pd.Timestamp(end))
        if channel != ALL:
            mask &= df["canal"] == channel
        return mask

    def totals(self, start: date, end: date, channel: str = ALL) -> CrmAggregate:
        sales = self.sales[self._scope(self.sales, start, end, channel)]
        refunds = self.refunds[self._scope(self.refunds, start, end, channel)]
        newcomers = self.first[self._scope(self.first, start, end, channel)]

        gross = float(sales["monto"].sum())
        refunded = float(refunds["monto"].sum())
        count = int(len(sales))
        return CrmAggregate(
            revenue_gross=gross,
            refunds=refunded,
            revenue_net=gross - refunded,
            number_of_sales=count,
            new_customers=int(newcomers["cliente_id"].nunique()),
            avg_ticket=gross / count if count > 0 else 0.0,
        )

    def summary(self, flt: Filter) -> CrmAggregate:
        start, end = month_date_range(flt.year, flt.month)
        return self.totals(start, end, flt.channel)

    def by_channel(self, flt: Filter) -> List[ChannelCrmRow]:
        """Per-channel totals in the filter's date range; every channel when the filter is ``all``."""
        start, end = month_date_range(flt.year, flt.month)
        channels = CHANNELS if flt.all_channels else [flt.channel]
        return [ChannelCrmRow(c, self.totals(start, end, c)) for c in channels]

    def series(self, flt: Filter) -> List[CrmBucket]:
        """Daily buckets for a single month, monthly buckets for a whole year (zero-filled)."""
        buckets: List[CrmBucket] = []
        if flt.all_months:
            for m in range(1, 13):
                start, end = month_date_range(flt.year, m)
                buckets.append(CrmBucket(f"{flt.year}-{m:02d}", start, end, self.totals(start, end, flt.channel)))
            return buckets

        start, end = month_date_range(flt.year, flt.month)
        day = start
        while day <= end:
            buckets.append(CrmBucket(day.isoformat(), day, day, self.totals(day, day, flt.channel)))
            day += timedelta(days=1)
        return buckets


def crm_summary(movements: Iterable[CrmMovement], flt: Filter) -> CrmAggregate:
    return CrmLedger(movements).summary(flt)


def crm_by_channel(movements: Iterable[CrmMovement], flt: Filter) -> List[ChannelCrmRow]:
    return CrmLedger(movements).by_channel(flt)


def crm_series(movements: Iterable[CrmMovement], flt: Filter) -> List[CrmBucket]:
    return CrmLedger(movements).series(flt)


def customer_summary(movements: Iterable[CrmMovement]) -> CustomerSummary:
    """Lifetime figures for one customer's movements (all dates)."""
    df = movements_frame(movements)
    sales = df[df["tipo"] == MovementType.SALE.value]
    refunds = df[df["tipo"] == MovementType.REFUND.value]

    gross = float(sales["monto"].sum())
    refunded = float(refunds["monto"].sum())
    count = int(len(sales))

    dated = sales.dropna(subset=["day"]).sort_values(["day", "created_at"], kind="mergesort")
    first_purchase = str(dated.iloc[0]["fecha"]) if not dated.empty else None
    last_purchase = str(dated.iloc[-1]["fecha"]) if not dated.empty else None

    return CustomerSummary(
        revenue_gross=gross,
        refunds=refunded,
        revenue_net=gross - refunded,
        number_of_sales=count,
        avg_ticket=gross / count if count else 0.0,
        first_purchase=first_purchase,
        last_purchase=last_purchase,
    )


def reconcile_channels(
    entries: Iterable[WeeklyEntry],
    movements: Iterable[CrmMovement],
    flt: Filter,
) -> List[ChannelReconciliation]:
    """Weekly-ledger figures next to CRM figures per channel for the same period.

    Gaps are ``ledger - crm`` (gross revenue for the revenue gap).
    """
    scoped = filter_entries(entries, flt)
    crm_rows = CrmLedger(movements).by_channel(flt)

    out: List[ChannelReconciliation] = []
    for row in crm_rows:
        ledger = aggregate(e for e in scoped if e.channel == row.channel)
        out.append(
            ChannelReconciliation(
                channel=row.channel,
                ledger_revenue=ledger.revenue,
                crm_revenue_gross=row.totals.revenue_gross,
                crm_revenue_net=row.totals.revenue_net,
                revenue_gap=ledger.revenue - row.totals.revenue_gross,
                ledger_new_customers=ledger.new_customers,
                crm_new_customers=row.totals.new_customers,
                new_customers_gap=ledger.new_customers - row.totals.new_customers,
            )
        )
    logger.info("Reconciled %d channel(s) for %s/%s", len(out), flt.year, flt.month)
    return out
