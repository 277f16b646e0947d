"""Markdown renderers for the dashboard, comparison, CRM, record and customer views."""

from __future__ import annotations

from typing import Dict, Iterable, List

from roikit.comparison import Comparison
from roikit.constants import ALL, Profitability, month_label, profitability_for
from roikit.crm import ChannelCrmRow, ChannelReconciliation, CrmBucket, CustomerSummary
from roikit.grouping import week_label
from roikit.metrics import compute_row_metrics
from roikit.models import CrmAggregate, CrmMovement, Filter, WeeklyEntry
from roikit.reports.dashboard import Dashboard, KpiCard
from roikit.utils.numbers import format_currency, format_number, format_pct
from roikit.validation import validate_entry


def signed_pct(value: float) -> str:
    return f"{value:+.1f}%"


def format_value(value: float, unit: str) -> str:
    if unit == "currency":
        return format_currency(value)
    if unit == "percent":
        return format_pct(value)
    return format_number(value, 0 if float(value).is_integer() else 2)


def _profitability(value: float, convention: Profitability) -> str:
    if convention is Profitability.ROAS:
        return f"{value:.2f}x ROAS"
    return f"{format_pct(value)} ROI"


def period_title(flt: Filter) -> str:
    when = str(flt.year) if flt.all_months else f"{month_label(flt.month)} {flt.year}"
    channel = "all channels" if flt.channel == ALL else flt.channel
    return f"{when} · {channel}"


def _kpi_table(cards: Iterable[KpiCard], previous_title: str) -> str:
    table = f"| KPI | Value | {previous_title} | Change |\n"
    table += "|---|---:|---:|---:|\n"
    for card in cards:
        table += (
            f"| {card.label} | {format_value(card.value, card.unit)} "
            f"| {format_value(card.previous, card.unit)} | {signed_pct(card.delta_pct)} |\n"
        )
    return table


def render_dashboard(dash: Dashboard) -> str:
    lines: List[str] = [f"# ROI Dashboard – {period_title(dash.filter)}", ""]
    lines.append(f"_{dash.entry_count} weekly entries in view._")
    if dash.invalid_count:
        lines.append(f"⚠️ {dash.invalid_count} entries have validation errors and are not saved.")
    lines.append("")

    lines.append("## KPIs")
    lines.append(_kpi_table(dash.kpis, period_title(dash.previous_filter)))

    lines.append("## Weekly trend")
    if dash.weekly:
        table = "| Week | Spend | Revenue | ROI |\n|---|---:|---:|---:|\n"
        for b in dash.weekly:
            table += f"| {b.label} | {format_currency(b.spend)} | {format_currency(b.revenue)} | {format_pct(b.roi)} |\n"
        lines.append(table)
    else:
        lines.append("No weekly data for this period.\n")

    lines.append("## Channel performance")
    table = "| Channel | Spend | Revenue | New customers | CAC | Profitability |\n"
    table += "|---|---:|---:|---:|---:|---:|\n"
    for r in dash.ranking:
        profit = _profitability(r.profitability, r.convention)
        table += (
            f"| {r.channel} | {format_currency(r.spend)} | {format_currency(r.revenue)} "
            f"| {format_number(r.new_customers)} | {format_currency(r.cac)} | {profit} |\n"
        )
    lines.append(table)

    lines.append("## Spend distribution")
    if dash.spend_shares:
        table = "| Channel | Spend | Share |\n|---|---:|---:|\n"
        for s in dash.spend_shares:
            table += f"| {s.channel} | {format_currency(s.spend)} | {format_pct(s.pct)} |\n"
        lines.append(table)
    else:
        lines.append("No spend recorded.\n")

    if dash.comparison is not None:
        lines.append(render_comparison(dash.comparison, heading="##"))

    if dash.crm is not None:
        lines.append("## CRM")
        lines.append(_crm_totals_table(dash.crm))
        if dash.crm_series:
            lines.append(_crm_series_table(dash.crm_series))
    return "\n".join(lines).rstrip() + "\n"


def render_comparison(cmp: Comparison, heading: str = "#") -> str:
    m1, m2 = month_label(cmp.month1), month_label(cmp.month2)
    out = f"{heading} {m1} vs {m2} {cmp.year}\n\n"
    out += f"| Metric | {m1} | {m2} | Difference | Change |\n"
    out += "|---|---:|---:|---:|---:|\n"
    for row in cmp.rows:
        out += (
            f"| {row.label} | {format_value(row.value1, row.unit)} | {format_value(row.value2, row.unit)} "
            f"| {format_value(row.diff, row.unit)} | {signed_pct(row.pct)} |\n"
        )
    out += f"\n{cmp.narrative}\n"
    return out


def _crm_totals_table(totals: CrmAggregate) -> str:
    rows: Dict[str, str] = {
        "Gross revenue": format_currency(totals.revenue_gross),
        "Refunds": format_currency(totals.refunds),
        "Net revenue": format_currency(totals.revenue_net),
        "Sales": format_number(totals.number_of_sales),
        "New customers": format_number(totals.new_customers),
        "Average ticket": format_currency(totals.avg_ticket),
    }
    table = "| Metric | Value |\n|---|---:|\n"
    for label, value in rows.items():
        table += f"| {label} | {value} |\n"
    return table


def _crm_series_table(buckets: Iterable[CrmBucket]) -> str:
    table = "| Period | Gross | Refunds | Net | Sales | New customers |\n"
    table += "|---|---:|---:|---:|---:|---:|\n"
    for b in buckets:
        t = b.totals
        table += (
            f"| {b.label} | {format_currency(t.revenue_gross)} | {format_currency(t.refunds)} "
            f"| {format_currency(t.revenue_net)} | {t.number_of_sales} | {t.new_customers} |\n"
        )
    return table


def render_crm(flt: Filter, summary: CrmAggregate, channels: Iterable[ChannelCrmRow],
               series: Iterable[CrmBucket]) -> str:
    out = f"# CRM – {period_title(flt)}\n\n"
    out += _crm_totals_table(summary) + "\n"
    out += "## By channel\n"
    out += "| Channel | Gross | Refunds | Net | Sales | New customers | Avg ticket |\n"
    out += "|---|---:|---:|---:|---:|---:|---:|\n"
    for row in channels:
        t = row.totals
        out += (
            f"| {row.channel} | {format_currency(t.revenue_gross)} | {format_currency(t.refunds)} "
            f"| {format_currency(t.revenue_net)} | {t.number_of_sales} | {t.new_customers} "
            f"| {format_currency(t.avg_ticket)} |\n"
        )
    out += "\n## Over time\n"
    out += _crm_series_table(series)
    return out


def render_reconciliation(flt: Filter, rows: Iterable[ChannelReconciliation]) -> str:
    out = f"# Ledger vs CRM – {period_title(flt)}\n\n"
    out += "| Channel | Ledger revenue | CRM gross | CRM net | Revenue gap | Ledger new | CRM new | New gap |\n"
    out += "|---|---:|---:|---:|---:|---:|---:|---:|\n"
    for r in rows:
        out += (
            f"| {r.channel} | {format_currency(r.ledger_revenue)} | {format_currency(r.crm_revenue_gross)} "
            f"| {format_currency(r.crm_revenue_net)} | {format_currency(r.revenue_gap)} "
            f"| {format_number(r.ledger_new_customers)} | {r.crm_new_customers} "
            f"| {format_number(r.new_customers_gap)} |\n"
        )
    return out


def render_validation(errors: Dict[str, Dict[str, str]]) -> str:
    if not errors:
        return "All entries are valid.\n"
    out = f"# {len(errors)} invalid entries\n\n| Entry | Field | Problem |\n|---|---|---|\n"
    for entry_id, fields in errors.items():
        for name, message in fields.items():
            out += f"| {entry_id} | {name} | {message} |\n"
    return out


def render_records(flt: Filter, entries: Iterable[WeeklyEntry]) -> str:
    """One line per weekly entry with its derived metrics and any validation errors."""
    entries = list(entries)
    out = f"# Weekly records – {period_title(flt)}\n\n"
    if not entries:
        return out + "No entries for this period.\n"
    out += "| Id | Week | Channel | Spend | Revenue | Leads | New customers | Sales | Profitability | CAC | Avg ticket | Conversion | Errors |\n"
    out += "|---|---|---|---:|---:|---:|---:|---:|---:|---:|---:|---:|---|\n"
    for e in entries:
        m = compute_row_metrics(e)
        errors = validate_entry(e)
        problems = "; ".join(f"{name}: {message}" for name, message in errors.items()) or "–"
        leads = "–" if e.leads is None else format_number(e.leads)
        out += (
            f"| {e.id} | {e.year} {week_label(e.month, e.week_of_month)} | {e.channel} "
            f"| {format_currency(e.spend)} | {format_currency(e.revenue)} | {leads} "
            f"| {format_number(e.new_customers)} | {format_number(e.number_of_sales)} "
            f"| {_profitability(m.primary_profitability, profitability_for(e.channel))} "
            f"| {format_currency(m.cac)} | {format_currency(m.avg_ticket)} | {format_pct(m.conversion_rate)} "
            f"| {problems} |\n"
        )
    return out


def render_customer(cliente_id: str, summary: CustomerSummary, movements: Iterable[CrmMovement]) -> str:
    out = f"# Customer {cliente_id}\n\n"
    rows: Dict[str, str] = {
        "Gross revenue": format_currency(summary.revenue_gross),
        "Refunds": format_currency(summary.refunds),
        "Net revenue": format_currency(summary.revenue_net),
        "Sales": format_number(summary.number_of_sales),
        "Average ticket": format_currency(summary.avg_ticket),
        "First purchase": summary.first_purchase or "n/a",
        "Last purchase": summary.last_purchase or "n/a",
    }
    out += "| Metric | Value |\n|---|---:|\n"
    for label, value in rows.items():
        out += f"| {label} | {value} |\n"

    out += "\n## Movements\n"
    out += "| Date | Type | Status | Amount | Channel |\n|---|---|---|---:|---|\n"
    for m in movements:
        kind = m.tipo_movimiento.value if m.tipo_movimiento else "?"
        status = m.estado.value if m.estado else "?"
        out += f"| {m.fecha or 'n/a'} | {kind} | {status} | {format_currency(m.monto)} | {m.canal_atribucion or '–'} |\n"
    return out
