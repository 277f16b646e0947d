"""``roikit`` command line: dashboards, CRM views and ledger maintenance.

Examples::

    roikit dashboard --year 2025 --month 3
    roikit compare --year 2025 --m1 3 --m2 2
    roikit records --month 3 --channel whatsapp
    roikit customer c-102
    roikit import weekly.csv --year 2025 --commit
    roikit trash 6f1c… && roikit purge 6f1c…
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from roikit.comparison import compare_months, default_months
from roikit.config import DEFAULT_ENV_PATH, Settings, load_settings
from roikit.connectors.store.connect import open_store
from roikit.constants import ALL, Channel
from roikit.crm import CrmLedger, customer_summary, reconcile_channels
from roikit.errors import RoikitError, UnknownEntryError, ValidationError
from roikit.ledger import Ledger
from roikit.models import Filter, sort_entries
from roikit.periods import available_years
from roikit.reports import markdown
from roikit.reports.dashboard import build_dashboard
from roikit.scheduler import WriteScheduler
from roikit.utils.logs import report
from roikit.utils.style import ansi
from roikit.validation import validate_entry

logger = report.settings(__file__)


# ---------------------------------------------------------------------------
# Argument types
# ---------------------------------------------------------------------------


def month_arg(value: str):
    if value.strip().lower() == ALL:
        return ALL
    try:
        month = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"month must be 1-12 or 'all', got {value!r}")
    if not 1 <= month <= 12:
        raise argparse.ArgumentTypeError(f"month must be 1-12 or 'all', got {value!r}")
    return month


def channel_arg(value: str) -> str:
    if value.strip().lower() == ALL:
        return ALL
    channel = Channel.parse(value)
    if channel is None:
        choices = ", ".join(c.value for c in Channel)
        raise argparse.ArgumentTypeError(f"unknown channel {value!r} (choose from: {choices})")
    return channel.value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="roikit", description="Marketing ROI dashboards and CRM reconciliation")
    parser.add_argument("--env", type=Path, default=DEFAULT_ENV_PATH, help="Path to the .env file (default: %(default)s)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    period = argparse.ArgumentParser(add_help=False)
    period.add_argument("--year", type=int, help="Calendar year (default: latest year with data)")
    period.add_argument("--month", type=month_arg, default=ALL, help="Month 1-12 or 'all' (default: all)")
    period.add_argument("--channel", type=channel_arg, default=ALL, help="Channel name or 'all' (default: all)")

    output = argparse.ArgumentParser(add_help=False)
    output.add_argument("--out", "-o", type=Path, help="Write the output to this file instead of stdout")

    sub = parser.add_subparsers(dest="command", metavar="command", required=True)

    sub.add_parser("dashboard", parents=[period, output], help="KPIs, weekly trend and channel tables")

    p = sub.add_parser("compare", parents=[output], help="Compare two months of one year")
    p.add_argument("--year", type=int, help="Calendar year (default: latest year with data)")
    p.add_argument("--m1", type=int, help="First month (default: first month with data)")
    p.add_argument("--m2", type=int, help="Second month (default: second month with data)")

    sub.add_parser("crm", parents=[period, output], help="CRM revenue, refunds and new customers")
    sub.add_parser("reconcile", parents=[period, output], help="Weekly ledger vs CRM per channel")
    sub.add_parser("records", parents=[period, output], help="Weekly entries with their metrics and errors")
    sub.add_parser("validate", parents=[period, output], help="List entries with validation errors")
    sub.add_parser("export", parents=[output], help="Export active entries as CSV")

    p = sub.add_parser("customer", parents=[output], help="Lifetime CRM figures for one customer")
    p.add_argument("cliente_id")

    p = sub.add_parser("import", parents=[period], help="Preview (and optionally save) a CSV import")
    p.add_argument("csv", type=Path, help="CSV file in the export format")
    p.add_argument("--commit", action="store_true", help="Save the changed rows to the store")

    for name, help_text in (
        ("trash", "Move an entry to the trash"),
        ("restore", "Bring an entry back from the trash"),
        ("purge", "Permanently delete a trashed entry"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("entry_id")

    return parser


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def emit(text: str, out: Optional[Path]) -> None:
    if out is None:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text, encoding="utf-8")
    print(f"{ansi.green}✅ Saved to: {out}{ansi.reset}")


def _filter(args: argparse.Namespace) -> Filter:
    return Filter(year=args.year, month=args.month, channel=args.channel)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_command(args: argparse.Namespace, ledger: Ledger) -> int:
    await ledger.load()
    cmd = args.command
    if getattr(args, "year", False) is None:
        args.year = available_years(ledger.entries)[-1]

    if cmd == "dashboard":
        dash = build_dashboard(ledger.entries, _filter(args), ledger.movements)
        emit(markdown.render_dashboard(dash), args.out)
        return 0

    if cmd == "compare":
        months = default_months(ledger.entries, args.year, args.m1, args.m2)
        if months is None:
            print(f"{ansi.yellow}Need at least two months with data in {args.year} to compare.{ansi.reset}")
            return 1
        emit(markdown.render_comparison(compare_months(ledger.entries, args.year, *months)), args.out)
        return 0

    if cmd == "crm":
        flt = _filter(args)
        crm = CrmLedger(ledger.movements)
        emit(markdown.render_crm(flt, crm.summary(flt), crm.by_channel(flt), crm.series(flt)), args.out)
        return 0

    if cmd == "reconcile":
        flt = _filter(args)
        emit(markdown.render_reconciliation(flt, reconcile_channels(ledger.entries, ledger.movements, flt)), args.out)
        return 0

    if cmd == "records":
        flt = _filter(args)
        emit(markdown.render_records(flt, sort_entries(ledger.view(flt))), args.out)
        return 0

    if cmd == "validate":
        errors = {e.id: validate_entry(e) for e in ledger.view(_filter(args))}
        errors = {k: v for k, v in errors.items() if v}
        emit(markdown.render_validation(errors), args.out)
        return 1 if errors else 0

    if cmd == "customer":
        movements = [m for m in ledger.movements if m.cliente_id == args.cliente_id and m.is_active]
        if not movements:
            print(f"{ansi.yellow}No movements for customer {args.cliente_id}.{ansi.reset}")
            return 1
        movements.sort(key=lambda m: (m.fecha, m.created_at))
        emit(markdown.render_customer(args.cliente_id, customer_summary(movements), movements), args.out)
        return 0

    if cmd == "export":
        emit(ledger.export_csv(), args.out)
        return 0

    if cmd == "import":
        text = args.csv.read_text(encoding="utf-8-sig")
        preview = ledger.preview_import(text, _filter(args))
        print(f"{ansi.cyan}{preview.message}{ansi.reset}")
        if preview.errors:
            print(markdown.render_validation(preview.errors))
        if not args.commit:
            return 0
        saved = await ledger.commit_import()
        print(f"{ansi.green}✅ Saved {len(saved)} row(s).{ansi.reset}")
        return 0

    if cmd == "trash":
        await ledger.trash(args.entry_id)
        print(f"Entry {ansi.yellow}{args.entry_id}{ansi.reset} moved to the trash.")
        return 0

    if cmd == "restore":
        await ledger.restore(args.entry_id)
        print(f"Entry {ansi.green}{args.entry_id}{ansi.reset} restored.")
        return 0

    if cmd == "purge":
        await ledger.purge(args.entry_id)
        print(f"Entry {ansi.red}{args.entry_id}{ansi.reset} permanently deleted.")
        return 0

    raise ValueError(f"Unknown command {cmd!r}")


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    store = open_store(settings)
    scheduler = WriteScheduler(store, delay=settings.save_debounce_sec)
    ledger = Ledger(store, scheduler)
    try:
        return await run_command(args, ledger)
    finally:
        await scheduler.flush()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(args.env)
    report.set_level("DEBUG" if args.verbose else settings.log_level)

    if settings.store == "rest" and not (settings.rest_url and settings.rest_key):
        raise SystemExit("ROIKIT_STORE=rest needs ROIKIT_REST_URL and ROIKIT_REST_KEY")

    try:
        return asyncio.run(_run(args, settings))
    except ValidationError as e:
        print(f"{ansi.red}{e}{ansi.reset}")
        return 1
    except UnknownEntryError as e:
        print(f"{ansi.red}{e}{ansi.reset}")
        return 1
    except (RoikitError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"{ansi.red}Error:{ansi.reset} {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
