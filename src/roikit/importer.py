"""CSV import: normalise spreadsheet cells and merge them into the ledger.

Imported rows are matched to existing active entries on the natural key
``(year, month, week_of_month, channel)``.  A match keeps the existing id and
takes every other field from the CSV; anything else is appended with a new
id.  The merge is a preview: nothing reaches the store until the ledger
commits :attr:`ImportPreview.changed`.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional

from roikit.constants import CHANNELS, Channel
from roikit.csv_io import ParsedTable, check_headers, parse_csv_text, row_fields
from roikit.errors import ImportShapeError
from roikit.models import Filter, WeeklyEntry, new_id, sort_entries
from roikit.utils.logs import report
from roikit.validation import validate_entry

logger = report.settings(__file__)

_CURRENCY_NOISE = re.compile(r"[$\s,]")
_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


# ---------------------------------------------------------------------------
# Cell normalisers
# ---------------------------------------------------------------------------


def _to_float(raw: object) -> Optional[float]:
    s = _CURRENCY_NOISE.sub("", str(raw if raw is not None else "").strip())
    if not s:
        return None
    try:
        n = float(s)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def normalize_number(raw: object) -> float:
    """``"$1,234.50"`` → ``1234.5``; blank or garbage → ``0``."""
    n = _to_float(raw)
    return 0.0 if n is None else n


def normalize_optional_number(raw: object) -> Optional[float]:
    """Like :func:`normalize_number` but blank or garbage stays blank (``None``)."""
    return _to_float(raw)


def normalize_int(raw: object, fallback: int) -> int:
    """Truncate toward zero; blank or unparsable cells take *fallback*."""
    s = str(raw if raw is not None else "").strip()
    if not s:
        return fallback
    try:
        n = float(s)
    except ValueError:
        return fallback
    if not math.isfinite(n):
        return fallback
    return math.trunc(n)


def normalize_date(raw: object) -> str:
    """Keep the ``YYYY-MM-DD`` prefix when present, otherwise pass the text through."""
    s = str(raw if raw is not None else "").strip()
    if not s:
        return ""
    m = _ISO_DATE_PREFIX.match(s)
    return m.group(0) if m else s


def normalize_channel(raw: object) -> str:
    """Catalogue spelling for *raw* (case-insensitive), else the raw text for validation to flag."""
    s = str(raw if raw is not None else "").strip()
    parsed = Channel.parse(s)
    return parsed.value if parsed is not None else s


# ---------------------------------------------------------------------------
# Rows → entries
# ---------------------------------------------------------------------------


def entry_from_row(row: Dict[str, str], flt: Filter) -> WeeklyEntry:
    """Build a fresh entry from one parsed CSV row, filling gaps from the active filter."""
    cells = row_fields(row)
    default_month = 1 if flt.all_months else int(flt.month)
    default_channel = CHANNELS[0] if flt.all_channels else flt.channel
    channel_cell = cells.get("channel", "").strip() or default_channel

    return WeeklyEntry(
        id=new_id(),
        year=normalize_int(cells.get("year"), flt.year),
        month=normalize_int(cells.get("month"), default_month),
        week_of_month=normalize_int(cells.get("week_of_month"), 1),
        week_start_date=normalize_date(cells.get("week_start_date")),
        week_end_date=normalize_date(cells.get("week_end_date")),
        channel=normalize_channel(channel_cell),
        spend=normalize_number(cells.get("spend")),
        leads=normalize_optional_number(cells.get("leads")),
        new_customers=normalize_number(cells.get("new_customers")),
        number_of_sales=normalize_number(cells.get("number_of_sales")),
        revenue=normalize_number(cells.get("revenue")),
        notes=str(cells.get("notes") or "").strip(),
    )


def entries_from_table(table: ParsedTable, flt: Filter) -> List[WeeklyEntry]:
    if not table.rows:
        raise ImportShapeError("The CSV is empty or has no data rows.")
    check_headers(table.headers)
    return [entry_from_row(row, flt) for row in table.rows]


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


@dataclass
class ImportPreview:
    entries: List[WeeklyEntry]
    changed: List[WeeklyEntry]
    added: int
    updated: int
    errors: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @property
    def message(self) -> str:
        msg = f"CSV loaded. Added: {self.added}. Updated: {self.updated}."
        if self.errors:
            msg += f" {len(self.errors)} row(s) need fixing before saving."
        return msg + " Review the table, then save."


def merge_import(existing: Iterable[WeeklyEntry], imported: Iterable[WeeklyEntry]) -> ImportPreview:
    """Merge *imported* into *existing* by natural key without touching the store.

    Trashed entries are carried through unchanged and never matched.
    """
    merged = list(existing)
    position = {e.id: i for i, e in enumerate(merged)}
    by_key = {e.natural_key: e for e in merged if e.is_active}

    changed: Dict[str, WeeklyEntry] = {}
    added = updated = 0
    for row in imported:
        key = row.natural_key
        match = by_key.get(key)
        if match is not None:
            nxt = replace(row, id=match.id, lifecycle=match.lifecycle)
            merged[position[match.id]] = nxt
            updated += 1
        else:
            nxt = row
            position[nxt.id] = len(merged)
            merged.append(nxt)
            added += 1
        by_key[key] = nxt
        changed[nxt.id] = nxt

    errors = {}
    for entry in changed.values():
        entry_errors = validate_entry(entry)
        if entry_errors:
            errors[entry.id] = entry_errors

    logger.info("Import merge: %d added, %d updated, %d invalid", added, updated, len(errors))
    return ImportPreview(
        entries=sort_entries(merged),
        changed=list(changed.values()),
        added=added,
        updated=updated,
        errors=errors,
    )


def preview_import(text: str, existing: Iterable[WeeklyEntry], flt: Filter) -> ImportPreview:
    """Parse CSV *text* and merge it into *existing*; shape errors abort the whole merge."""
    table = parse_csv_text(text)
    imported = entries_from_table(table, flt)
    return merge_import(existing, imported)
