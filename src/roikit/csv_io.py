"""Twelve-column CSV interchange for weekly entries.

Export always writes the same twelve columns in the same order.  Import reads
cells by header label and accepts the Spanish labels of older exports too.
Imported headers may leave columns out but must keep the export order.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import Dict, Iterable, List

from roikit.errors import ImportShapeError
from roikit.models import WeeklyEntry

# (field key, export label)
CSV_COLUMNS = [
    ("year", "Year"),
    ("month", "Month"),
    ("week_of_month", "Week of month"),
    ("week_start_date", "Week start"),
    ("week_end_date", "Week end"),
    ("channel", "Channel"),
    ("spend", "Spend ($)"),
    ("leads", "Leads"),
    ("new_customers", "New customers"),
    ("number_of_sales", "Number of sales"),
    ("revenue", "Revenue ($)"),
    ("notes", "Notes"),
]

LEGACY_LABELS = {
    "year": "Año",
    "month": "Mes",
    "week_of_month": "Semana del mes",
    "week_start_date": "Fecha inicio semana",
    "week_end_date": "Fecha fin semana",
    "channel": "Canal",
    "spend": "Inversión ($)",
    "leads": "Leads",
    "new_customers": "Clientes nuevos",
    "number_of_sales": "Número de ventas",
    "revenue": "Ingresos ($)",
    "notes": "Notas",
}

LABEL_TO_FIELD: Dict[str, str] = {label: key for key, label in CSV_COLUMNS}
LABEL_TO_FIELD.update({label: key for key, label in LEGACY_LABELS.items()})

COLUMN_POSITION: Dict[str, int] = {key: i for i, (key, _) in enumerate(CSV_COLUMNS)}


@dataclass
class ParsedTable:
    headers: List[str]
    rows: List[Dict[str, str]]


def parse_csv_text(text: str) -> ParsedTable:
    """Split *text* into a header list and label-keyed row dicts.

    Blank lines are skipped, missing trailing cells read as ``""`` and extra
    cells beyond the header are ignored.
    """
    normalized = str(text or "").replace("\r\n", "\n").replace("\r", "\n")
    reader = csv.reader(io.StringIO(normalized))
    lines = [cells for cells in reader if any(c.strip() for c in cells)]
    if not lines:
        return ParsedTable(headers=[], rows=[])

    headers = [h.strip().lstrip("\ufeff") for h in lines[0]]
    rows: List[Dict[str, str]] = []
    for cells in lines[1:]:
        row: Dict[str, str] = {}
        for idx, key in enumerate(headers):
            if not key:
                continue
            row[key] = cells[idx] if idx < len(cells) else ""
        rows.append(row)
    return ParsedTable(headers=headers, rows=rows)


def row_fields(row: Dict[str, str]) -> Dict[str, str]:
    """Re-key a parsed row from header labels to field names; unknown labels drop out."""
    out: Dict[str, str] = {}
    for label, value in row.items():
        key = LABEL_TO_FIELD.get(label)
        if key is not None and key not in out:
            out[key] = value
    return out


def check_headers(headers: Iterable[str]) -> List[str]:
    """Field names for *headers*, which must be export labels in export order.

    Columns may be left out, but an unknown label or a column out of place is
    an :class:`~roikit.errors.ImportShapeError`.
    """
    labels = [h for h in headers if h]
    unknown = [h for h in labels if h not in LABEL_TO_FIELD]
    if unknown:
        raise ImportShapeError("Unknown CSV column(s): " + ", ".join(unknown))
    fields = [LABEL_TO_FIELD[h] for h in labels]
    positions = [COLUMN_POSITION[f] for f in fields]
    if any(b <= a for a, b in zip(positions, positions[1:])):
        raise ImportShapeError(
            "CSV columns are out of order; expected them in this order: "
            + ", ".join(label for _, label in CSV_COLUMNS)
        )
    return fields


def _cell(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def entries_to_csv(entries: Iterable[WeeklyEntry]) -> str:
    """Export active *entries* as CSV text (``\\n`` line endings, minimal quoting)."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow([label for _, label in CSV_COLUMNS])
    for entry in entries:
        if not entry.is_active:
            continue
        writer.writerow([_cell(getattr(entry, key)) for key, _ in CSV_COLUMNS])
    return buf.getvalue().rstrip("\n")
