"""Row store backed by a single local JSON document.

Layout::

    {"weekly_rows": [{"id": "...", "row": {...}}, ...],
     "movements":   [{"id": "...", "cliente_id": "...", ...}, ...]}
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List

from roikit.connectors.store.base import RowStore, entry_from_payload, entry_payload
from roikit.errors import StoreError
from roikit.models import CrmMovement, WeeklyEntry
from roikit.utils.logs import report

logger = report.settings(__file__)


class JsonFileStore(RowStore):
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.path.exists():
            return {"weekly_rows": [], "movements": []}
        try:
            doc = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Could not read {self.path}: {e}") from e
        doc.setdefault("weekly_rows", [])
        doc.setdefault("movements", [])
        return doc

    def _write(self, doc: Dict[str, Any]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(doc, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise StoreError(f"Could not write {self.path}: {e}") from e

    def _upsert_payloads(self, payloads: List[Dict[str, Any]]) -> None:
        with self._lock:
            doc = self._read()
            index = {row.get("id"): i for i, row in enumerate(doc["weekly_rows"])}
            for payload in payloads:
                i = index.get(payload["id"])
                if i is None:
                    index[payload["id"]] = len(doc["weekly_rows"])
                    doc["weekly_rows"].append(payload)
                else:
                    doc["weekly_rows"][i] = payload
            self._write(doc)

    # ------------------------------------------------------------------
    # RowStore
    # ------------------------------------------------------------------

    def list_entries(self) -> List[WeeklyEntry]:
        with self._lock:
            rows = self._read()["weekly_rows"]
        return [entry_from_payload(r) for r in rows]

    def list_movements(self) -> List[CrmMovement]:
        with self._lock:
            rows = self._read()["movements"]
        return [CrmMovement.from_dict(r) for r in rows]

    def upsert(self, entry: WeeklyEntry) -> None:
        self._upsert_payloads([entry_payload(entry)])
        logger.debug("Upserted entry %s", entry.id)

    def batch_upsert(self, entries: Iterable[WeeklyEntry]) -> None:
        payloads = [entry_payload(e) for e in entries]
        self._upsert_payloads(payloads)
        logger.info("Batch upserted %d entries into %s", len(payloads), self.path)

    def delete(self, entry_id: str) -> None:
        with self._lock:
            doc = self._read()
            doc["weekly_rows"] = [r for r in doc["weekly_rows"] if r.get("id") != entry_id]
            self._write(doc)
        logger.debug("Deleted entry %s", entry_id)

    def insert_movement(self, movement: CrmMovement) -> None:
        with self._lock:
            doc = self._read()
            doc["movements"].append(movement.to_dict())
            self._write(doc)
