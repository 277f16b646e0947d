"""Contract for the external row store.

The store is a keyed collection of weekly entries plus the CRM movement log.
Writes are whole-record upserts keyed by id; there is no field-level patching.
Implementations raise :class:`roikit.errors.StoreError` on any failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List

from roikit.models import CrmMovement, WeeklyEntry


def entry_payload(entry: WeeklyEntry) -> Dict[str, object]:
    """``{"id": …, "row": {…}}`` pair as stored in ``weekly_rows``."""
    return {"id": entry.id, "row": entry.to_dict()}


def entry_from_payload(payload: Dict[str, object]) -> WeeklyEntry:
    row = dict(payload.get("row") or {})
    row["id"] = payload.get("id") or row.get("id")
    return WeeklyEntry.from_dict(row)


class RowStore(ABC):
    @abstractmethod
    def list_entries(self) -> List[WeeklyEntry]:
        ...

    @abstractmethod
    def list_movements(self) -> List[CrmMovement]:
        ...

    @abstractmethod
    def upsert(self, entry: WeeklyEntry) -> None:
        """Insert or replace *entry* by id."""

    @abstractmethod
    def delete(self, entry_id: str) -> None:
        """Hard-delete the entry with *entry_id* (missing ids are not an error)."""

    @abstractmethod
    def batch_upsert(self, entries: Iterable[WeeklyEntry]) -> None:
        """Upsert many entries in a single write."""

    @abstractmethod
    def insert_movement(self, movement: CrmMovement) -> None:
        ...
