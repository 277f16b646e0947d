"""In-memory weekly ledger bound to a row store.

Edits are applied locally first.  Valid edits are handed to the
:class:`~roikit.scheduler.WriteScheduler`; invalid ones stay local until they
are fixed.  Trash, restore and purge are commands: the local state changes
immediately and is rolled back if the store refuses the write.  A CSV import
is shown in the ledger as soon as it is previewed; committing it writes the
current version of every imported row still in the ledger.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from roikit import importer
from roikit.connectors.store.base import RowStore
from roikit.constants import CHANNELS
from roikit.csv_io import entries_to_csv
from roikit.errors import RoikitError, StoreError, UnknownEntryError, ValidationError
from roikit.importer import ImportPreview
from roikit import models
from roikit.models import CrmMovement, Filter, WeeklyEntry, WeeklyEntryPatch, apply_patch, new_id, sort_entries
from roikit.periods import filter_entries
from roikit.scheduler import WriteScheduler
from roikit.utils.logs import report
from roikit.validation import validate_entry

logger = report.settings(__file__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class Ledger:
    def __init__(
        self,
        store: RowStore,
        scheduler: Optional[WriteScheduler] = None,
        clock: Callable[[], str] = utc_now_iso,
    ):
        self.store = store
        self.scheduler = scheduler
        self.clock = clock
        self.entries: List[WeeklyEntry] = []
        self.movements: List[CrmMovement] = []
        self.errors: Dict[str, Dict[str, str]] = {}
        self.pending_import: Optional[ImportPreview] = None

    async def load(self) -> "Ledger":
        entries = await asyncio.to_thread(self.store.list_entries)
        movements = await asyncio.to_thread(self.store.list_movements)
        self.entries = sort_entries(entries)
        self.movements = list(movements)
        self.errors = {}
        logger.info("Loaded %d entries and %d movements", len(self.entries), len(self.movements))
        return self

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, entry_id: str) -> WeeklyEntry:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        raise UnknownEntryError(entry_id)

    def _index(self, entry_id: str) -> int:
        for i, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return i
        raise UnknownEntryError(entry_id)

    def active(self) -> List[WeeklyEntry]:
        return [e for e in self.entries if e.is_active]

    def trashed(self) -> List[WeeklyEntry]:
        return [e for e in self.entries if not e.is_active]

    def view(self, flt: Filter) -> List[WeeklyEntry]:
        return filter_entries(self.entries, flt)

    # ------------------------------------------------------------------
    # Manual edits
    # ------------------------------------------------------------------

    def _save_if_valid(self, entry: WeeklyEntry) -> Dict[str, str]:
        errors = validate_entry(entry)
        if errors:
            self.errors[entry.id] = errors
            logger.debug("Entry %s not saved: %s", entry.id, ", ".join(errors))
            return errors
        self.errors.pop(entry.id, None)
        if self.scheduler is not None:
            self.scheduler.schedule(entry)
        return errors

    def add_entry(self, flt: Filter) -> WeeklyEntry:
        """Append a blank entry pre-filled from the active filter."""
        entry = WeeklyEntry(
            id=new_id(),
            year=flt.year,
            month=1 if flt.all_months else int(flt.month),
            week_of_month=1,
            channel=CHANNELS[0] if flt.all_channels else flt.channel,
        )
        self.entries.append(entry)
        self._save_if_valid(entry)
        return entry

    def update_entry(self, entry_id: str, patch: WeeklyEntryPatch) -> Dict[str, str]:
        """Apply *patch* locally and schedule the save when the result validates."""
        updated = apply_patch(self.get(entry_id), patch)
        self.entries[self._index(entry_id)] = updated
        return self._save_if_valid(updated)

    # ------------------------------------------------------------------
    # Lifecycle commands
    # ------------------------------------------------------------------

    def _rollback(self, before: WeeklyEntry, after: WeeklyEntry) -> None:
        # the list may have shifted while the write was in flight: locate by id
        try:
            index = self._index(before.id)
        except UnknownEntryError:
            logger.warning("Entry %s disappeared before its rollback", before.id)
            return
        if self.entries[index] is after:
            self.entries[index] = before
        else:
            logger.warning("Entry %s changed during a failed write; keeping the newer version", before.id)

    async def _persist_or_rollback(self, before: WeeklyEntry, after: WeeklyEntry, action: str) -> None:
        try:
            await asyncio.to_thread(self.store.upsert, after)
        except StoreError:
            logger.error("%s of entry %s failed; rolling back", action, before.id)
            self._rollback(before, after)
            raise

    async def trash(self, entry_id: str) -> WeeklyEntry:
        index = self._index(entry_id)
        before = self.entries[index]
        after = models.trash(before, self.clock())
        if self.scheduler is not None:
            self.scheduler.cancel(entry_id)
        self.entries[index] = after
        await self._persist_or_rollback(before, after, "Trash")
        logger.info("Moved entry %s to the trash", entry_id)
        return after

    async def restore(self, entry_id: str) -> WeeklyEntry:
        index = self._index(entry_id)
        before = self.entries[index]
        after = models.restore(before)
        self.entries[index] = after
        await self._persist_or_rollback(before, after, "Restore")
        logger.info("Restored entry %s", entry_id)
        return after

    def _reinsert(self, entry: WeeklyEntry, neighbours: Tuple[Optional[str], Optional[str]], index: int) -> None:
        """Put a purged *entry* back between the ids that surrounded it, wherever they are now."""
        if any(e.id == entry.id for e in self.entries):
            return
        previous_id, next_id = neighbours
        positions = {e.id: i for i, e in enumerate(self.entries)}
        if previous_id in positions:
            self.entries.insert(positions[previous_id] + 1, entry)
        elif next_id in positions:
            self.entries.insert(positions[next_id], entry)
        else:
            self.entries.insert(min(index, len(self.entries)), entry)

    async def purge(self, entry_id: str) -> None:
        index = self._index(entry_id)
        entry = self.entries[index]
        models.ensure_purgeable(entry)
        if self.scheduler is not None:
            self.scheduler.cancel(entry_id)
        neighbours = (
            self.entries[index - 1].id if index > 0 else None,
            self.entries[index + 1].id if index + 1 < len(self.entries) else None,
        )
        del self.entries[index]
        try:
            await asyncio.to_thread(self.store.delete, entry_id)
        except StoreError:
            logger.error("Purge of entry %s failed; rolling back", entry_id)
            self._reinsert(entry, neighbours, index)
            raise
        self.errors.pop(entry_id, None)
        logger.info("Purged entry %s", entry_id)

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    def preview_import(self, text: str, flt: Filter) -> ImportPreview:
        """Merge CSV *text* into the ledger for display; nothing is saved until :meth:`commit_import`."""
        preview = importer.preview_import(text, self.entries, flt)
        self.entries = list(preview.entries)
        for entry in preview.changed:
            self.errors.pop(entry.id, None)
        self.errors.update(preview.errors)
        self.pending_import = preview
        return preview

    def discard_import(self) -> None:
        """Forget the pending commit; merged rows stay on screen but unsaved."""
        self.pending_import = None

    def _import_rows(self, preview: ImportPreview) -> List[WeeklyEntry]:
        """Current versions of the imported ids, minus rows trashed or purged since the preview."""
        current = {e.id: e for e in self.entries}
        rows = []
        for entry in preview.changed:
            latest = current.get(entry.id)
            if latest is None or not latest.is_active:
                logger.info("Skipping imported entry %s: removed since the preview", entry.id)
                continue
            rows.append(latest)
        return rows

    async def commit_import(self) -> List[WeeklyEntry]:
        """Persist the pending import's rows in one batch write and return what was written."""
        preview = self.pending_import
        if preview is None:
            raise RoikitError("There is no imported CSV to save.")
        rows = self._import_rows(preview)
        errors = {e.id: err for e in rows if (err := validate_entry(e))}
        if errors:
            self.errors.update(errors)
            raise ValidationError(
                f"{len(errors)} imported row(s) have errors; fix them before saving.",
                errors,
            )
        if self.scheduler is not None:
            for entry in rows:
                self.scheduler.cancel(entry.id)
        try:
            await asyncio.to_thread(self.store.batch_upsert, rows)
        except StoreError:
            logger.error("Import commit of %d row(s) failed", len(rows))
            raise
        self.pending_import = None
        logger.info("Committed import: %d row(s) (%d added, %d updated at preview)",
                    len(rows), preview.added, preview.updated)
        return rows

    def export_csv(self) -> str:
        return entries_to_csv(sort_entries(self.entries))

    # ------------------------------------------------------------------
    # CRM
    # ------------------------------------------------------------------

    async def record_movement(self, movement: CrmMovement) -> CrmMovement:
        await asyncio.to_thread(self.store.insert_movement, movement)
        self.movements.append(movement)
        logger.info("Recorded %s movement %s for customer %s",
                    movement.tipo_movimiento.value if movement.tipo_movimiento else "unknown",
                    movement.id, movement.cliente_id)
        return movement
