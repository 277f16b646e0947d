"""Debounced, per-record persistence of weekly entries.

Each entry id owns at most one pending write.  Scheduling the same id again
cancels the pending write and starts a fresh quiescence window, so only the
latest version of a record is upserted.  Writes to different ids never
cancel each other.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Optional, Tuple

from roikit.connectors.store.base import RowStore
from roikit.errors import StoreError
from roikit.models import WeeklyEntry
from roikit.utils.logs import report

logger = report.settings(__file__)

ErrorCallback = Callable[[WeeklyEntry, StoreError], None]


class WriteScheduler:
    def __init__(self, store: RowStore, delay: float = 0.25, on_error: Optional[ErrorCallback] = None):
        self.store = store
        self.delay = delay
        self.on_error = on_error
        self._pending: Dict[str, Tuple[WeeklyEntry, asyncio.Task]] = {}

    @property
    def pending_ids(self) -> List[str]:
        return list(self._pending)

    def schedule(self, entry: WeeklyEntry) -> asyncio.Task:
        """Queue *entry* for upsert after the quiescence window.  Needs a running loop."""
        self.cancel(entry.id)
        task = asyncio.get_running_loop().create_task(self._write_later(entry))
        self._pending[entry.id] = (entry, task)
        return task

    def cancel(self, entry_id: str) -> bool:
        """Drop the pending write for *entry_id*; returns whether one existed."""
        pending = self._pending.pop(entry_id, None)
        if pending is None:
            return False
        pending[1].cancel()
        return True

    async def flush(self) -> None:
        """Write every pending entry now instead of waiting out its window."""
        pending = list(self._pending.values())
        self._pending.clear()
        for _, task in pending:
            task.cancel()
        for entry, _ in pending:
            await self._write(entry)

    async def _write_later(self, entry: WeeklyEntry) -> None:
        await asyncio.sleep(self.delay)
        current = self._pending.get(entry.id)
        if current is not None and current[1] is asyncio.current_task():
            del self._pending[entry.id]
        await self._write(entry)

    async def _write(self, entry: WeeklyEntry) -> None:
        try:
            await asyncio.to_thread(self.store.upsert, entry)
        except StoreError as e:
            logger.error("Saving entry %s failed: %s", entry.id, e)
            if self.on_error is not None:
                self.on_error(entry, e)
            return
        logger.debug("Saved entry %s", entry.id)
