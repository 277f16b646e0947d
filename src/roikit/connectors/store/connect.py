from __future__ import annotations

from roikit.config import Settings
from roikit.connectors.store.base import RowStore
from roikit.connectors.store.json_file import JsonFileStore
from roikit.connectors.store.rest import RestRowStore


def open_store(settings: Settings) -> RowStore:
    """Build the store selected by ``ROIKIT_STORE`` (``json`` or ``rest``)."""
    if settings.store == "json":
        return JsonFileStore(settings.data_path)
    if settings.store == "rest":
        return RestRowStore(settings)
    raise ValueError(f"Unknown ROIKIT_STORE {settings.store!r} (expected 'json' or 'rest')")
