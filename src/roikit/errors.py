"""Exception types raised at roikit's boundaries.

Metric, grouping and period functions never raise for bad numbers; only the
import, lifecycle and store seams do.
"""


class RoikitError(Exception):
    """Base class for every roikit error."""


class ImportShapeError(RoikitError, ValueError):
    """The CSV is empty, has no data rows, or carries none of the known headers."""


class LifecycleError(RoikitError, ValueError):
    """A trash/restore/purge transition that is not allowed from the current state."""


class StoreError(RoikitError, RuntimeError):
    """The external row store rejected or failed an operation."""


class ValidationError(RoikitError, ValueError):
    """One or more entries failed validation and may not be persisted.

    ``errors`` maps entry id to its ``{field: message}`` mapping.
    """

    def __init__(self, message: str, errors: dict | None = None):
        super().__init__(message)
        self.errors = errors or {}


class UnknownEntryError(RoikitError, KeyError):
    """No entry in the ledger carries the requested id."""

    def __str__(self) -> str:
        return f"No entry with id {self.args[0]}" if self.args else "No such entry"
