"""Exceptions raised by the garage services."""
from typing import Iterable, Optional


class GarageError(Exception):
    """Base class for all application errors."""


class ValidationError(GarageError):
    """User-correctable input problems. Carries every violation at once."""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__(", ".join(self.errors))


class PersistenceError(GarageError):
    """A read or write against the database failed."""

    def __init__(self, operation: str, table: str, detail: Optional[str] = None):
        self.operation = operation
        self.table = table
        message = f"Failed to {operation} {table}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class GarageRequiredError(PersistenceError):
    """No garage is selected, so nothing may be read or written."""

    def __init__(self, table: str = "data"):
        super().__init__("access", table, "no garage selected")


class SaveInProgressError(GarageError):
    """A save is already running on this workflow instance."""


class PartialInventoryFailure(GarageError):
    """Stock could not be adjusted for some items after a committed save."""

    def __init__(self, items: Iterable[str]):
        self.items = list(items)
        super().__init__(
            "Failed to update stock for " + ", ".join(self.items)
        )


class PhotoUploadFailure(GarageError):
    """A single photo could not be stored."""

    def __init__(self, path: str, detail: Optional[str] = None):
        self.path = path
        message = f"Failed to upload {path}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
