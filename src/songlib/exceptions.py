"""
Custom exceptions for the songlib package.
"""

from .models import ScanResult


class SongLibraryError(Exception):
    """Base exception for all songlib errors."""
    pass


class CatalogStoreError(SongLibraryError):
    """Raised when the catalog database cannot be opened, initialized or written."""

    def __init__(self, db_path, reason: str):
        self.db_path = db_path
        self.reason = reason
        super().__init__(f"Catalog store at '{db_path}' is unavailable: {reason}")


class ScanCancelledError(SongLibraryError):
    """
    Raised when a scan stops because its cancel event was set.

    Songs upserted before the cancellation stay in the catalog; ``result`` holds
    the counts reached at that point.
    """

    def __init__(self, result: ScanResult):
        self.result = result
        super().__init__(
            f"Scan cancelled after {result.files_processed} processed "
            f"and {result.files_skipped} skipped file(s)"
        )
