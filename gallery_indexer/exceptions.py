"""
Custom exception hierarchy for the gallery indexer.

Scan failures on the requested directory are raised as typed errors so a
caller can tell "failed" apart from "empty" and from "not modified".
"""


class GalleryIndexerError(Exception):
    """Base exception for all gallery indexer errors."""
    pass


class ScanError(GalleryIndexerError):
    """Base for failures of a scan request."""

    def __init__(self, message: str, path: str = ''):
        super().__init__(message)
        self.path = path


class DirectoryNotFoundError(ScanError):
    """Raised when the directory to scan does not exist."""
    pass


class NotADirectoryScanError(ScanError):
    """Raised when the path to scan exists but is not a directory."""
    pass


class ScanAbortedError(ScanError):
    """Raised when a scan is cancelled through its cancel event."""
    pass


class ScanIOError(ScanError):
    """Raised when listing or stat of a directory fails."""
    pass


class MetadataExtractionError(GalleryIndexerError):
    """Raised when metadata cannot be extracted from a file."""

    def __init__(self, message: str, path: str = ''):
        super().__init__(message)
        self.path = path


class ConfigError(GalleryIndexerError):
    """Raised when the indexing configuration is invalid."""
    pass


class DatabaseError(GalleryIndexerError):
    """Raised when snapshot store operations fail."""
    pass
