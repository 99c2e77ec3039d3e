"""Exception hierarchy for photo replication."""

from pathlib import Path
from typing import Optional


class ReplicationError(Exception):
    """Base class for all replication errors."""
    pass


class ConfigError(ReplicationError):
    """Required configuration is missing or invalid."""
    pass


class InsufficientSpaceError(ConfigError):
    """Destination does not have room for the planned copy."""
    pass


class TraversalError(ReplicationError):
    """Source tree could not be walked."""
    pass


class MetadataError(ReplicationError):
    """Capture timestamp could not be read from a file."""

    def __init__(self, message: str, source_path: Optional[Path] = None):
        super().__init__(message)
        self.source_path = source_path


class DuplicateDestinationError(ReplicationError):
    """Two different source files map to the same destination path."""
    pass


class EntryError(ReplicationError):
    """Failure of a single manifest entry. Never aborts the run."""

    def __init__(self, message: str, source_path: Optional[Path] = None,
                 dest_path: Optional[Path] = None):
        super().__init__(message)
        self.source_path = source_path
        self.dest_path = dest_path


class AlreadyExistsError(EntryError):
    """Destination exists and overwrite is disabled."""
    pass


class CopyIOError(EntryError):
    """Read or write failed while copying."""
    pass


class SizeMismatchError(EntryError):
    """Bytes copied differ from the size recorded in the manifest."""
    pass


class HashMismatchError(EntryError):
    """Destination content does not hash to the manifest digest."""
    pass


class CleanupError(EntryError):
    """A corrupt destination file could not be removed. Logged only."""
    pass
