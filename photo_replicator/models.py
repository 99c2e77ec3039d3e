"""Data models for manifests and copy results."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

SKIP_EXISTS = 'exists'
SKIP_MISSING_METADATA = 'missing_metadata'
SKIP_DUPLICATE = 'duplicate'


@dataclass(frozen=True)
class ManifestEntry:
    """One planned copy operation."""
    source_path: Path
    dest_path: Path
    content_hash: str
    byte_count: int
    capture_time: datetime


@dataclass(frozen=True)
class SkippedEntry:
    """A candidate the manifest builder deliberately left out."""
    source_path: Path
    reason: str
    dest_path: Optional[Path] = None
    detail: str = ''


@dataclass
class Manifest:
    """Ordered copy tasks plus the candidates that were skipped."""
    entries: List[ManifestEntry] = field(default_factory=list)
    skipped: List[SkippedEntry] = field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(e.byte_count for e in self.entries)

    def skipped_by_reason(self, reason: str) -> List[SkippedEntry]:
        return [s for s in self.skipped if s.reason == reason]

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class CopyResult:
    """Outcome of one worker executing one manifest entry."""
    source_path: Path
    bytes_copied: int
    error: Optional[Exception] = None
    dest_path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.error is None
