"""Manifest building: capture date, content hash and destination per photo."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterable, Optional

from .config import Config
from .errors import ConfigError, DuplicateDestinationError, MetadataError
from .hashing import compute_digest
from .metadata import read_capture_time
from .models import (
    SKIP_DUPLICATE,
    SKIP_EXISTS,
    SKIP_MISSING_METADATA,
    Manifest,
    ManifestEntry,
    SkippedEntry,
)
from .utils import format_bytes

logger = logging.getLogger(__name__)

DEST_DATE_FORMAT = '%Y/%m'
MANIFEST_TIME_FORMAT = '%Y-%m-%dT%H:%M:%S'
EXISTS_DETAIL = 'destination already exists, content not compared'

TimestampReader = Callable[[BinaryIO], datetime]


def destination_for(dest_root: Path, capture_time: datetime, source_path: Path) -> Path:
    """Derive ``dest_root/YYYY/MM/basename`` for a photo."""
    return Path(dest_root) / capture_time.strftime(DEST_DATE_FORMAT) / Path(source_path).name


class ManifestBuilder:
    """Builds the ordered list of copy tasks for a set of candidate files."""

    def __init__(self, config: Config, timestamp_reader: Optional[TimestampReader] = None):
        """
        Args:
            config: Configuration instance
            timestamp_reader: Callable returning the capture time for an open
                binary handle. Defaults to EXIF extraction.
        """
        self.config = config
        dest_dir = config.get_dest_dir()
        if not dest_dir:
            raise ConfigError("dest required")
        self.dest_root = Path(dest_dir)
        self.overwrite = config.should_overwrite()
        self.skip_missing_metadata = config.should_skip_missing_metadata()
        self.collision_policy = config.get_collision_policy()
        self.hash_algorithm = config.get_hash_algorithm()
        self.chunk_size = config.get_chunk_size()
        self.timestamp_reader = timestamp_reader

    def build(self, paths: Iterable[Path]) -> Manifest:
        """Build a manifest from candidate paths, in the order given.

        Raises MetadataError for a file without a usable capture time unless
        skip_missing_metadata is enabled, and DuplicateDestinationError when
        two different files collide under the 'fail' collision policy.
        """
        manifest = Manifest()
        # dest path -> content hash of the entry already claiming it
        claimed: Dict[Path, str] = {}

        for source_path in paths:
            source_path = Path(source_path)
            logger.debug(f"Extracting {source_path}")
            try:
                capture_time, content_hash, byte_count = self._inspect(source_path)
            except MetadataError as e:
                if not self.skip_missing_metadata:
                    raise
                logger.warning(f"Skipping {source_path}: {e}")
                manifest.skipped.append(SkippedEntry(
                    source_path=source_path, reason=SKIP_MISSING_METADATA, detail=str(e),
                ))
                continue

            dest_path = destination_for(self.dest_root, capture_time, source_path)

            if dest_path in claimed:
                if claimed[dest_path] == content_hash:
                    logger.info(f"Skipping duplicate of an earlier file: {source_path}")
                    manifest.skipped.append(SkippedEntry(
                        source_path=source_path, reason=SKIP_DUPLICATE, dest_path=dest_path,
                    ))
                    continue
                dest_path = self._resolve_collision(source_path, dest_path, content_hash, claimed)

            if dest_path.exists() and not self.overwrite:
                # The existing file may hold different content; it is kept as is
                logger.debug(f"Skip (exists): {dest_path}")
                manifest.skipped.append(SkippedEntry(
                    source_path=source_path, reason=SKIP_EXISTS, dest_path=dest_path,
                    detail=EXISTS_DETAIL,
                ))
                continue

            claimed[dest_path] = content_hash
            manifest.entries.append(ManifestEntry(
                source_path=source_path,
                dest_path=dest_path,
                content_hash=content_hash,
                byte_count=byte_count,
                capture_time=capture_time,
            ))

        missing = len(manifest.skipped_by_reason(SKIP_MISSING_METADATA))
        if missing:
            logger.warning(f"{missing:,} files skipped for missing metadata")
        logger.info(
            f"Manifest built: {len(manifest.entries):,} files to copy "
            f"({format_bytes(manifest.total_bytes)}), {len(manifest.skipped):,} skipped"
        )
        return manifest

    def _inspect(self, source_path: Path):
        """Return (capture_time, content_hash, byte_count) from one open handle."""
        reader = self.timestamp_reader or read_capture_time
        try:
            with open(source_path, 'rb') as f:
                capture_time = reader(f)
                content_hash, byte_count = compute_digest(f, self.hash_algorithm, self.chunk_size)
        except MetadataError as e:
            if e.source_path is None:
                e.source_path = source_path
            raise
        except OSError as e:
            raise MetadataError(f"Failed to open {source_path}: {e}", source_path) from e
        return capture_time, content_hash, byte_count

    def _resolve_collision(self, source_path: Path, dest_path: Path,
                           content_hash: str, claimed: Dict[Path, str]) -> Path:
        """Pick a free destination for a file whose name is already taken."""
        if self.collision_policy == 'fail':
            raise DuplicateDestinationError(
                f"{source_path} maps to {dest_path}, already used by a different file"
            )

        candidate = dest_path.with_name(f"{dest_path.stem}_{content_hash[:8]}{dest_path.suffix}")
        counter = 1
        while candidate in claimed:
            candidate = dest_path.with_name(
                f"{dest_path.stem}_{content_hash[:8]}_{counter}{dest_path.suffix}"
            )
            counter += 1
        logger.warning(f"Destination collision for {source_path}, using {candidate.name}")
        return candidate


def save_manifest(manifest: Manifest, manifest_path: Path) -> Path:
    """Write a manifest as JSON and return its path."""
    manifest_path = Path(manifest_path)
    manifest_data = {
        'files': [
            {
                'source': str(e.source_path),
                'dest': str(e.dest_path),
                'hash': e.content_hash,
                'size': e.byte_count,
                'captured': e.capture_time.strftime(MANIFEST_TIME_FORMAT),
            }
            for e in manifest.entries
        ],
        'skipped': [
            {
                'source': str(s.source_path),
                'dest': str(s.dest_path) if s.dest_path else None,
                'reason': s.reason,
                'detail': s.detail,
            }
            for s in manifest.skipped
        ],
        'metadata': {
            'created': datetime.now().isoformat(),
            'total_files': len(manifest.entries),
            'total_size': manifest.total_bytes,
        },
    }
    manifest_path.parent.mkdir(parents=True, exist_ok=True)
    with open(manifest_path, 'w') as f:
        json.dump(manifest_data, f, indent=2)
    logger.info(f"Manifest written: {manifest_path}")
    return manifest_path


def load_manifest(manifest_path: Path) -> Manifest:
    """Read a manifest written by ``save_manifest``."""
    with open(manifest_path, 'r') as f:
        data: Dict[str, Any] = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a JSON object: {manifest_path}")

    manifest = Manifest()
    for item in data.get('files', []):
        manifest.entries.append(ManifestEntry(
            source_path=Path(item['source']),
            dest_path=Path(item['dest']),
            content_hash=item['hash'],
            byte_count=int(item['size']),
            capture_time=datetime.strptime(item['captured'], MANIFEST_TIME_FORMAT),
        ))
    for item in data.get('skipped', []):
        manifest.skipped.append(SkippedEntry(
            source_path=Path(item['source']),
            reason=item['reason'],
            dest_path=Path(item['dest']) if item.get('dest') else None,
            detail=item.get('detail', ''),
        ))
    return manifest
