"""End-to-end run: select candidates, build the manifest, replicate."""

import logging
from pathlib import Path
from typing import Optional

from .config import Config
from .errors import ConfigError
from .manifest import ManifestBuilder, TimestampReader
from .models import Manifest
from .replicator import ReplicationEngine
from .reporter import RunStatistics
from .selection import FileSelector
from .utils import ensure_directory

logger = logging.getLogger(__name__)


class ReplicationPipeline:
    """Wires the selector, manifest builder and engine together from one Config."""

    def __init__(self, config: Config, timestamp_reader: Optional[TimestampReader] = None):
        """
        Args:
            config: Configuration instance
            timestamp_reader: Optional replacement for EXIF capture time extraction

        Raises:
            ConfigError: If the configuration does not validate
        """
        errors = config.validate_config()
        if errors:
            raise ConfigError("; ".join(errors))
        self.config = config
        self.source_dir = Path(config.get_source_dir())
        self.dest_dir = Path(config.get_dest_dir())
        self.selector = FileSelector(config)
        self.builder = ManifestBuilder(config, timestamp_reader)
        self.engine = ReplicationEngine(config)

    def plan(self) -> Manifest:
        """Select candidate files and build the manifest without copying."""
        logger.info(f"replicating src dir: {self.source_dir}")
        candidates = self.selector.find_candidates(self.source_dir)
        return self.builder.build(candidates)

    def run(self, manifest: Optional[Manifest] = None) -> RunStatistics:
        """
        Plan (unless a manifest is given) and replicate.

        Returns:
            Statistics of the replication run
        """
        if not self.config.is_dry_run() and not ensure_directory(self.dest_dir):
            raise ConfigError(f"Cannot create destination directory: {self.dest_dir}")

        if manifest is None:
            manifest = self.plan()

        mode = 'DRY RUN: ' if self.config.is_dry_run() else ''
        logger.info(f"{mode}Starting replication of {len(manifest):,} files to {self.dest_dir}")
        return self.engine.replicate(manifest.entries)
