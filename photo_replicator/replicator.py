"""Concurrent file replication with size and hash verification."""

import logging
import queue
import random
import threading
import time
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional

from .config import Config
from .errors import (
    AlreadyExistsError,
    CleanupError,
    CopyIOError,
    EntryError,
    HashMismatchError,
    InsufficientSpaceError,
    SizeMismatchError,
)
from .hashing import compute_digest
from .models import CopyResult, ManifestEntry
from .reporter import ProgressReporter, RunStatistics
from .utils import format_bytes, get_available_space, set_file_times

logger = logging.getLogger(__name__)

_STOP = object()


class ReplicationEngine:
    """Copies manifest entries to their destinations with a fixed worker pool."""

    def __init__(self, config: Config):
        self.config = config
        self.workers = config.get_workers()
        self.queue_capacity = config.get_queue_capacity()
        self.dry_run = config.is_dry_run()
        self.add_delay = config.should_add_delay()
        self.max_delay_ms = config.get_max_delay_ms()
        self.overwrite = config.should_overwrite()
        self.cleanup_on_error = config.should_cleanup_on_error()
        self.preserve_times = config.should_preserve_times()
        self.hash_algorithm = config.get_hash_algorithm()
        self.chunk_size = config.get_chunk_size()
        self.min_free_space_bytes = config.get_min_free_space_mb() * 1024 * 1024

    def replicate(self, entries: Iterable[ManifestEntry]) -> RunStatistics:
        """Copy every entry and return the run statistics.

        Individual entry failures are counted in the statistics and never
        raised. Only the pre-flight space check can abort the run.
        """
        entries = list(entries)
        stats = RunStatistics(
            total_files=len(entries),
            total_bytes=sum(e.byte_count for e in entries),
        )
        stats.start(time.monotonic())

        if not self.dry_run:
            self._check_space(entries, stats.total_bytes)

        work_queue: "queue.Queue" = queue.Queue(maxsize=self.queue_capacity)
        result_queue: "queue.Queue[CopyResult]" = queue.Queue(maxsize=self.queue_capacity)

        reporter = ProgressReporter(self.config, stats, result_queue)
        reporter.start()

        threads: List[threading.Thread] = []
        for i in range(self.workers):
            thread = threading.Thread(
                target=self._worker, args=(work_queue, result_queue),
                name=f"replicator-{i}", daemon=True,
            )
            thread.start()
            threads.append(thread)

        # Blocks while the queue is full
        for entry in entries:
            work_queue.put(entry)
        for _ in threads:
            work_queue.put(_STOP)

        for thread in threads:
            thread.join()
        reporter.join()

        logger.info(stats.summary())
        return stats

    def _check_space(self, entries: List[ManifestEntry], total_bytes: int) -> None:
        if not entries:
            return
        dest_root = Path(entries[0].dest_path).parent
        available = get_available_space(dest_root)
        needed = total_bytes + self.min_free_space_bytes
        if needed > available:
            raise InsufficientSpaceError(
                f"Insufficient space at {dest_root}: "
                f"need {format_bytes(needed)}, have {format_bytes(available)}"
            )
        logger.info(f"Space check OK: need {format_bytes(needed)}, have {format_bytes(available)}")

    def _worker(self, work_queue: "queue.Queue", result_queue: "queue.Queue[CopyResult]") -> None:
        while True:
            entry = work_queue.get()
            if entry is _STOP:
                break
            result_queue.put(self._execute(entry))

    def _execute(self, entry: ManifestEntry) -> CopyResult:
        """Run one entry, converting any failure into a result."""
        try:
            copied = self.replicate_one(entry)
        except EntryError as e:
            return CopyResult(entry.source_path, 0, e, entry.dest_path)
        except Exception as e:
            logger.exception(f"Unexpected failure replicating {entry.source_path}")
            error = CopyIOError(
                f"failed to copy {entry.source_path} -> {entry.dest_path}: {e}",
                entry.source_path, entry.dest_path,
            )
            return CopyResult(entry.source_path, 0, error, entry.dest_path)
        return CopyResult(entry.source_path, copied, None, entry.dest_path)

    def replicate_one(self, entry: ManifestEntry) -> int:
        """
        Copy and verify a single entry.

        Args:
            entry: Manifest entry to copy

        Returns:
            Number of bytes copied

        Raises:
            AlreadyExistsError: Destination exists and overwrite is off
            CopyIOError: Directory creation, read or write failed
            SizeMismatchError: Copied byte count differs from the manifest
            HashMismatchError: Destination digest differs from the manifest
        """
        src_path = Path(entry.source_path)
        dest_path = Path(entry.dest_path)

        if self.dry_run:
            if self.add_delay:
                time.sleep(random.randint(0, self.max_delay_ms) / 1000.0)
            logger.debug(f"DRY RUN: would copy {src_path} -> {dest_path}")
            return entry.byte_count

        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CopyIOError(f"failed to create dir {dest_path.parent}: {e}",
                              src_path, dest_path) from e

        if dest_path.exists() and not self.overwrite:
            raise AlreadyExistsError(
                f"path exists and overwrite is not set: {dest_path}", src_path, dest_path,
            )

        error: Optional[EntryError] = None
        dest_opened = False
        try:
            with open(src_path, 'rb') as src, open(dest_path, 'w+b') as dst:
                dest_opened = True
                copied = self._copy_stream(src, dst)
                if copied != entry.byte_count:
                    error = SizeMismatchError(
                        f"failed to copy, bytes don't match {src_path} [{entry.byte_count}] "
                        f"-> {dest_path} [{copied}]",
                        src_path, dest_path,
                    )
                else:
                    dst.flush()
                    dest_hash, _ = compute_digest(dst, self.hash_algorithm, self.chunk_size)
                    if dest_hash != entry.content_hash:
                        error = HashMismatchError(
                            f"failed to match hash after copy {src_path} [{entry.content_hash}] "
                            f"-> {dest_path} [{dest_hash}]",
                            src_path, dest_path,
                        )
        except OSError as e:
            # A partial destination would be skipped as existing on the next run
            if dest_opened and self.cleanup_on_error:
                self._remove_corrupt(entry)
            raise CopyIOError(f"failed to copy {src_path} -> {dest_path}: {e}",
                              src_path, dest_path) from e

        if error is not None:
            if self.cleanup_on_error:
                self._remove_corrupt(entry)
            raise error

        if self.preserve_times:
            try:
                set_file_times(dest_path, entry.capture_time)
            except (OSError, OverflowError, ValueError) as e:
                logger.warning(f"Failed to set times on {dest_path}: {e}")

        logger.debug(f"Copied {src_path} -> {dest_path} ({format_bytes(copied)})")
        return copied

    def _copy_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        copied = 0
        while chunk := src.read(self.chunk_size):
            dst.write(chunk)
            copied += len(chunk)
        return copied

    def _remove_corrupt(self, entry: ManifestEntry) -> None:
        """Best-effort removal of a destination left behind by a failed copy."""
        try:
            Path(entry.dest_path).unlink()
            logger.info(f"Removed corrupt copy {entry.dest_path}")
        except OSError as e:
            cleanup_error = CleanupError(
                f"failed to remove {entry.dest_path}: {e}", entry.source_path, entry.dest_path,
            )
            logger.error(str(cleanup_error))
