"""Live progress, throughput and ETA reporting for a replication run."""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from tqdm import tqdm

from .config import Config
from .models import CopyResult
from .utils import format_bytes, format_duration

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass
class RunStatistics:
    """Counters for one run. Only the reporter thread mutates an instance."""
    total_files: int = 0
    total_bytes: int = 0
    completed: int = 0
    errors: int = 0
    bytes_copied: int = 0
    files_per_sec: float = 0.0
    bytes_per_sec: float = 0.0
    started_at: float = 0.0
    finished_at: Optional[float] = None
    failures: List[CopyResult] = field(default_factory=list)
    _window_start: float = 0.0
    _window_completed: int = 0
    _window_bytes: int = 0

    def start(self, now: float) -> None:
        self.started_at = now
        self._window_start = now

    def record(self, result: CopyResult) -> None:
        """Account for one finished entry."""
        self.completed += 1
        self.bytes_copied += result.bytes_copied
        if not result.ok:
            self.errors += 1
            self.failures.append(result)

    def roll_window(self, now: float) -> None:
        """Recompute the rate from progress made since the window started."""
        elapsed = now - self._window_start
        if elapsed <= 0:
            return
        self.files_per_sec = (self.completed - self._window_completed) / elapsed
        self.bytes_per_sec = (self.bytes_copied - self._window_bytes) / elapsed
        self._window_start = now
        self._window_completed = self.completed
        self._window_bytes = self.bytes_copied

    @property
    def remaining(self) -> int:
        return self.total_files - self.completed

    @property
    def percent_complete(self) -> float:
        if self.total_files == 0:
            return 100.0
        return 100.0 * self.completed / self.total_files

    def eta_seconds(self) -> Optional[float]:
        """Estimated seconds left at the current rate, None if unknown."""
        if self.remaining == 0:
            return 0.0
        if self.bytes_per_sec > 0 and self.total_bytes > self.bytes_copied:
            return (self.total_bytes - self.bytes_copied) / self.bytes_per_sec
        if self.files_per_sec > 0:
            return self.remaining / self.files_per_sec
        return None

    def elapsed(self, now: Optional[float] = None) -> float:
        end = now if now is not None else (self.finished_at or time.monotonic())
        return max(0.0, end - self.started_at)

    def progress_line(self) -> str:
        eta = self.eta_seconds()
        eta_text = format_duration(eta) if eta is not None else "unknown"
        return (
            f"completed {self.percent_complete:.1f}% (errors {self.errors}) "
            f"{self.completed} / {self.total_files}, "
            f"{self.bytes_copied // MB}MB / {self.total_bytes // MB}MB "
            f"({self.files_per_sec:.1f} files/s, {self.bytes_per_sec / MB:.1f}MB/s, "
            f"ETA {eta_text})"
        )

    def summary(self) -> str:
        return (
            f"done, replicated {self.total_files:,} files "
            f"({self.total_files - self.errors:,} ok, {self.errors:,} errors, "
            f"{format_bytes(self.bytes_copied)}) in {format_duration(self.elapsed())}"
        )


class ProgressReporter(threading.Thread):
    """Aggregates copy results and periodically logs progress.

    Runs until it has consumed exactly ``stats.total_files`` results, so the
    caller can simply ``join()`` it after the workers finish. A result that
    cannot be recorded is logged and still counted.
    """

    def __init__(self, config: Config, stats: RunStatistics, results: "queue.Queue[CopyResult]",
                 clock: Callable[[], float] = time.monotonic):
        super().__init__(name="progress-reporter", daemon=True)
        self.stats = stats
        self.results = results
        self.clock = clock
        self.tick_interval = config.get_tick_interval()
        self.update_interval = config.get_update_interval()
        self.show_progress_bar = config.show_progress_bar()

    def run(self) -> None:
        stats = self.stats
        now = self.clock()
        if not stats.started_at:
            stats.start(now)
        next_tick = now + self.tick_interval
        next_update = now + self.update_interval

        logger.info(f"replicating {stats.total_files:,} files, {stats.total_bytes // MB}MB")

        pbar = None
        if self.show_progress_bar:
            pbar = tqdm(total=stats.total_bytes, desc="Replicating", unit="B",
                        unit_scale=True, unit_divisor=1024)
        received = 0
        try:
            # Counted here rather than from stats so results keep draining
            # even when accounting for one of them fails
            while received < stats.total_files:
                timeout = max(0.0, min(next_tick, next_update) - self.clock())
                try:
                    result = self.results.get(timeout=timeout)
                except queue.Empty:
                    result = None

                if result is not None:
                    received += 1
                    try:
                        self._consume(result, pbar)
                    except Exception:
                        logger.exception(f"Failed to record result for {result.source_path}")

                now = self.clock()
                if now >= next_update:
                    stats.roll_window(now)
                    next_update = now + self.update_interval
                if now >= next_tick:
                    logger.info(stats.progress_line())
                    next_tick = now + self.tick_interval
        finally:
            if pbar is not None:
                pbar.close()

        stats.finished_at = self.clock()
        stats.roll_window(stats.finished_at)

    def _consume(self, result: CopyResult, pbar: Optional[tqdm]) -> None:
        self.stats.record(result)
        if not result.ok:
            logger.error(f"error: {result.error}")
        if pbar is not None:
            pbar.update(result.bytes_copied)
