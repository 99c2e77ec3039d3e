"""Source tree traversal and candidate file selection."""

import logging
import os
from pathlib import Path
from typing import List

from .config import Config
from .errors import TraversalError

logger = logging.getLogger(__name__)


class FileSelector:
    """Picks candidate photos from a source tree by extension and name filters."""

    def __init__(self, config: Config):
        self.config = config
        self.extensions = set(config.get_extensions())
        self.include = config.get_include()
        self.exclude = config.get_exclude()

    def matches(self, name: str) -> bool:
        """
        Check whether a file name is selected.

        Extensions are compared case-insensitively. An empty include or
        exclude substring disables that filter.
        """
        extension = Path(name).suffix.lower().lstrip('.')
        if extension not in self.extensions:
            return False
        if self.include and self.include not in name:
            return False
        if self.exclude and self.exclude in name:
            return False
        return True

    def find_candidates(self, source_dir: Path) -> List[Path]:
        """
        Walk ``source_dir`` and return selected files in lexical order.

        Raises:
            TraversalError: If the directory is missing or cannot be read
        """
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise TraversalError(f"Source directory does not exist or is not a directory: {source_dir}")

        def _on_error(error: OSError):
            raise TraversalError(f"Failed to walk {source_dir}: {error}") from error

        candidates: List[Path] = []
        for dirpath, dirnames, filenames in os.walk(source_dir, onerror=_on_error):
            dirnames.sort()
            for filename in sorted(filenames):
                if self.matches(filename):
                    candidates.append(Path(dirpath) / filename)

        logger.info(f"Selected {len(candidates):,} files under {source_dir}")
        return candidates
