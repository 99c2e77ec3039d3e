"""
Photo Replication Tool

Copies photos from a source tree into a destination tree keyed by capture
date, verifying every copy by size and checksum with a bounded worker pool.
"""

__version__ = "1.0.0"
__author__ = "Homelab Team"

from .config import Config
from .errors import ReplicationError
from .manifest import ManifestBuilder, load_manifest, save_manifest
from .models import CopyResult, Manifest, ManifestEntry, SkippedEntry
from .pipeline import ReplicationPipeline
from .replicator import ReplicationEngine
from .reporter import ProgressReporter, RunStatistics
from .selection import FileSelector

__all__ = [
    'Config',
    'ReplicationError',
    'ManifestBuilder',
    'load_manifest',
    'save_manifest',
    'CopyResult',
    'Manifest',
    'ManifestEntry',
    'SkippedEntry',
    'ReplicationPipeline',
    'ReplicationEngine',
    'ProgressReporter',
    'RunStatistics',
    'FileSelector',
]
