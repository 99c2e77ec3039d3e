"""Configuration management for photo replication."""

import copy
import yaml
from pathlib import Path
from typing import Dict, List, Any, Mapping, Optional
import logging

from .utils import parse_duration

logger = logging.getLogger(__name__)

FILE_KINDS = ('jpg', 'raw', 'both')
COLLISION_POLICIES = ('suffix', 'fail')

DEFAULT_CONFIG: Dict[str, Any] = {
    'replication': {
        'source_dir': None,
        'dest_dir': None,
        'workers': 3,
        'queue_factor': 2,
        'tick_interval': '1s',
        'update_interval': '1s',
        'add_delay': True,
        'max_delay_ms': 2000,
        'overwrite': False,
        'dry_run': False,
        'cleanup_on_error': False,
        'preserve_times': True,
        'skip_missing_metadata': False,
        'collision_policy': 'suffix',
        'hash_algorithm': 'md5',
        'chunk_size': 64 * 1024,
        'min_free_space_mb': 0,
        'show_progress_bar': False,
    },
    'selection': {
        'kind': 'jpg',
        'include': '',
        'exclude': '',
        'extensions': {
            'jpg': ['jpg', 'jpeg'],
            'raw': ['cr2', 'cr3', 'nef', 'arw', 'orf', 'rw2', 'dng',
                    'raf', 'pef', 'srw'],
        },
    },
    'logging': {
        'level': 'INFO',
        'log_dir': None,
    },
}


def _merge(base: Dict[str, Any], update: Mapping[str, Any]) -> None:
    """Recursively merge ``update`` into ``base`` in place."""
    for key, value in update.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


class Config:
    """Manages configuration for photo replication from YAML files and overrides."""

    def __init__(self, config_path: Optional[str] = None,
                 overrides: Optional[Mapping[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config file. If None, searches for config files
                and falls back to built-in defaults.
            overrides: Dotted keys mapped to values that win over the file,
                e.g. ``{'replication.workers': 8}``. None values are ignored.
        """
        self.config_path = config_path or self._find_config_file()
        self.config: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        if self.config_path:
            self._load_config()
        if overrides:
            self.apply_overrides(overrides)

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in standard locations."""
        possible_paths = [
            Path.cwd() / "photo_replicator.yml",
            Path.cwd() / "config.yml",
            Path.home() / ".config" / "photo_replicator" / "config.yml",
        ]

        for config_file in possible_paths:
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return str(config_file.resolve())

        logger.debug("No configuration file found, using defaults")
        return None

    def _load_config(self) -> None:
        """Load configuration from YAML file on top of the defaults."""
        try:
            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
        except Exception as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            raise
        if not isinstance(loaded, Mapping):
            raise ValueError(f"Config file {self.config_path} must contain a mapping")
        _merge(self.config, loaded)
        logger.info(f"Loaded configuration from {self.config_path}")

    def apply_overrides(self, overrides: Mapping[str, Any]) -> None:
        """Set dotted keys, skipping None values (unset CLI options)."""
        for key_path, value in overrides.items():
            if value is None:
                continue
            keys = key_path.split('.')
            node = self.config
            for key in keys[:-1]:
                node = node.setdefault(key, {})
            node[keys[-1]] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path like 'replication.workers'
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def get_source_dir(self) -> Optional[str]:
        return self.get('replication.source_dir')

    def get_dest_dir(self) -> Optional[str]:
        return self.get('replication.dest_dir')

    def get_workers(self) -> int:
        """Get number of copy workers."""
        return int(self.get('replication.workers', 3))

    def get_queue_capacity(self) -> int:
        """Work queue capacity: queue_factor slots per worker."""
        return self.get_workers() * int(self.get('replication.queue_factor', 2))

    def get_tick_interval(self) -> float:
        """Seconds between progress lines."""
        return parse_duration(self.get('replication.tick_interval', '1s'))

    def get_update_interval(self) -> float:
        """Seconds between rate recalculations."""
        return parse_duration(self.get('replication.update_interval', '1s'))

    def should_add_delay(self) -> bool:
        return bool(self.get('replication.add_delay', True))

    def get_max_delay_ms(self) -> int:
        return int(self.get('replication.max_delay_ms', 2000))

    def should_overwrite(self) -> bool:
        return bool(self.get('replication.overwrite', False))

    def is_dry_run(self) -> bool:
        """Check if this is a dry run."""
        return bool(self.get('replication.dry_run', False))

    def should_cleanup_on_error(self) -> bool:
        """Check if corrupt destination files should be removed."""
        return bool(self.get('replication.cleanup_on_error', False))

    def should_preserve_times(self) -> bool:
        """Check if destination atime/mtime should be set to the capture time."""
        return bool(self.get('replication.preserve_times', True))

    def should_skip_missing_metadata(self) -> bool:
        return bool(self.get('replication.skip_missing_metadata', False))

    def get_collision_policy(self) -> str:
        return self.get('replication.collision_policy', 'suffix')

    def get_hash_algorithm(self) -> str:
        return self.get('replication.hash_algorithm', 'md5')

    def get_chunk_size(self) -> int:
        return int(self.get('replication.chunk_size', 64 * 1024))

    def get_min_free_space_mb(self) -> int:
        """Get minimum free space to leave on the destination, in MB."""
        return int(self.get('replication.min_free_space_mb', 0))

    def show_progress_bar(self) -> bool:
        return bool(self.get('replication.show_progress_bar', False))

    def get_file_kind(self) -> str:
        return self.get('selection.kind', 'jpg')

    def get_include(self) -> str:
        return self.get('selection.include') or ''

    def get_exclude(self) -> str:
        return self.get('selection.exclude') or ''

    def get_extensions(self) -> List[str]:
        """Get lower-case extensions (without dots) for the selected file kind."""
        extensions = self.get('selection.extensions', {})
        kind = self.get_file_kind()
        if kind == 'both':
            selected = list(extensions.get('jpg', [])) + list(extensions.get('raw', []))
        else:
            selected = list(extensions.get(kind, []))
        return [ext.lower().lstrip('.') for ext in selected]

    def get_log_level(self) -> str:
        """Get logging level."""
        return self.get('logging.level', 'INFO')

    def get_log_dir(self) -> Optional[str]:
        return self.get('logging.log_dir')

    def validate_config(self) -> List[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of validation error messages
        """
        errors = []

        source_dir = self.get_source_dir()
        if not source_dir:
            errors.append("Source directory not configured (src required)")
        elif not Path(source_dir).is_dir():
            errors.append(f"Source directory does not exist: {source_dir}")

        if not self.get_dest_dir():
            errors.append("Destination directory not configured (dest required)")

        try:
            workers = self.get_workers()
        except (TypeError, ValueError):
            errors.append(f"Invalid workers value: {self.get('replication.workers')}")
        else:
            if workers < 1 or workers > 64:
                errors.append(f"Invalid workers value: {workers} (must be 1-64)")

        for name in ('tick_interval', 'update_interval'):
            raw_value = self.get(f'replication.{name}')
            try:
                if parse_duration(raw_value) <= 0:
                    errors.append(f"{name} must be positive: {raw_value}")
            except ValueError:
                errors.append(f"Invalid {name}: {raw_value}")

        if self.get_file_kind() not in FILE_KINDS:
            errors.append(f"Unknown file kind: {self.get_file_kind()} "
                          f"(expected one of {', '.join(FILE_KINDS)})")

        if self.get_collision_policy() not in COLLISION_POLICIES:
            errors.append(f"Unknown collision policy: {self.get_collision_policy()} "
                          f"(expected one of {', '.join(COLLISION_POLICIES)})")

        return errors

    def __str__(self) -> str:
        """String representation of configuration."""
        return (f"Config(path={self.config_path}, src={self.get_source_dir()}, "
                f"dest={self.get_dest_dir()}, workers={self.get('replication.workers')})")
