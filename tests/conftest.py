"""Shared fixtures for photo replication tests."""

from datetime import datetime
from pathlib import Path

import pytest
import yaml

CAPTURE_TIME = datetime(2021, 7, 28, 11, 49, 3)


@pytest.fixture
def source_dir(tmp_path):
    path = tmp_path / 'source'
    path.mkdir()
    return path


@pytest.fixture
def dest_dir(tmp_path):
    path = tmp_path / 'dest'
    path.mkdir()
    return path


@pytest.fixture
def make_config(tmp_path, source_dir, dest_dir):
    """Factory fixture: write a YAML config for the temp trees and load it.

    Keyword overrides use dotted keys, e.g. ``{'replication.workers': 1}``.
    """

    def _make(overrides=None, **sections):
        config_data = {
            'replication': {
                'source_dir': str(source_dir),
                'dest_dir': str(dest_dir),
                'workers': 2,
                'tick_interval': '50ms',
                'update_interval': '50ms',
                'add_delay': False,
            },
            'selection': {'kind': 'jpg'},
        }
        for section, values in sections.items():
            config_data.setdefault(section, {}).update(values)

        config_path = tmp_path / 'config.yml'
        with open(config_path, 'w') as f:
            yaml.dump(config_data, f)

        from photo_replicator.config import Config
        return Config(str(config_path), overrides=overrides)

    return _make


@pytest.fixture
def sample_config(make_config):
    return make_config()


@pytest.fixture
def create_photo(source_dir):
    """Factory fixture: create a file under the source tree with given content."""

    def _create(relative_path, content=b'jpeg-bytes'):
        full_path = source_dir / relative_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(content)
        return full_path

    return _create


@pytest.fixture
def fixed_reader():
    """Timestamp reader that returns CAPTURE_TIME for every file."""

    def _read(handle):
        return CAPTURE_TIME

    return _read


@pytest.fixture
def make_entry(dest_dir):
    """Factory fixture: build a ManifestEntry for a source file on disk."""
    from photo_replicator.hashing import hash_file
    from photo_replicator.models import ManifestEntry

    def _make(source_path, dest_path=None, content_hash=None, byte_count=None,
              capture_time=CAPTURE_TIME):
        source_path = Path(source_path)
        actual_hash, actual_size = hash_file(source_path)
        return ManifestEntry(
            source_path=source_path,
            dest_path=Path(dest_path) if dest_path else
            dest_dir / capture_time.strftime('%Y/%m') / source_path.name,
            content_hash=content_hash if content_hash is not None else actual_hash,
            byte_count=byte_count if byte_count is not None else actual_size,
            capture_time=capture_time,
        )

    return _make
