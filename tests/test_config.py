#!/usr/bin/env python3
"""Tests for photo replication configuration using should/when pattern."""

import pytest
import yaml

from photo_replicator.config import Config
from photo_replicator.utils import parse_duration


def test_should_use_defaults_when_no_config_file_found(tmp_path, monkeypatch):
    """Should fall back to built-in defaults when no config file exists."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('HOME', str(tmp_path))

    config = Config()

    assert config.config_path is None
    assert config.get_workers() == 3
    assert config.get_queue_capacity() == 6
    assert config.get_tick_interval() == 1.0
    assert config.get_update_interval() == 1.0
    assert config.should_add_delay() is True
    assert config.get_max_delay_ms() == 2000
    assert config.should_overwrite() is False
    assert config.is_dry_run() is False
    assert config.should_cleanup_on_error() is False
    assert config.should_preserve_times() is True
    assert config.get_hash_algorithm() == 'md5'
    assert config.get_collision_policy() == 'suffix'


def test_should_find_config_in_working_directory(tmp_path, monkeypatch):
    """Should pick up photo_replicator.yml from the current directory."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / 'photo_replicator.yml').write_text(yaml.dump({'replication': {'workers': 7}}))

    config = Config()

    assert config.get_workers() == 7


def test_should_merge_file_over_defaults(sample_config):
    """Should keep defaults for keys the file does not set."""
    assert sample_config.get_workers() == 2
    assert sample_config.get_tick_interval() == pytest.approx(0.05)
    assert 'nef' in sample_config.get('selection.extensions.raw')


def test_should_apply_overrides_over_file(make_config):
    """Should let dotted overrides win and ignore None values."""
    config = make_config({'replication.workers': 5, 'replication.overwrite': None})

    assert config.get_workers() == 5
    assert config.should_overwrite() is False


def test_should_return_default_for_missing_key(sample_config):
    assert sample_config.get('replication.nope', 'fallback') == 'fallback'
    assert sample_config.get('replication.workers.deeper') is None


def test_should_select_extensions_by_kind(make_config):
    assert make_config(selection={'kind': 'jpg'}).get_extensions() == ['jpg', 'jpeg']
    both = make_config(selection={'kind': 'both'}).get_extensions()
    assert 'jpg' in both and 'cr2' in both


def test_should_validate_cleanly_when_paths_exist(sample_config):
    assert sample_config.validate_config() == []


def test_should_report_missing_paths(make_config):
    config = make_config(replication={'source_dir': None, 'dest_dir': None})
    errors = config.validate_config()
    assert any('src required' in e for e in errors)
    assert any('dest required' in e for e in errors)


def test_should_report_invalid_values(make_config, tmp_path):
    config = make_config({
        'replication.source_dir': str(tmp_path / 'missing'),
        'replication.workers': 0,
        'replication.tick_interval': 'soon',
        'replication.update_interval': 0,
        'selection.kind': 'png',
        'replication.collision_policy': 'rename',
    })
    errors = config.validate_config()
    assert len(errors) == 6


def test_should_reject_non_mapping_config_file(tmp_path):
    path = tmp_path / 'bad.yml'
    path.write_text('- just\n- a list\n')
    with pytest.raises(ValueError):
        Config(str(path))


@pytest.mark.parametrize('value,seconds', [
    ('1s', 1.0),
    ('500ms', 0.5),
    ('2m', 120.0),
    ('1h30m', 5400.0),
    ('1.5s', 1.5),
    ('3', 3.0),
    (2, 2.0),
    (0.25, 0.25),
])
def test_should_parse_durations(value, seconds):
    assert parse_duration(value) == pytest.approx(seconds)


@pytest.mark.parametrize('value', ['', 'fast', '1x', 's1', '1s junk', True])
def test_should_reject_bad_durations(value):
    with pytest.raises(ValueError):
        parse_duration(value)
