"""Tests for candidate file selection."""

from unittest.mock import patch

import pytest

from photo_replicator.errors import TraversalError
from photo_replicator.selection import FileSelector


class TestMatches:

    def test_jpg_is_default_kind(self, sample_config):
        selector = FileSelector(sample_config)
        assert selector.matches('IMG_0001.JPG')
        assert selector.matches('img_0001.jpeg')
        assert not selector.matches('IMG_0001.CR2')
        assert not selector.matches('notes.txt')

    def test_raw_kind(self, make_config):
        selector = FileSelector(make_config(selection={'kind': 'raw'}))
        assert selector.matches('IMG_0001.CR2')
        assert selector.matches('DSC_0001.nef')
        assert not selector.matches('IMG_0001.JPG')

    def test_both_kind(self, make_config):
        selector = FileSelector(make_config(selection={'kind': 'both'}))
        assert selector.matches('IMG_0001.JPG')
        assert selector.matches('IMG_0001.ARW')

    def test_include_filter(self, make_config):
        selector = FileSelector(make_config(selection={'include': 'IMG_'}))
        assert selector.matches('IMG_0001.JPG')
        assert not selector.matches('DSC_0001.JPG')

    def test_exclude_filter(self, make_config):
        selector = FileSelector(make_config(selection={'exclude': 'edited'}))
        assert selector.matches('IMG_0001.JPG')
        assert not selector.matches('IMG_0001_edited.JPG')

    def test_empty_exclude_keeps_everything(self, make_config):
        selector = FileSelector(make_config(selection={'exclude': ''}))
        assert selector.matches('IMG_0001.JPG')


class TestFindCandidates:

    def test_walks_tree_in_lexical_order(self, sample_config, source_dir, create_photo):
        create_photo('b/IMG_2.JPG')
        create_photo('a/IMG_3.JPG')
        create_photo('IMG_1.jpg')
        create_photo('a/readme.txt')

        found = FileSelector(sample_config).find_candidates(source_dir)

        assert [p.relative_to(source_dir).as_posix() for p in found] == [
            'IMG_1.jpg', 'a/IMG_3.JPG', 'b/IMG_2.JPG',
        ]

    def test_missing_root_raises(self, sample_config, tmp_path):
        with pytest.raises(TraversalError):
            FileSelector(sample_config).find_candidates(tmp_path / 'nope')

    def test_walk_error_raises(self, sample_config, source_dir):
        def _failing_walk(top, onerror=None):
            onerror(PermissionError(13, 'Permission denied', str(top)))
            return iter(())

        with patch('photo_replicator.selection.os.walk', side_effect=_failing_walk):
            with pytest.raises(TraversalError):
                FileSelector(sample_config).find_candidates(source_dir)
