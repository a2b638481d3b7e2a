"""
Path resolution tests

Request paths map to <static_dir>/<relative> and
<cache_dir>/<segment>/<relative>, and never escape either root.
"""

import os

import pytest

from static_thumbs.config import MountConfig, MOUNT_PREFIX_SEGMENTS
from static_thumbs.paths import (
    normalize_relative,
    relative_child_path,
    resolve_request,
    strip_prefix,
)


def test_default_strips_root_and_mount_name():
    assert MOUNT_PREFIX_SEGMENTS == 2
    assert strip_prefix("/static/photos/cat.jpg", 2) == "photos/cat.jpg"


def test_strip_one_segment_keeps_full_path():
    assert strip_prefix("/photos/cat.jpg", 1) == "photos/cat.jpg"


def test_strip_more_segments_than_present():
    assert strip_prefix("/static", 2) == ""
    assert relative_child_path("/static", 2) == ""


@pytest.mark.parametrize("raw,expected", [
    ("photos/./cat.jpg", "photos/cat.jpg"),
    ("photos/../cat.jpg", "cat.jpg"),
    ("../../etc/passwd", "etc/passwd"),
    ("a/../../../b", "b"),
    ("..\\..\\windows", "windows"),
    ("", ""),
])
def test_normalize_relative(raw, expected):
    assert normalize_relative(raw) == expected


class TestResolveRequest:

    def test_layout(self, config):
        resolved = resolve_request(config, "/static/photos/cat.jpg", {"width": "100"})
        assert resolved.relative_path == "photos/cat.jpg"
        assert resolved.source_path == config.static_dir / "photos" / "cat.jpg"
        assert resolved.cache_key == "width:100"
        assert resolved.cache_path == config.cache_dir / "width:100" / "photos" / "cat.jpg"

    def test_default_cache_dir(self, static_dir, config):
        assert config.cache_dir == static_dir / ".cache"

    def test_same_params_any_order_same_cache_path(self, config):
        a = resolve_request(config, "/static/cat.jpg", {"width": "100", "height": "50"})
        b = resolve_request(config, "/static/cat.jpg", {"height": "50", "width": "100"})
        assert a.cache_path == b.cache_path

    def test_different_params_different_cache_path(self, config):
        a = resolve_request(config, "/static/cat.jpg", {"width": "100"})
        b = resolve_request(config, "/static/cat.jpg", {"width": "100", "crop": "north"})
        assert a.cache_path != b.cache_path
        assert a.source_path == b.source_path

    def test_distinct_paths_stay_distinct_and_inside_root(self, config):
        paths = [
            "/static/a.jpg",
            "/static/b.jpg",
            "/static/dir/a.jpg",
            "/static/../a2.jpg",
            "/static/../../../etc/passwd",
            "/static/dir/../../../x.jpg",
        ]
        root = str(config.static_dir) + os.sep
        cache_root = str(config.cache_dir) + os.sep
        sources = set()
        for request_path in paths:
            resolved = resolve_request(config, request_path, {"width": "10"})
            assert str(resolved.source_path).startswith(root)
            assert str(resolved.cache_path).startswith(cache_root)
            sources.add(resolved.source_path)
        assert len(sources) == len(paths)

    def test_custom_prefix_segments(self, static_dir):
        config = MountConfig.build(static_dir, mount_prefix_segments=3)
        resolved = resolve_request(config, "/media/img/photos/cat.jpg", {})
        assert resolved.relative_path == "photos/cat.jpg"

    def test_custom_cache_dir(self, static_dir, tmp_path):
        config = MountConfig.build(static_dir, cache_dir=tmp_path / "thumbs")
        resolved = resolve_request(config, "/static/cat.jpg", {"height": "20"})
        assert resolved.cache_path == tmp_path / "thumbs" / "height:20" / "cat.jpg"
