"""Tests for root and media path resolution."""

import os
from pathlib import Path

import pytest

from config import AppEnvironment
from songlib.paths import (
    apply_drive_override,
    normalize_relative_path,
    resolve_media_path,
    resolve_root_path,
)


class TestDriveOverride:
    @pytest.mark.parametrize(
        ("path", "override", "expected"),
        [
            ("D:\\Karaoke", "E:", "E:\\Karaoke"),
            ("D:/Karaoke/Pop", "E", "E:/Karaoke/Pop"),
            ("d:\\Karaoke", "F:\\", "F:\\Karaoke"),
        ],
    )
    def test_replaces_drive(self, path: str, override: str, expected: str) -> None:
        assert apply_drive_override(path, override) == expected

    @pytest.mark.parametrize("override", [None, "", "  "])
    def test_without_override_path_is_unchanged(self, override) -> None:
        assert apply_drive_override("D:\\Karaoke", override) == "D:\\Karaoke"

    @pytest.mark.parametrize("path", ["/srv/karaoke", "relative/songs", "\\\\server\\share\\songs"])
    def test_paths_without_drive_are_unchanged(self, path: str) -> None:
        assert apply_drive_override(path, "E:") == path


class TestResolveRootPath:
    def test_relative_path_is_anchored_at_application_root(self, tmp_path: Path) -> None:
        environment = AppEnvironment(application_root=tmp_path)

        assert resolve_root_path("songs/pop", None, environment) == tmp_path / "songs" / "pop"

    def test_absolute_path_is_kept(self, tmp_path: Path) -> None:
        environment = AppEnvironment(application_root=tmp_path / "app")
        library = tmp_path / "library"

        assert resolve_root_path(str(library), None, environment) == library

    def test_empty_path_is_the_application_root(self, tmp_path: Path) -> None:
        environment = AppEnvironment(application_root=tmp_path)

        assert resolve_root_path("", None, environment) == tmp_path


class TestRelativePaths:
    def test_backslashes_become_slashes(self) -> None:
        assert normalize_relative_path("Artist\\Song.mp3") == "Artist/Song.mp3"

    def test_media_path_joins_root_and_relative_path(self, tmp_path: Path) -> None:
        assert resolve_media_path(tmp_path, "Artist/Song.mp3") == os.path.join(
            str(tmp_path), "Artist", "Song.mp3"
        )
