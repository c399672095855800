"""Shared fixtures: a temporary application root with library folders and options."""

from pathlib import Path

import pytest

from config import AppEnvironment
from library_config import LibraryOptions, LibraryRoot, StaticOptionsProvider


def touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path


@pytest.fixture
def environment(tmp_path: Path) -> AppEnvironment:
    return AppEnvironment(application_root=tmp_path)


@pytest.fixture
def library_tree(tmp_path: Path) -> Path:
    """Two roots: ``libA`` laid out by folder, ``libB`` by hyphenated file names."""
    touch(tmp_path / "libA" / "Artist One" / "Song One.mp3")
    touch(tmp_path / "libA" / "Artist One" / "Song Two.mp3")
    touch(tmp_path / "libB" / "Artist Two-Song Three.mp3")
    touch(tmp_path / "libB" / "Unparseable.mp3")
    touch(tmp_path / "libB" / "notes.txt")
    return tmp_path


@pytest.fixture
def options(library_tree: Path) -> LibraryOptions:
    return LibraryOptions(
        roots=[
            LibraryRoot(name="LibA", path="libA", default_priority=2),
            LibraryRoot(name="LibB", path="libB", default_priority=1),
        ],
    )


@pytest.fixture
def provider(options: LibraryOptions) -> StaticOptionsProvider:
    return StaticOptionsProvider(options)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "library.db"


@pytest.fixture
def make_file():
    """Creates an empty file (and its folders) and returns its path."""
    return touch
