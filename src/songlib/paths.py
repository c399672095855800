"""Path helpers shared by the crawler and the query service."""

import ntpath
import os
from pathlib import Path

from config import AppEnvironment


def normalize_relative_path(relative_path: str) -> str:
    """Converts platform separators to ``/`` so ids do not depend on the host OS."""
    normalized = relative_path.replace(os.sep, "/")
    if os.altsep:
        normalized = normalized.replace(os.altsep, "/")
    return normalized.replace("\\", "/")


def apply_drive_override(path: str, drive_override: str | None) -> str:
    """
    Replaces the drive designator of ``path`` with ``drive_override``.

    Only paths that carry a drive (``D:\\Karaoke``, ``D:/Karaoke``) are affected; the
    override may be given as ``E`` or ``E:``. Other paths are returned unchanged.

    Args:
        path: Configured root path.
        drive_override: Replacement drive, or None.

    Returns:
        str: The path with its drive replaced.
    """
    if not drive_override or not drive_override.strip():
        return path
    drive, rest = ntpath.splitdrive(path)
    if len(drive) != 2 or drive[1] != ":":
        return path
    letter = drive_override.strip().rstrip(":\\/")
    if not letter:
        return path
    return f"{letter}:{rest}"


def resolve_root_path(
    path: str | None, drive_override: str | None, environment: AppEnvironment
) -> Path:
    """
    Resolves a configured root path to an absolute directory.

    The drive override is applied first; a path that is still relative is then
    anchored at the application root.

    Args:
        path: Configured root path (absolute or relative).
        drive_override: Optional replacement drive.
        environment: Application-root resolver.

    Returns:
        Path: The absolute root directory.
    """
    effective = apply_drive_override(path or "", drive_override)
    return environment.resolve(effective)


def resolve_media_path(root_path: Path | str, relative_path: str) -> str:
    """Joins a root directory and a slash-separated relative path into an absolute file path."""
    native = relative_path.replace("/", os.sep)
    return os.path.normpath(os.path.join(os.fspath(root_path), native))
