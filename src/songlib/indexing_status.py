"""
Scan status file shared between a running scan and its observers.

The crawler writes ``indexing_status.json`` while it walks a root and removes it
when the scan ends. Other processes (the web app, a second CLI) only read it, so
a present file with status ``scanning`` means a scan is in progress.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from common.logging import Logger, NullLogger

STATUS_FILE = "indexing_status.json"
SCANNING = "scanning"


def _status_path(data_root: Path | str) -> Path:
    return Path(data_root) / STATUS_FILE


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def set_indexing_status(
    data_root: Path | str, status: str, total: int, current: int, root_name: str | None = None
) -> None:
    """Records how far the current scan has got.

    The first write of a scan stamps ``started_at``; later writes keep it.

    Args:
        data_root: Folder holding the status file; created when missing.
        status: Status label, normally ``scanning``.
        total: Media files found in the root being scanned.
        current: Files of that root handled so far.
        root_name: Name of the root being scanned.
    """
    status_file = _status_path(data_root)
    status_file.parent.mkdir(parents=True, exist_ok=True)
    previous = _read_status(status_file) or {}
    data = {
        "status": status,
        "root": root_name,
        "started_at": previous.get("started_at") or _now(),
        "updated_at": _now(),
        "total": total,
        "current": current,
        "progress": 0.0 if total <= 0 else max(0.0, min(current / total, 1.0)),
    }
    _replace_json(status_file, data)


def _replace_json(status_file: Path, data: dict) -> None:
    """Writes ``data`` next to the status file and swaps it in, so readers never see half a file."""
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=status_file.parent, suffix=".tmp", delete=False
    ) as tmp_file:
        json.dump(data, tmp_file, ensure_ascii=False)
        tmp_file.flush()
        os.fsync(tmp_file.fileno())
    Path(tmp_file.name).replace(status_file)


def _read_status(status_file: Path) -> dict | None:
    try:
        with status_file.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError):
        return None


def clear_indexing_status(data_root: Path | str) -> None:
    """Removes the status file; a missing file is fine."""
    _status_path(data_root).unlink(missing_ok=True)


def get_indexing_status(data_root: Path | str, logger: Logger | None = None) -> dict | None:
    """
    Returns the status of the running scan, or None when there is none.

    An unreadable or corrupt file is logged and treated as no scan.

    Args:
        data_root: Folder holding the status file.
        logger: Optional logger for read errors.

    Returns:
        dict | None: The decoded status file.
    """
    logger = logger or NullLogger()
    status_file = _status_path(data_root)
    try:
        with status_file.open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read scan status {status_file}: {e}")
        return None
