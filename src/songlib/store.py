"""
SQLite-backed catalog of songs.

Every operation opens its own short-lived connection and closes it before
returning. Only the one-time schema step is serialized; ordinary reads and
upserts rely on SQLite's own locking (WAL mode), so each upsert by id is atomic
and nothing stronger is promised.
"""

import asyncio
import sqlite3
from contextlib import asynccontextmanager, closing
from datetime import datetime
from pathlib import Path
from threading import Lock

import aiosqlite

from common.logging import Logger, NullLogger

from .exceptions import CatalogStoreError
from .models import SongRecord

SCHEMA_VERSION = 2
BUSY_TIMEOUT_MS = 30000

_BASE_SCHEMA = """
    CREATE TABLE IF NOT EXISTS songs (
        id TEXT PRIMARY KEY,
        root_name TEXT NOT NULL,
        relative_path TEXT NOT NULL,
        title TEXT NOT NULL,
        artist TEXT NOT NULL,
        channel_configuration TEXT NOT NULL,
        priority INTEGER NOT NULL,
        updated_at TEXT NOT NULL
    )
"""

# Columns added after the first release. Catalogs created by older versions get
# them through ALTER TABLE; existing rows take the default.
_EVOLVED_COLUMNS = (
    ("language", "TEXT NULL"),
    ("genre", "TEXT NULL"),
    ("comment", "TEXT NULL"),
    ("instrumental", "INTEGER NOT NULL DEFAULT 0"),
    ("loudness_lufs", "REAL NULL"),
    ("gain_db", "REAL NULL"),
)

_COLUMNS = (
    "id",
    "root_name",
    "relative_path",
    "title",
    "artist",
    "channel_configuration",
    "priority",
    "updated_at",
    "language",
    "genre",
    "comment",
    "instrumental",
    "loudness_lufs",
    "gain_db",
)

_UPSERT_SQL = (
    f"INSERT INTO songs ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in _COLUMNS)}) "
    "ON CONFLICT(id) DO UPDATE SET "
    + ", ".join(f"{column} = excluded.{column}" for column in _COLUMNS[1:])
)

_SELECT_SQL = f"SELECT {', '.join(_COLUMNS)} FROM songs"

_schema_locks: dict[str, Lock] = {}
_schema_locks_guard = Lock()


def _schema_lock_for(db_path: Path) -> Lock:
    """One lock per database file, shared by every store instance pointing at it."""
    key = str(db_path.resolve())
    with _schema_locks_guard:
        return _schema_locks.setdefault(key, Lock())


class CatalogStore:
    """
    Persists SongRecords in a single SQLite file, keyed by song id.

    Args:
        db_path: Location of the catalog database file.
        logger: Optional logger for informational and error messages.
    """

    def __init__(self, db_path: Path | str, logger: Logger | None = None) -> None:
        if db_path is None or not str(db_path).strip():
            raise ValueError("db_path must not be empty")
        self.db_path = Path(db_path)
        self._logger = logger or NullLogger()
        self._schema_lock = _schema_lock_for(self.db_path)
        self._initialized = False

    # === Schema ===

    async def initialize(self) -> None:
        """Creates the songs table if needed and adds columns missing from older catalogs.

        Safe to call from concurrent callers; the schema step runs under a lock
        shared by all stores on the same file.

        Raises:
            CatalogStoreError: If the database cannot be created or opened.
        """
        await asyncio.to_thread(self._create_schema)
        self._initialized = True

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    def _create_schema(self) -> None:
        with self._schema_lock:
            self._logger.info(f"Using library catalog at {self.db_path}")
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                with closing(
                    sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_MS / 1000)
                ) as conn:
                    conn.execute("PRAGMA journal_mode=WAL;")
                    conn.execute(_BASE_SCHEMA)
                    self._add_missing_columns(conn)
                    conn.execute(
                        "CREATE INDEX IF NOT EXISTS idx_songs_root ON songs(root_name)"
                    )
                    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
                    conn.commit()
            except (sqlite3.Error, OSError) as e:
                raise CatalogStoreError(self.db_path, str(e)) from e

    def _add_missing_columns(self, conn: sqlite3.Connection) -> None:
        existing = {row[1] for row in conn.execute("PRAGMA table_info(songs)")}
        for name, declaration in _EVOLVED_COLUMNS:
            if name in existing:
                continue
            try:
                conn.execute(f"ALTER TABLE songs ADD COLUMN {name} {declaration}")
            except sqlite3.OperationalError as e:
                # Another process evolved the same file in the meantime
                if "duplicate column" not in str(e).lower():
                    raise
                continue
            self._logger.info(f"Added column '{name}' to catalog at {self.db_path}")

    @asynccontextmanager
    async def _connect(self):
        """Opens a connection for one operation and turns SQLite failures into CatalogStoreError."""
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                await db.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
                yield db
        except sqlite3.Error as e:
            raise CatalogStoreError(self.db_path, str(e)) from e

    # === Writes ===

    async def upsert(self, record: SongRecord) -> None:
        """Inserts the record, or overwrites every field of the row with the same id.

        Args:
            record: The song to store.

        Raises:
            TypeError: If ``record`` is not a SongRecord.
            CatalogStoreError: If the catalog cannot be written.
        """
        if not isinstance(record, SongRecord):
            raise TypeError(f"record must be a SongRecord, got {type(record).__name__}")
        await self._ensure_initialized()
        async with self._connect() as db:
            await db.execute(_UPSERT_SQL, _to_row(record))
            await db.commit()

    async def update_normalization(
        self, song_id: str, loudness_lufs: float | None, gain_db: float | None
    ) -> bool:
        """Stores loudness analysis results for one song.

        Returns:
            bool: True if a song with that id exists.
        """
        if not song_id:
            raise ValueError("song_id must not be empty")
        await self._ensure_initialized()
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE songs SET loudness_lufs = ?, gain_db = ? WHERE id = ?",
                (loudness_lufs, gain_db, song_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_all(self) -> int:
        """Removes every song. Returns the number of deleted rows."""
        await self._ensure_initialized()
        async with self._connect() as db:
            cursor = await db.execute("DELETE FROM songs")
            await db.commit()
            return cursor.rowcount

    async def delete_by_root(self, root_name: str) -> int:
        """Removes the songs of one library root. Returns the number of deleted rows."""
        if not isinstance(root_name, str) or not root_name.strip():
            raise ValueError("root_name must be a non-empty string")
        await self._ensure_initialized()
        async with self._connect() as db:
            cursor = await db.execute("DELETE FROM songs WHERE root_name = ?", (root_name,))
            await db.commit()
            return cursor.rowcount

    # === Reads ===

    async def get_all(self) -> list[SongRecord]:
        await self._ensure_initialized()
        async with self._connect() as db:
            async with db.execute(_SELECT_SQL) as cursor:
                return [_from_row(row) async for row in cursor]

    async def get(self, song_id: str) -> SongRecord | None:
        await self._ensure_initialized()
        async with self._connect() as db:
            async with db.execute(f"{_SELECT_SQL} WHERE id = ?", (song_id,)) as cursor:
                row = await cursor.fetchone()
        return _from_row(row) if row is not None else None

    async def count(self) -> int:
        await self._ensure_initialized()
        async with self._connect() as db:
            async with db.execute("SELECT COUNT(*) FROM songs") as cursor:
                row = await cursor.fetchone()
        return row[0]


def _to_row(record: SongRecord) -> tuple:
    return (
        record.id,
        record.root_name,
        record.relative_path,
        record.title,
        record.artist,
        record.channel_configuration,
        record.priority,
        record.updated_at.isoformat(),
        record.language,
        record.genre,
        record.comment,
        record.instrumental,
        record.loudness_lufs,
        record.gain_db,
    )


def _from_row(row: aiosqlite.Row) -> SongRecord:
    return SongRecord(
        id=row["id"],
        root_name=row["root_name"],
        relative_path=row["relative_path"],
        title=row["title"],
        artist=row["artist"],
        channel_configuration=row["channel_configuration"],
        priority=row["priority"],
        updated_at=datetime.fromisoformat(row["updated_at"]),
        language=row["language"],
        genre=row["genre"],
        comment=row["comment"],
        instrumental=row["instrumental"],
        loudness_lufs=row["loudness_lufs"],
        gain_db=row["gain_db"],
    )
