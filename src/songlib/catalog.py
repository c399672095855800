"""
Read side of the catalog: ordered listing, substring search and single-song upserts.

Ordering and matching use one fixed, locale-independent policy so results do not
depend on the host's locale settings:

- text is folded by Unicode NFKD decomposition, dropping combining marks
  (accents), then ``str.casefold()``;
- songs sort by priority, then folded artist, then folded title, and finally by
  id so that ties always come out in the same order;
- search keeps songs whose folded title or artist contains the folded query.
"""

import unicodedata
from datetime import datetime, timezone

from common.logging import Logger, NullLogger
from config import AppEnvironment
from library_config import LibraryOptions, OptionsProvider

from .models import Song, SongRecord, split_song_id
from .paths import resolve_media_path, resolve_root_path
from .store import CatalogStore


def fold(text: str | None) -> str:
    """Case- and accent-insensitive form of ``text`` used for sorting and matching."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def sort_key(song: Song) -> tuple:
    return (song.priority, fold(song.artist), fold(song.title), song.id)


class SongCatalog:
    """
    Serves songs from the catalog with media paths resolved against the current configuration.

    Paths are rebuilt from each song's root name and relative path on every call,
    so moving a root or changing its drive override takes effect without a rescan.
    Songs whose root is no longer configured resolve below the assets folder.

    Args:
        store: The catalog store to read from and write to.
        options_provider: Returns the current library options.
        environment: Resolves relative paths against the application root.
        logger: Optional logger instance.
    """

    def __init__(
        self,
        store: CatalogStore,
        options_provider: OptionsProvider,
        environment: AppEnvironment,
        logger: Logger | None = None,
    ) -> None:
        if store is None:
            raise TypeError("store must not be None")
        if options_provider is None:
            raise TypeError("options_provider must not be None")
        if environment is None:
            raise TypeError("environment must not be None")
        self._store = store
        self._options_provider = options_provider
        self._environment = environment
        self._logger = logger or NullLogger()

    async def get_all(self) -> list[Song]:
        """Returns every song, ordered by priority, artist and title."""
        records = await self._store.get_all()
        options = self._options_provider()
        return sorted((self._to_song(record, options) for record in records), key=sort_key)

    async def search(self, query: str) -> list[Song]:
        """
        Returns the songs whose title or artist contains ``query``.

        Matching ignores case and accents. An empty or whitespace-only query returns
        the full catalog. Results keep the ``get_all`` ordering.

        Args:
            query: Text to look for.

        Returns:
            list[Song]: Matching songs.

        Raises:
            TypeError: If ``query`` is None.
        """
        if query is None:
            raise TypeError("query must not be None")
        songs = await self.get_all()
        if not query.strip():
            return songs
        needle = fold(query.strip())
        return [song for song in songs if needle in fold(song.title) or needle in fold(song.artist)]

    async def upsert(self, song: Song) -> None:
        """
        Writes one song to the catalog.

        The root name and relative path come from splitting ``song.id`` at its first
        ``:``. When the catalog already holds the song, the stored spelling of the
        relative path is kept, since the id carries it lowercased.

        Raises:
            TypeError: If ``song`` is not a Song.
        """
        if not isinstance(song, Song):
            raise TypeError(f"song must be a Song, got {type(song).__name__}")
        root_name, relative_path = split_song_id(song.id)

        existing = await self._store.get(song.id)
        if existing is not None and existing.relative_path.lower() == relative_path.lower():
            relative_path = existing.relative_path

        record = SongRecord(
            id=song.id,
            root_name=root_name,
            relative_path=relative_path,
            title=song.title,
            artist=song.artist,
            channel_configuration=song.channel_configuration,
            priority=song.priority,
            updated_at=datetime.now(timezone.utc),
            language=song.language,
            genre=song.genre,
            comment=song.comment,
            instrumental=song.instrumental,
            loudness_lufs=song.loudness_lufs,
            gain_db=song.gain_db,
        )
        await self._store.upsert(record)
        self._logger.info(f"Catalog entry upserted for {song.id}")

    def resolve_media_path(
        self, root_name: str, relative_path: str, options: LibraryOptions | None = None
    ) -> str:
        """
        Absolute media path for a song, using the current root configuration.

        Args:
            root_name: Root the song belongs to (matched ignoring case).
            relative_path: Slash-separated path below the root.
            options: Options snapshot to use; fetched from the provider when omitted.

        Returns:
            str: The absolute file path.
        """
        options = options or self._options_provider()
        root = options.root_by_name(root_name) if root_name else None
        if root is not None and root.path.strip():
            root_path = resolve_root_path(root.path, root.drive_override, self._environment)
        else:
            root_path = self._environment.assets_root_path
        return resolve_media_path(root_path, relative_path)

    def _to_song(self, record: SongRecord, options: LibraryOptions) -> Song:
        return Song(
            id=record.id,
            title=record.title,
            artist=record.artist,
            media_path=self.resolve_media_path(record.root_name, record.relative_path, options),
            channel_configuration=record.channel_configuration,
            priority=record.priority,
            language=record.language,
            genre=record.genre,
            comment=record.comment,
            instrumental=record.instrumental,
            loudness_lufs=record.loudness_lufs,
            gain_db=record.gain_db,
        )
