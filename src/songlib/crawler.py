"""
Crawler that scans the configured library roots into the catalog.

A full scan empties the catalog and repopulates it from every root. A scoped scan
only replaces the songs of the named roots. Missing roots and files no parser
recognizes are counted and skipped; store failures stop the scan and reach the
caller.
"""

import asyncio
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path

from common.logging import Logger, NullLogger
from config import AppEnvironment
from library_config import LibraryOptions, LibraryRoot, OptionsProvider

from .exceptions import ScanCancelledError
from .indexing_status import SCANNING, clear_indexing_status, set_indexing_status
from .models import (
    LoudnessAnalyzer,
    ParsedMetadata,
    ScanProgress,
    ScanResult,
    SongRecord,
    make_song_id,
)
from .parsers import (
    MediaFileContext,
    MediaPathParser,
    default_parsers,
    parse_with_chain,
    parser_names,
)
from .paths import resolve_media_path, resolve_root_path
from .sanitize import sanitize, sanitize_optional
from .store import CatalogStore

PROGRESS_INTERVAL = 10
STATUS_INTERVAL = 100
COMPLETED = "Completed"

ProgressCallback = Callable[[ScanProgress], None]


def enumerate_media_files(root_path: Path, extensions: frozenset[str]) -> list[Path]:
    """
    Lists the files below ``root_path`` whose extension is supported, in sorted order.

    Args:
        root_path: Directory to walk recursively.
        extensions: Lowercase extensions including the leading dot.

    Returns:
        list[Path]: Matching files.
    """
    return sorted(
        p for p in root_path.rglob("*") if p.is_file() and p.suffix.lower() in extensions
    )


def _is_storable(file_path: Path, root_path: Path) -> bool:
    """False for paths holding undecodable bytes (surrogate escapes), which SQLite text cannot take."""
    try:
        str(file_path.relative_to(root_path)).encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class _ScanTally:
    """Counters for one scan."""

    def __init__(self) -> None:
        self.processed = 0
        self.skipped = 0
        self.missing_roots: list[str] = []

    def result(self) -> ScanResult:
        return ScanResult(self.processed, self.skipped, tuple(self.missing_roots))


class LibraryCrawler:
    """
    Walks library roots, parses file paths into song metadata and upserts the songs.

    Args:
        store: Catalog the songs are written to.
        options_provider: Returns the current library options; called once per scan.
        environment: Resolves relative root paths against the application root.
        parsers: Parser chain in trial order; defaults to ``default_parsers()``.
        loudness_analyzer: Optional collaborator for roots with volume normalization.
        logger: Optional logger instance.
        status_root: Directory for the JSON scan status file; None disables it.
    """

    def __init__(
        self,
        store: CatalogStore,
        options_provider: OptionsProvider,
        environment: AppEnvironment,
        parsers: Sequence[MediaPathParser] | None = None,
        loudness_analyzer: LoudnessAnalyzer | None = None,
        logger: Logger | None = None,
        status_root: Path | str | None = None,
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
        self._parsers = list(parsers) if parsers is not None else default_parsers()
        self._loudness_analyzer = loudness_analyzer
        self._logger = logger or NullLogger()
        self._status_root = Path(status_root) if status_root is not None else None

    async def scan(
        self,
        root_names: Iterable[str] | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> ScanResult:
        """Scans all roots, or only ``root_names`` when given.

        A full scan deletes the whole catalog first; a scoped scan deletes only the
        songs of the named roots, including names that are no longer configured.

        Args:
            root_names: Names of the roots to rescan, or None for every root.
            cancel_event: When set, the scan stops before the next root or file.
            progress: Called with a ScanProgress on the first and every tenth
                file of a root, and once when a root is done.

        Returns:
            ScanResult: Files processed and skipped (missing roots count as skipped).

        Raises:
            TypeError: If ``root_names`` is a single string.
            ScanCancelledError: If ``cancel_event`` was set; carries the partial counts.
            CatalogStoreError: If the catalog cannot be initialized or written.
        """
        selected = self._select_names(root_names)
        options = self._options_provider()
        tally = _ScanTally()

        await self._store.initialize()
        if selected is None:
            deleted = await self._store.delete_all()
            self._logger.info(f"Full scan: cleared {deleted} song(s) from the catalog")
            roots = list(options.roots)
        else:
            configured = self._resolve_names(selected, options)
            for name in sorted(configured):
                deleted = await self._store.delete_by_root(name)
                self._logger.info(f"Scoped scan: cleared {deleted} song(s) of root '{name}'")
            roots = [root for root in options.roots if root.name in configured]

        self._logger.info(
            f"Scanning {len(roots)} root(s) with parsers {parser_names(self._parsers)}"
        )
        try:
            for root in roots:
                self._raise_if_cancelled(cancel_event, tally)
                await self._scan_root(root, options, tally, cancel_event, progress)
        finally:
            if self._status_root is not None:
                await asyncio.to_thread(clear_indexing_status, self._status_root)

        result = tally.result()
        self._logger.info(
            f"Scan finished: {result.files_processed} processed, "
            f"{result.files_skipped} skipped"
        )
        return result

    async def scan_roots(
        self,
        root_names: Iterable[str],
        *,
        cancel_event: asyncio.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> ScanResult:
        """Rescans only the named roots; the rest of the catalog is left untouched."""
        if root_names is None:
            raise TypeError("root_names must not be None")
        return await self.scan(root_names, cancel_event=cancel_event, progress=progress)

    @staticmethod
    def _select_names(root_names: Iterable[str] | None) -> set[str] | None:
        if root_names is None:
            return None
        if isinstance(root_names, str):
            raise TypeError("root_names must be an iterable of names, not a single string")
        names = set(root_names)
        if any(not isinstance(name, str) or not name.strip() for name in names):
            raise ValueError("root names must be non-empty strings")
        return names

    def _resolve_names(self, names: set[str], options: LibraryOptions) -> set[str]:
        """Maps requested names onto the configured spelling; root names ignore case.

        Names matching no configured root are kept as given so the songs of a
        removed root can still be cleared.
        """
        resolved = set()
        for name in names:
            root = options.root_by_name(name.strip())
            if root is None:
                self._logger.warning(f"Scoped scan: no configured root named '{name}'")
                resolved.add(name.strip())
            else:
                resolved.add(root.name)
        return resolved

    def _raise_if_cancelled(self, cancel_event: asyncio.Event | None, tally: _ScanTally) -> None:
        if cancel_event is not None and cancel_event.is_set():
            result = tally.result()
            self._logger.warning(
                f"Scan cancelled after {result.files_processed} processed file(s)"
            )
            raise ScanCancelledError(result)

    async def _scan_root(
        self,
        root: LibraryRoot,
        options: LibraryOptions,
        tally: _ScanTally,
        cancel_event: asyncio.Event | None,
        progress: ProgressCallback | None,
    ) -> None:
        root_path = resolve_root_path(root.path, root.drive_override, self._environment)
        if not await asyncio.to_thread(root_path.is_dir):
            self._logger.warning(f"Library root '{root.name}' not found on disk ({root_path})")
            tally.skipped += 1
            tally.missing_roots.append(root.name)
            return

        files = await asyncio.to_thread(
            enumerate_media_files, root_path, options.normalized_extensions()
        )
        self._logger.info(f"Root '{root.name}': {len(files)} media file(s) in {root_path}")

        scanned = 0
        for index, file_path in enumerate(files, start=1):
            self._raise_if_cancelled(cancel_event, tally)
            await self._update_status(root.name, len(files), index - 1)

            if not _is_storable(file_path, root_path):
                tally.skipped += 1
                self._logger.warning(
                    f"Skipped media file with a non UTF-8 name in root '{root.name}': "
                    f"{file_path!r}"
                )
                continue

            context = MediaFileContext(root.name, root_path, root, options, file_path)
            metadata = self._parse(context)
            if metadata is None:
                tally.skipped += 1
                self._logger.info(f"Skipped media file '{file_path}' in root '{root.name}'")
                continue

            record = await self._build_record(root, root_path, metadata)
            await self._store.upsert(record)
            tally.processed += 1
            scanned += 1

            if progress is not None and (scanned == 1 or scanned % PROGRESS_INTERVAL == 0):
                progress(ScanProgress(root.name, scanned, file_path.name))
                # Give other tasks (UI, progress consumers) a chance to run
                await asyncio.sleep(0)

        if progress is not None and scanned > 0:
            progress(ScanProgress(root.name, scanned, COMPLETED))

    def _parse(self, context: MediaFileContext) -> ParsedMetadata | None:
        try:
            return parse_with_chain(self._parsers, context)
        except Exception as e:
            self._logger.error(f"Parser failed on '{context.file_path}': {e}", exc_info=True)
            return None

    async def _build_record(
        self, root: LibraryRoot, root_path: Path, metadata: ParsedMetadata
    ) -> SongRecord:
        media_path = resolve_media_path(root_path, metadata.relative_path)
        record = SongRecord(
            id=make_song_id(root.name, metadata.relative_path),
            root_name=root.name,
            relative_path=metadata.relative_path,
            title=sanitize(metadata.title),
            artist=sanitize(metadata.artist),
            channel_configuration=metadata.channel_configuration,
            priority=metadata.priority,
            updated_at=datetime.now(timezone.utc),
            language=sanitize_optional(metadata.language),
            genre=sanitize_optional(metadata.genre),
            comment=sanitize_optional(metadata.comment),
            instrumental=root.instrumental,
        )
        if root.volume_normalization and self._loudness_analyzer is not None:
            loudness = await self._loudness_analyzer.analyze(media_path)
            if loudness is None:
                self._logger.warning(f"Loudness analysis failed for {media_path}")
            else:
                record.loudness_lufs = loudness.loudness_lufs
                record.gain_db = loudness.gain_db
        return record

    async def _update_status(self, root_name: str, total: int, current: int) -> None:
        if self._status_root is None:
            return
        if current == 0 or current % STATUS_INTERVAL == 0:
            await asyncio.to_thread(
                set_indexing_status, self._status_root, SCANNING, total, current, root_name
            )
