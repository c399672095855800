import asyncio
from collections.abc import Iterable, Sequence
from pathlib import Path

from common.logging import Logger, NullLogger
from config import AppEnvironment
from library_config import OptionsProvider

from .catalog import SongCatalog
from .crawler import LibraryCrawler, ProgressCallback
from .indexing_status import SCANNING, get_indexing_status
from .models import LoudnessAnalyzer, ScanResult, Song
from .parsers import MediaPathParser
from .store import CatalogStore


class SongLibrary:
    """Ties the catalog store, the crawler and the query service together for one application.

    The catalog location comes from the ``database_path`` option at construction time;
    everything else (roots, defaults, extensions) is re-read from the options provider
    on every scan and query.
    """

    def __init__(
        self,
        options_provider: OptionsProvider,
        environment: AppEnvironment,
        logger: Logger | None = None,
        parsers: Sequence[MediaPathParser] | None = None,
        loudness_analyzer: LoudnessAnalyzer | None = None,
        status_root: Path | str | None = None,
    ) -> None:
        """Initializes the library from the current options snapshot.

        Args:
            options_provider: Returns the current library options.
            environment: Application-root resolver for relative paths.
            logger: Optional logger for informational and error messages.
            parsers: Parser chain in trial order; the default chain when omitted.
            loudness_analyzer: Optional loudness collaborator used while scanning.
            status_root: Directory of the scan status file; defaults to the catalog's folder.
        """
        self._logger = logger or NullLogger()
        self.environment = environment
        options = options_provider()
        self.db_path = environment.resolve(options.database_path)
        self.status_root = Path(status_root) if status_root is not None else self.db_path.parent

        self.store = CatalogStore(self.db_path, logger=self._logger)
        self.crawler = LibraryCrawler(
            self.store,
            options_provider,
            environment,
            parsers=parsers,
            loudness_analyzer=loudness_analyzer,
            logger=self._logger,
            status_root=self.status_root,
        )
        self.catalog = SongCatalog(self.store, options_provider, environment, logger=self._logger)

    async def scan(
        self,
        *,
        cancel_event: asyncio.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> ScanResult:
        """Rebuilds the whole catalog from every configured root."""
        return await self.crawler.scan(cancel_event=cancel_event, progress=progress)

    async def scan_roots(
        self,
        root_names: Iterable[str],
        *,
        cancel_event: asyncio.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> ScanResult:
        """Rebuilds the songs of the named roots only."""
        return await self.crawler.scan_roots(
            root_names, cancel_event=cancel_event, progress=progress
        )

    async def get_all(self) -> list[Song]:
        return await self.catalog.get_all()

    async def search(self, query: str) -> list[Song]:
        return await self.catalog.search(query)

    async def upsert(self, song: Song) -> None:
        await self.catalog.upsert(song)

    async def count(self) -> int:
        return await self.store.count()

    def scan_status(self) -> dict | None:
        """Contents of the scan status file, or None when no scan is running."""
        return get_indexing_status(self.status_root, logger=self._logger)

    def is_scanning(self) -> bool:
        status = self.scan_status()
        return bool(status and status.get("status") == SCANNING)
