from .catalog import SongCatalog
from .crawler import LibraryCrawler
from .exceptions import CatalogStoreError, ScanCancelledError, SongLibraryError
from .indexing_status import get_indexing_status
from .library import SongLibrary
from .models import (
    LoudnessAnalyzer,
    LoudnessResult,
    ParsedMetadata,
    ScanProgress,
    ScanResult,
    Song,
    SongRecord,
    make_song_id,
    split_song_id,
)
from .parsers import (
    DirectoryStructureParser,
    HyphenFileNameParser,
    KeywordFileNameParser,
    MediaFileContext,
    MediaPathParser,
    default_parsers,
    normalize_artist,
)
from .sanitize import sanitize
from .store import CatalogStore

__all__ = [
    "CatalogStore",
    "CatalogStoreError",
    "DirectoryStructureParser",
    "HyphenFileNameParser",
    "KeywordFileNameParser",
    "LibraryCrawler",
    "LoudnessAnalyzer",
    "LoudnessResult",
    "MediaFileContext",
    "MediaPathParser",
    "ParsedMetadata",
    "ScanCancelledError",
    "ScanProgress",
    "ScanResult",
    "Song",
    "SongCatalog",
    "SongLibrary",
    "SongLibraryError",
    "SongRecord",
    "default_parsers",
    "get_indexing_status",
    "make_song_id",
    "normalize_artist",
    "sanitize",
    "split_song_id",
]
