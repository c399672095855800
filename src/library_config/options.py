"""
Configuration data classes for the song library.

These describe the shape of the data handed to the catalog core: the global
defaults and the list of library roots to scan. The core only ever reads them.
"""

from dataclasses import dataclass, field

DEFAULT_EXTENSIONS = [".mp3", ".wav", ".mp4", ".mkv"]


@dataclass
class LibraryRoot:
    """
    Definition of a single library root.

    Attributes:
        name: Unique name of the root; part of every song id from this root
        path: Absolute path, or a path relative to the application root
        default_priority: Priority for songs from this root (falls back to the global default)
        default_channel: Channel configuration for songs from this root (falls back to the global default)
        drive_override: Replaces the drive designator of ``path`` when resolving it (e.g. ``E:``)
        keyword_format: Dash-delimited field template for this root (e.g. ``artist-song-comment``)
        instrumental: 1 when the root holds instrumental tracks, 0 otherwise
        volume_normalization: Whether loudness analysis runs for songs from this root
    """

    name: str
    path: str
    default_priority: int | None = None
    default_channel: str | None = None
    drive_override: str | None = None
    keyword_format: str | None = None
    instrumental: int = 0
    volume_normalization: bool = False

    def __post_init__(self):
        """Store the path as a plain string."""
        self.path = str(self.path)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "default_priority": self.default_priority,
            "default_channel": self.default_channel,
            "drive_override": self.drive_override,
            "keyword_format": self.keyword_format,
            "instrumental": self.instrumental,
            "volume_normalization": self.volume_normalization,
        }


@dataclass
class LibraryOptions:
    """
    Complete library configuration.

    Attributes:
        default_priority: Priority used when a root does not set one (lower sorts first)
        default_channel: Channel configuration used when a root does not set one
        database_path: Catalog database file, absolute or relative to the application root
        supported_extensions: File extensions (with leading dot) that are scanned
        roots: Library roots to scan
        keyword_format: Global dash-delimited field template, used when a root has none
        decorate_keyword_titles: Fold language, genre and comment into titles parsed by keyword format
    """

    default_priority: int = 2
    default_channel: str = "Stereo"
    database_path: str = "data/library.db"
    supported_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    roots: list[LibraryRoot] = field(default_factory=list)
    keyword_format: str | None = None
    decorate_keyword_titles: bool = False

    def root_by_name(self, name: str) -> LibraryRoot | None:
        """
        Get a root definition by name, ignoring case.

        Args:
            name: Root name to find

        Returns:
            LibraryRoot or None if not configured
        """
        wanted = name.casefold()
        return next((root for root in self.roots if root.name.casefold() == wanted), None)

    def normalized_extensions(self) -> frozenset[str]:
        """Returns the supported extensions lowercased and with a leading dot."""
        extensions = set()
        for ext in self.supported_extensions:
            ext = ext.strip().lower()
            if not ext:
                continue
            extensions.add(ext if ext.startswith(".") else f".{ext}")
        return frozenset(extensions)

    def to_dict(self) -> dict:
        return {
            "default_priority": self.default_priority,
            "default_channel": self.default_channel,
            "database_path": self.database_path,
            "supported_extensions": list(self.supported_extensions),
            "keyword_format": self.keyword_format,
            "decorate_keyword_titles": self.decorate_keyword_titles,
            "roots": [root.to_dict() for root in self.roots],
        }
