"""Data carried between the parser chain, the crawler, the catalog store and callers."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Protocol

ID_SEPARATOR = ":"


def make_song_id(root_name: str, relative_path: str) -> str:
    """
    Builds the identity string of a song: ``<root name>:<relative path, lowercased>``.

    Paths differing only by case map to the same id, so re-scanning a file always
    hits the same catalog row.

    Args:
        root_name: Name of the library root the file was found in.
        relative_path: Slash-separated path of the file below that root.

    Returns:
        str: The song id.
    """
    return f"{root_name}{ID_SEPARATOR}{relative_path.lower()}"


def split_song_id(song_id: str) -> tuple[str, str]:
    """
    Splits a song id back into root name and relative path at its first ``:``.

    An id without a separator (or starting with one) has no root name; the whole
    id is then the relative path.

    Args:
        song_id: Id produced by ``make_song_id``.

    Returns:
        tuple[str, str]: The root name and the relative path.
    """
    index = song_id.find(ID_SEPARATOR)
    if index <= 0:
        return "", song_id
    return song_id[:index], song_id[index + 1 :]


@dataclass(frozen=True, slots=True)
class ParsedMetadata:
    """Metadata one parser derived from a file path, before sanitizing."""

    relative_path: str
    title: str
    artist: str
    channel_configuration: str
    priority: int
    language: str | None = None
    genre: str | None = None
    comment: str | None = None


@dataclass(slots=True)
class SongRecord:
    """
    A row of the catalog.

    Attributes:
        id: ``<root_name>:<relative_path lowercased>``
        root_name: Library root the song belongs to
        relative_path: Slash-separated path below the root
        title: Song title
        artist: Performing artist(s), joined with `` + `` or ``, ``
        channel_configuration: Audio channel layout label (e.g. Stereo)
        priority: Sort precedence; lower comes first
        updated_at: UTC time of the last upsert
        language: Optional language tag
        genre: Optional genre tag
        comment: Optional free-text comment
        instrumental: 1 for instrumental tracks, 0 otherwise
        loudness_lufs: Integrated loudness measured by the normalization collaborator
        gain_db: Gain to apply to reach the target loudness
    """

    id: str
    root_name: str
    relative_path: str
    title: str
    artist: str
    channel_configuration: str
    priority: int
    updated_at: datetime
    language: str | None = None
    genre: str | None = None
    comment: str | None = None
    instrumental: int = 0
    loudness_lufs: float | None = None
    gain_db: float | None = None


@dataclass(frozen=True, slots=True)
class Song:
    """A catalog entry as handed to callers, with its media path resolved."""

    id: str
    title: str
    artist: str
    media_path: str
    channel_configuration: str
    priority: int
    language: str | None = None
    genre: str | None = None
    comment: str | None = None
    instrumental: int = 0
    loudness_lufs: float | None = None
    gain_db: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Song":
        """
        Builds a Song from a JSON-like mapping.

        Raises:
            ValueError: If a required field is missing.
        """
        required = ("id", "title", "artist", "channel_configuration", "priority")
        missing = [key for key in required if data.get(key) in (None, "")]
        if missing:
            raise ValueError(f"Missing required field(s): {', '.join(missing)}")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            artist=str(data["artist"]),
            media_path=str(data.get("media_path") or ""),
            channel_configuration=str(data["channel_configuration"]),
            priority=int(data["priority"]),
            language=data.get("language"),
            genre=data.get("genre"),
            comment=data.get("comment"),
            instrumental=int(data.get("instrumental") or 0),
            loudness_lufs=data.get("loudness_lufs"),
            gain_db=data.get("gain_db"),
        )


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Outcome of a scan: files upserted, and files or roots skipped."""

    files_processed: int
    files_skipped: int
    missing_roots: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ScanProgress:
    """Progress notice for one root; ``current_file`` is ``"Completed"`` at the end of a root."""

    root_name: str
    files_scanned: int
    current_file: str


@dataclass(frozen=True, slots=True)
class LoudnessResult:
    loudness_lufs: float
    gain_db: float


class LoudnessAnalyzer(Protocol):
    """
    Measures integrated loudness of a media file.

    Implemented outside this package (e.g. on top of an external decoder); returns
    None when the file cannot be analyzed.
    """

    async def analyze(self, media_path: str) -> LoudnessResult | None: ...
