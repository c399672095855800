"""
Parser chain that derives song metadata from a file's path below its library root.

Each parser looks at one naming convention and either returns ``ParsedMetadata``
or ``None`` when the path does not follow that convention. Parsers hold no state
and never raise for odd input; the crawler tries them in order and keeps the
first match.

Conventions:
    DirectoryStructureParser   <root>/<artist>/<title>.ext
    HyphenFileNameParser       <root>/<artist> - <title>.ext
    KeywordFileNameParser      <root>/<field>-<field>-....ext, fields named by a template
                               such as ``artist-song-comment``
"""

import os
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from library_config import LibraryOptions, LibraryRoot

from .models import ParsedMetadata
from .paths import normalize_relative_path

# Stands in for a literal "VS" so it is treated like any other separator below
_VS_PLACEHOLDER = "\x1f"
_SEPARATOR_RUN_RE = re.compile(r"[\s_\-^+\x1f]*[_\-^+\x1f][\s_\-^+\x1f]*")
_WHITESPACE_RE = re.compile(r"\s+")
_EDGE_RE = re.compile(r"^[\s+]+|[\s+]+$")
_PLUS_SPACING_RE = re.compile(r"\s*\+\s*")

KEYWORD_SONG = "SONG"
KEYWORD_ARTIST = "ARTIST"
KEYWORD_COMMENT = "COMMENT"
KEYWORD_LANGUAGE = "LANGUAGE"
KEYWORD_GENRE = "GENRE"


@dataclass(frozen=True, slots=True)
class MediaFileContext:
    """
    Everything a parser may look at for one file.

    Attributes:
        root_name: Name of the library root being scanned
        root_path: Resolved absolute directory of that root
        root: Configuration of the root (per-root overrides)
        options: Global library options
        file_path: Absolute path of the media file
    """

    root_name: str
    root_path: Path
    root: LibraryRoot
    options: LibraryOptions
    file_path: Path


class MediaPathParser(Protocol):
    def try_parse(self, context: MediaFileContext) -> ParsedMetadata | None: ...


def normalize_artist(artist: str) -> str:
    """
    Normalizes the separators between multiple artists to `` + ``.

    ``VS``, ``_``, ``-``, ``^`` and ``+`` (with any surrounding whitespace) count as
    separators; plain spaces between words do not. ``Artist1_Artist2``,
    ``Artist1 VS Artist2`` and ``Artist1-Artist2`` all become ``Artist1 + Artist2``.
    Applying it twice gives the same result as applying it once.

    Args:
        artist: Raw artist token from a folder or file name.

    Returns:
        str: The normalized artist string.
    """
    text = artist.replace("VS", _VS_PLACEHOLDER)
    text = _SEPARATOR_RUN_RE.sub(" + ", text)
    text = _WHITESPACE_RE.sub(" ", text)
    text = _EDGE_RE.sub("", text)
    return _PLUS_SPACING_RE.sub(" + ", text)


def _relative_path(context: MediaFileContext) -> str | None:
    """Slash-separated path of the file below its root, or None if it is not below it."""
    try:
        relative = os.path.relpath(context.file_path, context.root_path)
    except ValueError:
        # Different drives on Windows
        return None
    relative = normalize_relative_path(relative)
    if relative in ("", ".", "..") or relative.startswith("../"):
        return None
    return relative


def _stem(file_name: str) -> str:
    return os.path.splitext(file_name)[0]


def _defaults(context: MediaFileContext) -> tuple[int, str]:
    """Priority and channel for the file: the root's override, else the global default."""
    root, options = context.root, context.options
    priority = root.default_priority if root.default_priority is not None else options.default_priority
    channel = root.default_channel if root.default_channel is not None else options.default_channel
    return priority, channel


class DirectoryStructureParser:
    """Reads ``<artist>/<title>.ext``: the parent folder names the artist, the file stem the title."""

    def try_parse(self, context: MediaFileContext) -> ParsedMetadata | None:
        relative_path = _relative_path(context)
        if relative_path is None:
            return None

        segments = [segment for segment in relative_path.split("/") if segment]
        if len(segments) < 2:
            return None

        raw_artist = segments[-2]
        title = _stem(segments[-1]).strip()
        if not raw_artist.strip() or not title:
            return None

        artist = normalize_artist(raw_artist)
        if not artist:
            return None

        priority, channel = _defaults(context)
        return ParsedMetadata(
            relative_path=relative_path,
            title=title,
            artist=artist,
            channel_configuration=channel,
            priority=priority,
        )


class HyphenFileNameParser:
    """Reads ``<artist> - <title>.ext``, splitting the file stem on its first hyphen."""

    def try_parse(self, context: MediaFileContext) -> ParsedMetadata | None:
        relative_path = _relative_path(context)
        if relative_path is None:
            return None

        stem = _stem(context.file_path.name)
        if not stem.strip():
            return None

        index = stem.find("-")
        if index <= 0 or index >= len(stem) - 1:
            return None

        raw_artist = stem[:index].strip()
        title = stem[index + 1 :].strip()
        if not raw_artist or not title:
            return None

        artist = normalize_artist(raw_artist)
        if not artist:
            return None

        priority, channel = _defaults(context)
        return ParsedMetadata(
            relative_path=relative_path,
            title=title,
            artist=artist,
            channel_configuration=channel,
            priority=priority,
        )


class KeywordFileNameParser:
    """
    Reads file stems laid out by a dash-delimited keyword template.

    The template comes from the root's ``keyword_format`` or, when the root has
    none, the global one. Template and stem are split on ``-`` and matched up by
    position; both must have the same number of pieces. Recognized keywords (any
    case) are SONG, ARTIST, COMMENT, LANGUAGE and GENRE. A keyword listed twice
    collects its values joined by ``", "``, so ``artist-artist-song`` on
    ``张学友-谭咏麟-朋友`` gives the artist ``张学友, 谭咏麟``.
    """

    def try_parse(self, context: MediaFileContext) -> ParsedMetadata | None:
        relative_path = _relative_path(context)
        if relative_path is None:
            return None

        stem = _stem(context.file_path.name)
        if not stem.strip():
            return None

        template = context.root.keyword_format or context.options.keyword_format
        if not template or not template.strip():
            return None

        values = map_keyword_segments(stem, template)
        if values is None:
            return None

        title = values.get(KEYWORD_SONG, "")
        artist = values.get(KEYWORD_ARTIST, "")
        if not title.strip() or not artist.strip():
            return None

        language = values.get(KEYWORD_LANGUAGE) or None
        genre = values.get(KEYWORD_GENRE) or None
        comment = values.get(KEYWORD_COMMENT) or None

        if context.options.decorate_keyword_titles:
            title = decorate_title(title, language, genre, comment)

        priority, channel = _defaults(context)
        return ParsedMetadata(
            relative_path=relative_path,
            title=title,
            artist=artist,
            channel_configuration=channel,
            priority=priority,
            language=language,
            genre=genre,
            comment=comment,
        )


def map_keyword_segments(stem: str, template: str) -> dict[str, str] | None:
    """
    Maps the dash-separated pieces of ``stem`` onto the keywords of ``template``.

    Args:
        stem: File name without extension.
        template: Dash-delimited keyword template, e.g. ``artist-song``.

    Returns:
        dict[str, str] | None: Upper-case keyword to value, or None when the piece
        counts differ or the template is empty.
    """
    keywords = [keyword.strip().upper() for keyword in template.split("-") if keyword]
    if not keywords:
        return None

    parts = [part.strip() for part in stem.split("-") if part]
    if len(parts) != len(keywords):
        return None

    values: dict[str, str] = {}
    for keyword, value in zip(keywords, parts):
        if not value:
            continue
        values[keyword] = f"{values[keyword]}, {value}" if keyword in values else value
    return values


def decorate_title(
    title: str, language: str | None, genre: str | None, comment: str | None
) -> str:
    """Returns ``title [language] (genre) (comment)``, leaving out the parts that are absent."""
    decorated = title
    if language:
        decorated += f" [{language}]"
    if genre:
        decorated += f" ({genre})"
    if comment:
        decorated += f" ({comment})"
    return decorated


def default_parsers() -> list[MediaPathParser]:
    """The parser chain in trial order: directory structure, hyphen file name, keyword template."""
    return [DirectoryStructureParser(), HyphenFileNameParser(), KeywordFileNameParser()]


def parse_with_chain(
    parsers: Iterable[MediaPathParser], context: MediaFileContext
) -> ParsedMetadata | None:
    """Tries ``parsers`` in order and returns the first match, or None when none matches."""
    for parser in parsers:
        metadata = parser.try_parse(context)
        if metadata is not None:
            return metadata
    return None


def parser_names(parsers: Sequence[MediaPathParser]) -> list[str]:
    return [type(parser).__name__ for parser in parsers]
