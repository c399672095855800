"""Tests for scanning library roots into the catalog."""

import asyncio
import os
import threading
from pathlib import Path

import pytest

from config import AppEnvironment
from library_config import LibraryOptions, LibraryRoot, StaticOptionsProvider
import songlib.crawler
from songlib.crawler import COMPLETED, LibraryCrawler
from songlib.exceptions import CatalogStoreError, ScanCancelledError
from songlib.indexing_status import get_indexing_status
from songlib.models import LoudnessResult, ParsedMetadata, ScanProgress
from songlib.parsers import DirectoryStructureParser, MediaFileContext, default_parsers
from songlib.store import CatalogStore


def case_sensitive_fs(directory: Path) -> bool:
    marker = directory / "CaseCheck"
    marker.write_text("")
    try:
        return not (directory / "casecheck").exists()
    finally:
        marker.unlink()


class FakeLoudnessAnalyzer:
    def __init__(self, result: LoudnessResult | None) -> None:
        self.result = result
        self.calls: list[str] = []

    async def analyze(self, media_path: str) -> LoudnessResult | None:
        self.calls.append(media_path)
        return self.result


class TitleOnlyParser:
    """Returns a title with markup and line breaks for every file."""

    def try_parse(self, context: MediaFileContext) -> ParsedMetadata | None:
        return ParsedMetadata(
            relative_path=context.file_path.name,
            title="<script>Sanitized Title</script>\r\n",
            artist="<b>Artist</b>",
            channel_configuration="Stereo",
            priority=1,
            genre="<i>Pop</i>\n",
        )


class ExplodingParser:
    def try_parse(self, context: MediaFileContext) -> ParsedMetadata | None:
        raise RuntimeError("broken parser")


@pytest.fixture
def store(db_path: Path) -> CatalogStore:
    return CatalogStore(db_path)


@pytest.fixture
def crawler(store, provider, environment) -> LibraryCrawler:
    return LibraryCrawler(store, provider, environment)


class TestFullScan:
    @pytest.mark.asyncio
    async def test_counts_processed_and_skipped(self, crawler, store) -> None:
        result = await crawler.scan()

        assert result.files_processed == 3
        assert result.files_skipped == 1
        assert result.missing_roots == ()
        assert await store.count() == 3

    @pytest.mark.asyncio
    async def test_records_carry_ids_and_metadata(self, crawler, store) -> None:
        await crawler.scan()

        records = {r.id: r for r in await store.get_all()}
        assert set(records) == {
            "LibA:artist one/song one.mp3",
            "LibA:artist one/song two.mp3",
            "LibB:artist two-song three.mp3",
        }
        song = records["LibA:artist one/song one.mp3"]
        assert song.root_name == "LibA"
        assert song.relative_path == "Artist One/Song One.mp3"
        assert song.artist == "Artist One"
        assert song.title == "Song One"
        assert song.priority == 2
        assert song.channel_configuration == "Stereo"
        hyphen = records["LibB:artist two-song three.mp3"]
        assert hyphen.artist == "Artist Two"
        assert hyphen.title == "Song Three"
        assert hyphen.priority == 1

    @pytest.mark.asyncio
    async def test_rescan_keeps_ids_and_refreshes_timestamps(self, crawler, store) -> None:
        await crawler.scan()
        before = {r.id: r.updated_at for r in await store.get_all()}

        await crawler.scan()
        after = {r.id: r.updated_at for r in await store.get_all()}

        assert set(after) == set(before)
        assert all(after[song_id] >= before[song_id] for song_id in after)

    @pytest.mark.asyncio
    async def test_full_scan_drops_songs_of_removed_files(self, crawler, store, library_tree) -> None:
        await crawler.scan()
        (library_tree / "libA" / "Artist One" / "Song Two.mp3").unlink()

        await crawler.scan()

        ids = {r.id for r in await store.get_all()}
        assert "LibA:artist one/song two.mp3" not in ids
        assert len(ids) == 2

    @pytest.mark.asyncio
    async def test_extensions_match_any_case(self, crawler, store, make_file, library_tree) -> None:
        make_file(library_tree / "libA" / "Artist One" / "Loud.MP3")

        result = await crawler.scan()

        assert result.files_processed == 4
        assert await store.get("LibA:artist one/loud.mp3") is not None

    @pytest.mark.asyncio
    async def test_paths_differing_by_case_collapse(self, tmp_path, environment, store, make_file) -> None:
        root_dir = tmp_path / "cased"
        root_dir.mkdir()
        if not case_sensitive_fs(root_dir):
            pytest.skip("needs a case-sensitive filesystem")
        make_file(root_dir / "Artist" / "Song.mp3")
        make_file(root_dir / "artist" / "song.mp3")
        provider = StaticOptionsProvider(
            LibraryOptions(roots=[LibraryRoot(name="Cased", path=str(root_dir))])
        )

        result = await LibraryCrawler(store, provider, environment).scan()

        assert result.files_processed == 2
        assert [r.id for r in await store.get_all()] == ["Cased:artist/song.mp3"]

    @pytest.mark.asyncio
    async def test_missing_root_is_skipped(self, store, environment, options) -> None:
        options.roots.append(LibraryRoot(name="Ghost", path="does-not-exist"))
        crawler = LibraryCrawler(store, StaticOptionsProvider(options), environment)

        result = await crawler.scan()

        assert result.missing_roots == ("Ghost",)
        assert result.files_skipped == 2
        assert result.files_processed == 3

    @pytest.mark.asyncio
    async def test_only_missing_root(self, store, environment) -> None:
        provider = StaticOptionsProvider(
            LibraryOptions(roots=[LibraryRoot(name="Ghost", path="/no/such/karaoke/dir")])
        )

        result = await LibraryCrawler(store, provider, environment).scan()

        assert (result.files_processed, result.files_skipped) == (0, 1)

    @pytest.mark.asyncio
    async def test_store_failure_reaches_caller(self, tmp_path, provider, environment) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        crawler = LibraryCrawler(CatalogStore(blocker / "library.db"), provider, environment)

        with pytest.raises(CatalogStoreError):
            await crawler.scan()

    @pytest.mark.asyncio
    async def test_absolute_root_path(self, tmp_path, store, make_file) -> None:
        library = tmp_path / "absolute"
        make_file(library / "Band" / "Tune.wav")
        provider = StaticOptionsProvider(
            LibraryOptions(roots=[LibraryRoot(name="Abs", path=str(library))])
        )
        environment = AppEnvironment(application_root=tmp_path / "elsewhere")

        result = await LibraryCrawler(store, provider, environment).scan()

        assert result.files_processed == 1


class TestScopedScan:
    @pytest.mark.asyncio
    async def test_only_named_roots_are_replaced(self, crawler, store, library_tree, make_file) -> None:
        await crawler.scan()
        (library_tree / "libB" / "Artist Two-Song Three.mp3").unlink()
        make_file(library_tree / "libB" / "New Artist-New Song.mp3")
        (library_tree / "libA" / "Artist One" / "Song Two.mp3").unlink()

        result = await crawler.scan_roots(["LibB"])

        ids = {r.id for r in await store.get_all()}
        assert result.files_processed == 1
        assert "LibB:new artist-new song.mp3" in ids
        assert "LibB:artist two-song three.mp3" not in ids
        # LibA was not rescanned, so its stale entry stays
        assert "LibA:artist one/song two.mp3" in ids

    @pytest.mark.asyncio
    async def test_unconfigured_root_name_clears_its_songs(self, crawler, store) -> None:
        await crawler.scan()

        result = await crawler.scan_roots(["LibA", "Retired"])

        assert result.files_processed == 2
        assert await store.count() == 3

    @pytest.mark.asyncio
    async def test_single_string_is_rejected(self, crawler) -> None:
        with pytest.raises(TypeError):
            await crawler.scan_roots("LibA")

    @pytest.mark.asyncio
    async def test_none_is_rejected(self, crawler) -> None:
        with pytest.raises(TypeError):
            await crawler.scan_roots(None)

    @pytest.mark.asyncio
    async def test_blank_names_are_rejected(self, crawler) -> None:
        with pytest.raises(ValueError):
            await crawler.scan_roots(["LibA", " "])


class TestCancellationAndProgress:
    @pytest.mark.asyncio
    async def test_progress_reports_first_file_and_completion(self, crawler) -> None:
        events: list[ScanProgress] = []

        await crawler.scan(progress=events.append)

        assert events == [
            ScanProgress("LibA", 1, "Song One.mp3"),
            ScanProgress("LibA", 2, COMPLETED),
            ScanProgress("LibB", 1, "Artist Two-Song Three.mp3"),
            ScanProgress("LibB", 1, COMPLETED),
        ]

    @pytest.mark.asyncio
    async def test_progress_every_tenth_file(self, tmp_path, store, environment, make_file) -> None:
        for i in range(25):
            make_file(tmp_path / "many" / "Artist" / f"Song {i:02d}.mp3")
        provider = StaticOptionsProvider(
            LibraryOptions(roots=[LibraryRoot(name="Many", path="many")])
        )
        events: list[ScanProgress] = []

        await LibraryCrawler(store, provider, environment).scan(progress=events.append)

        assert [e.files_scanned for e in events] == [1, 10, 20, 25]
        assert events[-1].current_file == COMPLETED

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, crawler, store) -> None:
        cancel_event = asyncio.Event()
        cancel_event.set()

        with pytest.raises(ScanCancelledError) as exc_info:
            await crawler.scan(cancel_event=cancel_event)

        assert exc_info.value.result.files_processed == 0
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_cancel_mid_scan_keeps_partial_results(self, crawler, store) -> None:
        cancel_event = asyncio.Event()

        def on_progress(progress: ScanProgress) -> None:
            cancel_event.set()

        with pytest.raises(ScanCancelledError) as exc_info:
            await crawler.scan(cancel_event=cancel_event, progress=on_progress)

        assert exc_info.value.result.files_processed == 1
        assert [r.id for r in await store.get_all()] == ["LibA:artist one/song one.mp3"]


class TestStatusFile:
    @pytest.mark.asyncio
    async def test_status_written_during_scan_and_cleared_after(
        self, store, provider, environment, tmp_path
    ) -> None:
        status_root = tmp_path / "status"
        crawler = LibraryCrawler(store, provider, environment, status_root=status_root)
        seen: list[dict | None] = []

        await crawler.scan(progress=lambda _: seen.append(get_indexing_status(status_root)))

        assert seen[0]["status"] == "scanning"
        assert seen[0]["root"] == "LibA"
        assert get_indexing_status(status_root) is None

    @pytest.mark.asyncio
    async def test_status_cleared_after_cancel(self, store, provider, environment, tmp_path) -> None:
        status_root = tmp_path / "status"
        crawler = LibraryCrawler(store, provider, environment, status_root=status_root)
        cancel_event = asyncio.Event()

        with pytest.raises(ScanCancelledError):
            await crawler.scan(cancel_event=cancel_event, progress=lambda _: cancel_event.set())

        assert get_indexing_status(status_root) is None


class TestRecordBuilding:
    @pytest.mark.asyncio
    async def test_parser_output_is_sanitized(self, tmp_path, store, environment, make_file) -> None:
        make_file(tmp_path / "raw" / "temp.mp3")
        provider = StaticOptionsProvider(LibraryOptions(roots=[LibraryRoot(name="Raw", path="raw")]))
        crawler = LibraryCrawler(store, provider, environment, parsers=[TitleOnlyParser()])

        await crawler.scan()

        record = await store.get("Raw:temp.mp3")
        assert record.title == "Sanitized Title"
        assert record.artist == "Artist"
        assert record.genre == "Pop"

    @pytest.mark.asyncio
    async def test_failing_parser_counts_as_skipped(self, store, provider, environment) -> None:
        crawler = LibraryCrawler(
            store, provider, environment, parsers=[ExplodingParser(), DirectoryStructureParser()]
        )

        result = await crawler.scan()

        assert result.files_processed == 0
        assert result.files_skipped == 4

    @pytest.mark.asyncio
    async def test_instrumental_flag_comes_from_root(self, tmp_path, store, environment, make_file) -> None:
        make_file(tmp_path / "inst" / "Band" / "Tune.mp3")
        provider = StaticOptionsProvider(
            LibraryOptions(roots=[LibraryRoot(name="Inst", path="inst", instrumental=1)])
        )

        await LibraryCrawler(store, provider, environment).scan()

        assert (await store.get("Inst:band/tune.mp3")).instrumental == 1

    @pytest.mark.asyncio
    async def test_loudness_is_measured_for_normalized_roots(
        self, tmp_path, store, environment, make_file
    ) -> None:
        media = make_file(tmp_path / "norm" / "Band" / "Tune.mp3")
        make_file(tmp_path / "plain" / "Band" / "Other.mp3")
        provider = StaticOptionsProvider(
            LibraryOptions(
                roots=[
                    LibraryRoot(name="Norm", path="norm", volume_normalization=True),
                    LibraryRoot(name="Plain", path="plain"),
                ]
            )
        )
        analyzer = FakeLoudnessAnalyzer(LoudnessResult(loudness_lufs=-20.0, gain_db=6.0))

        await LibraryCrawler(store, provider, environment, loudness_analyzer=analyzer).scan()

        assert analyzer.calls == [str(media)]
        normalized = await store.get("Norm:band/tune.mp3")
        assert (normalized.loudness_lufs, normalized.gain_db) == (-20.0, 6.0)
        plain = await store.get("Plain:band/other.mp3")
        assert plain.loudness_lufs is None

    @pytest.mark.asyncio
    async def test_failed_loudness_analysis_keeps_song(
        self, tmp_path, store, environment, make_file
    ) -> None:
        make_file(tmp_path / "norm" / "Band" / "Tune.mp3")
        provider = StaticOptionsProvider(
            LibraryOptions(roots=[LibraryRoot(name="Norm", path="norm", volume_normalization=True)])
        )

        result = await LibraryCrawler(
            store, provider, environment, loudness_analyzer=FakeLoudnessAnalyzer(None)
        ).scan()

        assert result.files_processed == 1
        assert (await store.get("Norm:band/tune.mp3")).gain_db is None

    def test_collaborators_are_required(self, store, provider, environment) -> None:
        with pytest.raises(TypeError):
            LibraryCrawler(None, provider, environment)
        with pytest.raises(TypeError):
            LibraryCrawler(store, None, environment)
        with pytest.raises(TypeError):
            LibraryCrawler(store, provider, None)

    def test_default_parser_chain(self, store, provider, environment) -> None:
        crawler = LibraryCrawler(store, provider, environment)
        assert [type(p) for p in crawler._parsers] == [type(p) for p in default_parsers()]


class TestUndecodableNames:
    @pytest.mark.asyncio
    async def test_bad_file_name_is_skipped_and_scan_continues(
        self, tmp_path, store, environment, make_file
    ) -> None:
        artist_dir = tmp_path / "raw" / "Artist"
        make_file(artist_dir / "Good.mp3")
        bad_name = os.fsencode(artist_dir / "Bad") + b"\xff.mp3"
        try:
            with open(bad_name, "wb"):
                pass
        except OSError:
            pytest.skip("filesystem rejects non UTF-8 file names")
        provider = StaticOptionsProvider(LibraryOptions(roots=[LibraryRoot(name="Raw", path="raw")]))

        result = await LibraryCrawler(store, provider, environment).scan()

        assert (result.files_processed, result.files_skipped) == (1, 1)
        assert [r.id for r in await store.get_all()] == ["Raw:artist/good.mp3"]


class TestRootNameCase:
    @pytest.mark.asyncio
    async def test_scoped_scan_matches_root_names_ignoring_case(
        self, crawler, store, library_tree, make_file
    ) -> None:
        await crawler.scan()
        (library_tree / "libB" / "Artist Two-Song Three.mp3").unlink()
        make_file(library_tree / "libB" / "New Artist-New Song.mp3")

        result = await crawler.scan_roots(["libb"])

        ids = {r.id for r in await store.get_all()}
        assert result.files_processed == 1
        assert "LibB:new artist-new song.mp3" in ids
        assert "LibB:artist two-song three.mp3" not in ids
        assert await store.count() == 3

    @pytest.mark.asyncio
    async def test_same_root_named_twice_in_different_case(self, crawler, store) -> None:
        result = await crawler.scan_roots(["LIBA", "liba"])

        assert result.files_processed == 2
        assert await store.count() == 2


class TestStatusFileOffLoop:
    @pytest.mark.asyncio
    async def test_status_writes_run_in_worker_threads(
        self, store, provider, environment, tmp_path, monkeypatch
    ) -> None:
        threads: list[threading.Thread] = []
        monkeypatch.setattr(
            songlib.crawler,
            "set_indexing_status",
            lambda *args, **kwargs: threads.append(threading.current_thread()),
        )
        monkeypatch.setattr(
            songlib.crawler,
            "clear_indexing_status",
            lambda *args, **kwargs: threads.append(threading.current_thread()),
        )
        crawler = LibraryCrawler(store, provider, environment, status_root=tmp_path / "status")

        await crawler.scan()

        assert len(threads) == 3
        assert all(thread is not threading.main_thread() for thread in threads)
