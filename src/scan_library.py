#!/usr/bin/env python3
"""Scan the configured library roots into the catalog, or list and search the catalog."""

import argparse
import asyncio
import contextlib
import signal
import sys
from pathlib import Path

from config import AppEnvironment, BaseConfig
from library_config import ConfigurationError, YamlOptionsProvider
from logtools import get_logger, setup_logging
from songlib import CatalogStoreError, ScanCancelledError, ScanProgress, Song, SongLibrary

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        type=Path,
        default=BaseConfig.LIBRARY_CONFIG,
        help="library.yml to read (default: %(default)s)",
    )
    parser.add_argument(
        "--app-root",
        type=Path,
        default=BaseConfig.APP_ROOT,
        help="directory relative root and database paths are anchored at",
    )
    parser.add_argument("--log-level", default=BaseConfig.LOG_LEVEL)

    commands = parser.add_subparsers(dest="command", required=True)

    scan = commands.add_parser("scan", help="rebuild the catalog")
    scan.add_argument(
        "--root",
        dest="roots",
        action="append",
        metavar="NAME",
        help="only rescan this root (repeatable)",
    )

    commands.add_parser("list", help="print every song in catalog order")

    search = commands.add_parser("search", help="print songs whose title or artist matches")
    search.add_argument("query")
    return parser


def print_progress(progress: ScanProgress) -> None:
    print(f"[{progress.root_name}] {progress.files_scanned:>6}  {progress.current_file}")


def print_songs(songs: list[Song]) -> None:
    for song in songs:
        print(f"{song.priority:>3}  {song.artist} - {song.title}  ({song.id})")
    print(f"{len(songs):,} song(s)")


async def run(args: argparse.Namespace) -> int:
    environment = AppEnvironment(
        application_root=args.app_root,
        configuration_root=BaseConfig.CONFIG_ROOT,
        assets_root=BaseConfig.ASSETS_ROOT,
        environment_name=BaseConfig.APP_ENV,
    )
    provider = YamlOptionsProvider(args.config, logger=logger)
    library = SongLibrary(provider, environment, logger=logger)

    if args.command == "scan":
        cancel_event = asyncio.Event()
        # Ctrl+C stops the scan between files; not available on Windows event loops
        with contextlib.suppress(NotImplementedError):
            asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel_event.set)
        try:
            if args.roots:
                result = await library.scan_roots(
                    args.roots, cancel_event=cancel_event, progress=print_progress
                )
            else:
                result = await library.scan(cancel_event=cancel_event, progress=print_progress)
        except ScanCancelledError as e:
            print(f"Scan cancelled: {e.result.files_processed} processed")
            return 130
        print(f"Processed {result.files_processed}, skipped {result.files_skipped}")
        for name in result.missing_roots:
            print(f"Missing root: {name}")
        return 0

    if args.command == "list":
        print_songs(await library.get_all())
        return 0

    print_songs(await library.search(args.query))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        dir_output=str(BaseConfig.LOG_DIR), base_file="scan.log", log_level=args.log_level
    )
    try:
        return asyncio.run(run(args))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except CatalogStoreError as e:
        logger.error(f"Catalog error: {e}")
        print(f"Catalog error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
