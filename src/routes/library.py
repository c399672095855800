"""
Library API Blueprint

Provides JSON endpoints for listing, searching and editing catalog songs and for
triggering library scans.
"""

import asyncio
from threading import Lock, Thread

from flask import Blueprint, Response, jsonify, request

from common.logging import Logger, NullLogger
from songlib import CatalogStoreError, Song, SongLibrary


def create_library_blueprint(library: SongLibrary, logger: Logger | None = None) -> Blueprint:
    """
    Creates the library API blueprint.

    Provides endpoints for:
    - Listing songs, optionally filtered by a search query
    - Upserting a single song
    - Starting a full or scoped scan in the background
    - Reading the scan status

    Args:
        library: SongLibrary instance serving the catalog
        logger: Logger instance for error reporting

    Returns:
        Configured Blueprint for the library API
    """
    bp = Blueprint("library_api", __name__)
    logger = logger or NullLogger()
    scan_guard = Lock()

    @bp.route("/songs", methods=["GET"])
    def list_songs() -> Response:
        """
        List songs in catalog order.

        Query parameters:
            q: Optional search text matched against title and artist

        Example:
            GET /api/library/songs?q=wham

            Response:
            [
                {
                    "id": "Pop:wham/last christmas.mp4",
                    "title": "Last Christmas",
                    "artist": "Wham",
                    "media_path": "/srv/karaoke/pop/Wham/Last Christmas.mp4",
                    "channel_configuration": "Stereo",
                    "priority": 1,
                    ...
                }
            ]
        """
        query = request.args.get("q", "")
        try:
            songs = asyncio.run(library.search(query))
        except CatalogStoreError as e:
            logger.error(f"Error listing songs: {e}", exc_info=True)
            return jsonify({"error": "Catalog unavailable"}), 500
        return jsonify([song.to_dict() for song in songs])

    @bp.route("/songs", methods=["POST"])
    def upsert_song() -> Response:
        """
        Insert or update one song.

        The request body is a JSON song object; ``id`` must have the form
        ``<root name>:<relative path>``.
        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        try:
            song = Song.from_dict(data)
        except (TypeError, ValueError) as e:
            return jsonify({"error": str(e)}), 400

        try:
            asyncio.run(library.upsert(song))
        except CatalogStoreError as e:
            logger.error(f"Error upserting song {song.id}: {e}", exc_info=True)
            return jsonify({"error": "Catalog unavailable"}), 500
        return jsonify(song.to_dict()), 200

    @bp.route("/scan", methods=["POST"])
    def start_scan() -> Response:
        """
        Start a scan in a background thread.

        Body (optional):
            {"roots": ["Pop", "Rock"]}  rescans only these roots

        Returns 202 when the scan was started and 409 while another scan runs.
        """
        data = request.get_json(silent=True) or {}
        roots = data.get("roots") if isinstance(data, dict) else None
        if roots is not None and (
            not isinstance(roots, list) or not all(isinstance(r, str) and r.strip() for r in roots)
        ):
            return jsonify({"error": "'roots' must be a list of root names"}), 400

        if library.is_scanning() or not scan_guard.acquire(blocking=False):
            return jsonify({"error": "A scan is already running"}), 409

        def task():
            try:
                if roots is None:
                    result = asyncio.run(library.scan())
                else:
                    result = asyncio.run(library.scan_roots(roots))
                logger.info(
                    f"Background scan done: {result.files_processed} processed, "
                    f"{result.files_skipped} skipped"
                )
            except Exception as e:
                logger.error(f"Background scan failed: {e}", exc_info=True)
            finally:
                scan_guard.release()

        Thread(target=task, name="library-scan", daemon=True).start()
        return jsonify({"status": "started", "roots": roots}), 202

    @bp.route("/status", methods=["GET"])
    def scan_status() -> Response:
        """Current scan status, or ``{"status": "idle"}`` when no scan is running."""
        status = library.scan_status()
        return jsonify(status or {"status": "idle"})

    return bp
