"""
Snapshot providers for library options.

The catalog core never keeps configuration around: each scan or query asks its
provider for the current options. Providers hand out copies, so nothing the core
does can leak back into the shared configuration.
"""

import copy
from pathlib import Path
from threading import Lock
from typing import Protocol

from common.logging import Logger, NullLogger

from .loader import load_options
from .options import LibraryOptions


class OptionsProvider(Protocol):
    """Anything that returns the current LibraryOptions when called."""

    def __call__(self) -> LibraryOptions: ...


class StaticOptionsProvider:
    """Serves a fixed set of options; used by tests and embedding applications."""

    def __init__(self, options: LibraryOptions) -> None:
        if options is None:
            raise TypeError("options must not be None")
        self._options = options

    def __call__(self) -> LibraryOptions:
        return copy.deepcopy(self._options)


class YamlOptionsProvider:
    """
    Serves options from a library.yml file, re-reading it whenever it changes on disk.

    Edits made by the settings UI (or by hand) become visible to the next scan or
    query without restarting the application.
    """

    def __init__(self, config_path: Path | str, logger: Logger | None = None) -> None:
        self.config_path = Path(config_path)
        self._logger = logger or NullLogger()
        self._lock = Lock()
        self._mtime: float | None = None
        self._options: LibraryOptions | None = None

    def __call__(self) -> LibraryOptions:
        with self._lock:
            mtime = self._current_mtime()
            if self._options is None or mtime != self._mtime:
                self._options = load_options(self.config_path, self._logger)
                # Re-read after load_options, which may have created the file
                self._mtime = self._current_mtime()
                self._logger.info(
                    f"Loaded library configuration from {self.config_path} "
                    f"({len(self._options.roots)} root(s))"
                )
            return copy.deepcopy(self._options)

    def invalidate(self) -> None:
        """Forces the next call to re-read the configuration file."""
        with self._lock:
            self._options = None

    def _current_mtime(self) -> float | None:
        try:
            return self.config_path.stat().st_mtime
        except FileNotFoundError:
            return None
