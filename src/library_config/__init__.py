"""
Library configuration for the song catalog.

This package describes the configuration the catalog core reads: global
defaults (priority, channel, database location, supported extensions, keyword
format) and the list of library roots. Configuration lives in a YAML file and is
handed to the core as an immutable snapshot per operation.

Usage:
    from library_config import YamlOptionsProvider

    provider = YamlOptionsProvider(Path("config/library.yml"), logger=logger)
    options = provider()
    for root in options.roots:
        print(root.name, root.path)
"""

from .exceptions import ConfigurationError, LibraryConfigError
from .loader import (
    create_default_config,
    load_options,
    save_options,
    save_roots,
    validate_config_file,
    validate_options_data,
)
from .options import LibraryOptions, LibraryRoot
from .provider import OptionsProvider, StaticOptionsProvider, YamlOptionsProvider

__all__ = [
    "ConfigurationError",
    "LibraryConfigError",
    "LibraryOptions",
    "LibraryRoot",
    "OptionsProvider",
    "StaticOptionsProvider",
    "YamlOptionsProvider",
    "create_default_config",
    "load_options",
    "save_options",
    "save_roots",
    "validate_config_file",
    "validate_options_data",
]
