"""
Configuration loading, validation and saving for library_config.

Handles:
- Loading library.yml
- Validating configuration structure
- Creating a default configuration
- Writing edited options back without touching unrelated sections
"""

from pathlib import Path

import yaml

from common.logging import Logger, NullLogger

from .exceptions import ConfigurationError
from .options import DEFAULT_EXTENSIONS, LibraryOptions, LibraryRoot

SECTION_NAME = "library"


def load_options(config_path: Path, logger: Logger | None = None) -> LibraryOptions:
    """
    Load and parse the library.yml configuration file.

    If the file doesn't exist, creates a default configuration without roots.

    Args:
        config_path: Path to library.yml
        logger: Logger instance for messages

    Returns:
        LibraryOptions instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    logger = logger or NullLogger()
    config_path = Path(config_path)
    _ensure_config_exists(config_path, logger)
    data = _read_config_data(config_path)
    _validate_config_or_raise(data)
    return _parse_options(data.get(SECTION_NAME) or {})


def _ensure_config_exists(config_path: Path, logger: Logger) -> None:
    """Ensure the config file exists, creating a default if necessary."""
    if not config_path.exists():
        logger.info(f"Configuration file not found: {config_path}")
        logger.info("Creating default library configuration")
        create_default_config(config_path, logger)


def _read_config_data(config_path: Path) -> dict:
    """Read and parse the YAML configuration file into a dict."""
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax in {config_path}", [str(e)]) from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read {config_path}", [str(e)]) from e


def _validate_config_or_raise(data: dict) -> None:
    """Validate configuration data and raise ConfigurationError on failure."""
    is_valid, errors = validate_options_data(data)
    if not is_valid:
        raise ConfigurationError("Invalid configuration", errors)


def _parse_roots(section: dict) -> list[LibraryRoot]:
    """
    Parse raw root entries from the library section into definitions.

    Args:
        section: The ``library`` mapping of the configuration

    Returns:
        List of LibraryRoot objects constructed from the configuration
    """
    return [
        LibraryRoot(
            name=root["name"].strip(),
            path=root["path"],
            default_priority=root.get("default_priority"),
            default_channel=root.get("default_channel"),
            drive_override=root.get("drive_override"),
            keyword_format=root.get("keyword_format"),
            instrumental=int(root.get("instrumental", 0) or 0),
            volume_normalization=bool(root.get("volume_normalization", False)),
        )
        for root in section.get("roots") or []
    ]


def _parse_options(section: dict) -> LibraryOptions:
    """
    Construct a LibraryOptions object from the library section.

    Missing keys fall back to the LibraryOptions defaults.
    """
    defaults = LibraryOptions()
    return LibraryOptions(
        default_priority=section.get("default_priority", defaults.default_priority),
        default_channel=section.get("default_channel", defaults.default_channel),
        database_path=section.get("database_path", defaults.database_path),
        supported_extensions=list(
            section.get("supported_extensions") or defaults.supported_extensions
        ),
        roots=_parse_roots(section),
        keyword_format=section.get("keyword_format"),
        decorate_keyword_titles=bool(section.get("decorate_keyword_titles", False)),
    )


def validate_options_data(data: dict) -> tuple[bool, list[str]]:
    """
    Validate configuration data structure.

    Args:
        data: Parsed YAML data

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    if not isinstance(data, dict):
        return False, ["Configuration must be a dictionary"]

    section = data.get(SECTION_NAME)
    if section is None:
        return False, [f"Missing required key '{SECTION_NAME}'"]
    if not isinstance(section, dict):
        return False, [f"'{SECTION_NAME}' must be a dictionary"]

    errors: list[str] = []
    _validate_global_values(section, errors)
    roots = _validate_roots_list(section, errors)
    _validate_each_root(roots, errors)

    return not errors, errors


def _validate_global_values(section: dict, errors: list[str]) -> None:
    """Validate the global defaults in the library section."""
    priority = section.get("default_priority")
    if priority is not None and (isinstance(priority, bool) or not isinstance(priority, int)):
        errors.append("'default_priority' must be an integer")

    for key in ("default_channel", "database_path", "keyword_format"):
        value = section.get(key)
        if value is not None and not isinstance(value, str):
            errors.append(f"'{key}' must be a string")

    extensions = section.get("supported_extensions")
    if extensions is not None:
        if not isinstance(extensions, list):
            errors.append("'supported_extensions' must be a list")
        elif not all(isinstance(ext, str) for ext in extensions):
            errors.append("'supported_extensions' must only contain strings")


def _validate_roots_list(section: dict, errors: list[str]) -> list[dict]:
    """
    Validate the roots list container in the library section.

    Returns:
        The roots list, or an empty list when it is not a list.
    """
    roots = section.get("roots", [])
    if roots is None:
        return []
    if not isinstance(roots, list):
        errors.append("'roots' must be a list")
        return []
    return roots


def _validate_each_root(roots: list[dict], errors: list[str]) -> None:
    """
    Validate each root entry in the configuration.

    This checks that each root has the required fields, valid values,
    and that root names are unique regardless of case.

    Args:
        roots: List of raw root dictionaries from the configuration
        errors: List to append validation error messages to
    """
    seen: set[str] = set()
    for i, root in enumerate(roots):
        prefix = f"Root {i + 1}"

        if not isinstance(root, dict):
            errors.append(f"{prefix}: Must be a dictionary")
            continue

        name = root.get("name")
        if name is None:
            errors.append(f"{prefix}: Missing required field 'name'")
        elif not isinstance(name, str) or not name.strip():
            errors.append(f"{prefix}: 'name' must be a non-empty string")
        elif name.strip().casefold() in seen:
            errors.append(f"{prefix}: Duplicate root name '{name}'")
        else:
            seen.add(name.strip().casefold())

        path = root.get("path")
        if path is None:
            errors.append(f"{prefix}: Missing required field 'path'")
        elif not isinstance(path, str):
            errors.append(f"{prefix}: 'path' must be a string")

        priority = root.get("default_priority")
        if priority is not None and (isinstance(priority, bool) or not isinstance(priority, int)):
            errors.append(f"{prefix}: 'default_priority' must be an integer")

        for key in ("default_channel", "drive_override", "keyword_format"):
            value = root.get(key)
            if value is not None and not isinstance(value, str):
                errors.append(f"{prefix}: '{key}' must be a string")

        instrumental = root.get("instrumental")
        if instrumental is not None and (
            not isinstance(instrumental, int) or int(instrumental) not in (0, 1)
        ):
            errors.append(f"{prefix}: 'instrumental' must be 0 or 1")

        volume_normalization = root.get("volume_normalization")
        if volume_normalization is not None and not isinstance(volume_normalization, bool):
            errors.append(f"{prefix}: 'volume_normalization' must be true or false")


def validate_config_file(config_path: Path) -> tuple[bool, list[str]]:
    """
    Validate a configuration file without loading it.

    Useful for pre-flight checks before saving edited settings. Root directories
    that do not exist are reported as warnings, not errors.

    Args:
        config_path: Path to library.yml

    Returns:
        Tuple of (is_valid, list_of_errors_and_warnings)
    """
    config_path = Path(config_path)
    if not config_path.exists():
        return False, [f"Configuration file not found: {config_path}"]

    try:
        data = _read_config_data(config_path)
    except ConfigurationError as e:
        return False, [str(e)]

    is_valid, errors = validate_options_data(data)
    warnings: list[str] = []
    if is_valid:
        for root in data[SECTION_NAME].get("roots") or []:
            root_path = Path(root["path"])
            if root_path.is_absolute() and not root_path.exists():
                warnings.append(f"Root '{root['name']}': path does not exist: {root_path}")

    return is_valid, errors + warnings


def create_default_config(config_path: Path, logger: Logger | None = None) -> None:
    """
    Create a default configuration file without any roots.

    Args:
        config_path: Path where library.yml should be created
        logger: Optional logger for messages
    """
    defaults = LibraryOptions()
    default_config = {
        SECTION_NAME: {
            "default_priority": defaults.default_priority,
            "default_channel": defaults.default_channel,
            "database_path": defaults.database_path,
            "supported_extensions": list(DEFAULT_EXTENSIONS),
            "keyword_format": None,
            "roots": [],
        }
    }
    _write_yaml(config_path, default_config)

    if logger:
        logger.info(f"Created default configuration at {config_path}")


def save_options(config_path: Path, options: LibraryOptions) -> None:
    """
    Write the complete library options back to the configuration file.

    Any other top-level sections already present in the file are preserved.

    Args:
        config_path: Path to library.yml
        options: Options to persist
    """
    if options is None:
        raise TypeError("options must not be None")
    data = _read_existing(config_path)
    data[SECTION_NAME] = options.to_dict()
    _write_yaml(config_path, data)


def save_roots(config_path: Path, roots: list[LibraryRoot]) -> None:
    """
    Replace only the roots list in the configuration file.

    Args:
        config_path: Path to library.yml
        roots: Root definitions to persist
    """
    if roots is None:
        raise TypeError("roots must not be None")
    data = _read_existing(config_path)
    section = data.get(SECTION_NAME)
    if not isinstance(section, dict):
        section = {}
    section["roots"] = [root.to_dict() for root in roots]
    data[SECTION_NAME] = section
    _write_yaml(config_path, data)


def _read_existing(config_path: Path) -> dict:
    """Read the current file contents, or an empty mapping when there is no usable file."""
    config_path = Path(config_path)
    if not config_path.exists():
        return {}
    data = _read_config_data(config_path)
    return data if isinstance(data, dict) else {}


def _write_yaml(config_path: Path, data: dict) -> None:
    """Write ``data`` as YAML, creating the parent directory if needed."""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(
            data,
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
