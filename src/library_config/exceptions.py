"""
Custom exceptions for the library_config package.
"""


class LibraryConfigError(Exception):
    """Base exception for all library_config errors."""
    pass


class ConfigurationError(LibraryConfigError):
    """Raised when the configuration file is invalid or cannot be loaded."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        full_message = message
        if self.errors:
            full_message += f": {', '.join(self.errors)}"
        super().__init__(full_message)
