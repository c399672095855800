from typing import Protocol

class Logger(Protocol):
    """
    Protocol for logger objects supporting debug, info, warning, and error messages.

    Any logger implementing this protocol must provide debug, info, warning, error and exception methods that accept a string message.
    A standard ``logging.Logger`` satisfies it.
    """
    def debug(self, msg: str, *args, **kwargs) -> None: ...
    def info(self, msg: str, *args, **kwargs) -> None: ...
    def warning(self, msg: str, *args, **kwargs) -> None: ...
    def error(self, msg: str, *args, **kwargs) -> None: ...
    def exception(self, msg: str, *args, **kwargs) -> None: ...


class NullLogger:
    """
    A logger implementation that ignores all log messages.

    Used as the default wherever a logger is optional, so library code never has to check for None before logging.
    """
    def debug(self, msg: str, *args, **kwargs) -> None: pass
    def info(self, msg: str, *args, **kwargs) -> None: pass
    def warning(self, msg: str, *args, **kwargs) -> None: pass
    def error(self, msg: str, *args, **kwargs) -> None: pass
    def exception(self, msg: str, *args, **kwargs) -> None: pass
