from pathlib import Path
import logging.config

APP_LOGGERS = ("app", "scan_library", "songlib", "library_config", "routes")
# Third-party loggers that are chatty at INFO/DEBUG: per-statement traces from
# aiosqlite and one line per HTTP request from werkzeug
QUIET_LOGGERS = ("aiosqlite", "werkzeug")


def get_logging_config(dir_output: str, base_file: str, log_level: str = "INFO") -> dict:
    """Builds the dictConfig for the catalog tools and the web app.

    Human-readable lines go to stdout; the same records are written as JSON to a
    rotating file so scan runs can be inspected afterwards. The application's own
    packages log at ``log_level``, third-party libraries only from WARNING up.

    Args:
        dir_output: Directory for the JSON log file; created when missing.
        base_file: Name of the log file, e.g. ``scan.log``.
        log_level: Level for the ``songlib`` and ``library_config`` loggers.

    Returns:
        dict: Configuration for ``logging.config.dictConfig``.
    """
    path_output = Path(dir_output)
    path_output.mkdir(parents=True, exist_ok=True)
    level = log_level.upper()

    loggers = {"": {"handlers": ["stdout", "file"], "level": "WARNING"}}
    for name in APP_LOGGERS:
        loggers[name] = {"level": level, "propagate": True}
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING", "propagate": True}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s %(module)s %(funcName)s %(process)d",
            },
            "console": {
                "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "json",
                "filename": str(path_output / base_file),
                "maxBytes": 1_048_576,
                "backupCount": 5,
                "encoding": "utf-8",
            },
        },
        "loggers": loggers,
    }


def setup_logging(dir_output: str, base_file: str, log_level: str = "INFO") -> None:
    """Configures logging once per process.

    The web app and the scan CLI both call this at start-up; later calls are ignored
    so a Flask reloader or a test harness cannot stack duplicate handlers.

    Args:
        dir_output: Directory where log files will be stored.
        base_file: Name of the log file.
        log_level: Level for the application's own loggers and the root logger.
    """
    root = logging.getLogger()
    if getattr(root, "_configured_by_app", False):
        return

    # Drop handlers installed by Werkzeug or basicConfig before us
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    logging.config.dictConfig(
        get_logging_config(dir_output=dir_output, base_file=base_file, log_level=log_level)
    )
    root.setLevel(log_level.upper())
    root._configured_by_app = True
