import logging


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Returns a logger instance for the specified name.

    The returned logger satisfies the ``common.logging.Logger`` protocol, so it can be handed
    straight to the catalog store, crawler and query service.

    Args:
        name: Optional name for the logger.

    Returns:
        logging.Logger: Logger instance for the given name.
    """
    return logging.getLogger(name)
