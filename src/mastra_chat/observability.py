"""Logging setup for the chat client."""

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_PACKAGE_LOGGER = "mastra_chat"


def setup_logging(level: str = "INFO", log_file: Path | None = None, console: bool = True) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Logging level name
        log_file: Optional file that receives a copy of every record
        console: Whether to attach a stderr handler

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(level.upper())

    # Re-running setup replaces our handlers instead of stacking them
    for handler in list(logger.handlers):
        if getattr(handler, "_mastra_chat", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        stream_handler._mastra_chat = True
        logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler._mastra_chat = True
        logger.addHandler(file_handler)

    return logger
