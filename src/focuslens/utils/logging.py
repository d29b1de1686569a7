"""Logging setup for the focuslens command line.

Library modules only ever call ``logging.getLogger(__name__)``; this is
the one place that installs handlers.
"""

from __future__ import annotations

import logging
import sys

from focuslens.config.settings import LoggingConfig

# Chatty third-party loggers that log every HTTP request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Attach stderr (and optionally file) handlers to the package logger.

    Handlers from an earlier call are replaced, so the CLI can call this
    again after applying ``--verbose``.

    Args:
        config: Logging section of the settings. Defaults to INFO on
                stderr.

    Returns:
        The configured ``focuslens`` logger.
    """
    config = config or LoggingConfig()
    level = getattr(logging, config.level.upper(), logging.INFO)

    package_logger = logging.getLogger("focuslens")
    package_logger.setLevel(level)
    for old in list(package_logger.handlers):
        package_logger.removeHandler(old)
        old.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))

    formatter = logging.Formatter(config.format)
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    package_logger.debug("Logging configured at %s", logging.getLevelName(level))
    return package_logger
