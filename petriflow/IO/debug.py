from __future__ import annotations

import logging
from typing import Optional

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_level: str = "INFO", log_filename: Optional[str] = None
) -> logging.Logger:
    """
    Configure the root logger with a single stream or file handler.

    Calling it again replaces the handlers installed by a previous call,
    so the level can be changed between runs.

    :param log_level: Level name (``"DEBUG"``, ``"INFO"``, ...).
    :type log_level: str
    :param log_filename: Write to this file instead of stderr.
    :type log_filename: Optional[str]
    :returns: The configured root logger.
    :rtype: logging.Logger
    :raises ValueError: If ``log_level`` is not a known level name.
    """
    level = logging.getLevelName(str(log_level).upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {log_level!r}")

    if log_filename:
        handler: logging.Handler = logging.FileHandler(log_filename, mode="a")
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))

    logger = logging.getLogger()
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
