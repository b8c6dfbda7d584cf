"""
Logging configuration for lumentrace.

Modules log through ``logging.getLogger(__name__)``; this sets up the
handlers on the package logger so library users stay in control unless
they opt in.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "lumentrace"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Union[str, Path]] = None
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Logging level name or number
        log_file: Optional path to a rotating log file

    Returns:
        The configured ``lumentrace`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        name = level
        level = getattr(logging, name.upper(), None)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")
    logger.setLevel(level)

    # Replace handlers from an earlier call
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10485760,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
