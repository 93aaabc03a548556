# octane_sdk/common/logger.py
"""
Logging configuration for the octane_sdk package.

Every module logs through `logging.getLogger(__name__)`, so configuring the
package logger here controls the output of the whole SDK.
"""

import logging
import sys
from pathlib import Path
from typing import Final

from octane_sdk.config import LoggingConfig

__all__: list[str] = ['setup_logger']

PACKAGE_LOGGER_NAME: Final[str] = 'octane_sdk'


def setup_logger(
    logging_level: int | None = None,
    config: LoggingConfig | None = None,
) -> logging.Logger:
    """
    Set up logging for the octane_sdk package.

    Idempotent: calling it again replaces the handlers installed by the
    previous call.

    Args:
        logging_level: Console level (e.g. logging.INFO) used when no config
            object is provided. Defaults to INFO.
        config: Optional validated logging configuration. If provided:
                - Console logging uses config.console_level
                - File logging is enabled if config.file_path is set
                - The 'logging_level' argument is ignored.

    Returns:
        The package-level logger ('octane_sdk').

    Example:
        >>> setup_logger(logging_level=logging.DEBUG)

        >>> settings = load_config()
        >>> setup_logger(config=settings.logging)
    """
    package_logger: logging.Logger = logging.getLogger(PACKAGE_LOGGER_NAME)

    # Drop handlers from a previous call so records are not duplicated
    package_logger.handlers.clear()

    log_format: logging.Formatter = logging.Formatter(
        fmt='%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    # --- 1. Console Handler ---
    if logging_level is None:
        logging_level = logging.INFO
    if config:
        console_level: int = config.get_console_level_int()
    else:
        console_level = logging_level

    console_handler: logging.Handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_format)
    console_handler.setLevel(console_level)
    package_logger.addHandler(console_handler)

    # --- 2. File Handler (config only) ---
    file_level: int | None = config.get_file_level_int() if config else None

    if config and config.file_path and file_level is not None:
        log_file_path: Path = config.file_path
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler: logging.FileHandler = logging.FileHandler(
            filename=str(log_file_path),
            mode='a',
            encoding='utf-8',
        )
        file_handler.setFormatter(log_format)
        file_handler.setLevel(file_level)
        package_logger.addHandler(file_handler)

        package_logger.info('Logging to file: %s', log_file_path)

    # --- 3. Package Logger Level ---
    # Must be the most verbose of the handler levels or records never reach them
    effective_level: int = console_level
    if file_level is not None:
        effective_level = min(console_level, file_level)

    package_logger.setLevel(effective_level)

    return package_logger
