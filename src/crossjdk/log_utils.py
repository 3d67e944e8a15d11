import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from crossjdk.constants import (
    DEBUG_LOG_FORMAT,
    INFO_LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
    LOG_FILE_NAME,
    LOG_LEVEL_ENV_VAR,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)

# Kept at module level so file logging can be reconfigured
_file_handler: Optional[RotatingFileHandler] = None


def _resolve_level(level_name: str) -> Optional[int]:
    level = getattr(logging, level_name.upper(), None)
    return level if isinstance(level, int) else None


def set_log_level(level_name: str) -> None:
    """
    Set the log level for the crossjdk logger and all attached handlers.

    Invalid level names log a warning and leave the configuration unchanged.
    Console (Rich) handlers always use a message-only formatter; other handlers
    use the informational format at INFO and above and the debug format below.

    Parameters:
        level_name (str): Case-insensitive logging level name (e.g., "debug", "INFO").
    """
    level = _resolve_level(level_name)
    if level is None:
        logger.warning(f"Invalid log level name: {level_name}. Using current level.")
        return

    logger.setLevel(level)

    for handler in logger.handlers:
        handler.setLevel(level)
        if isinstance(handler, RichHandler):
            formatter = logging.Formatter("%(message)s")
        elif level >= logging.INFO:
            formatter = logging.Formatter(INFO_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        else:
            formatter = logging.Formatter(DEBUG_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        handler.setFormatter(formatter)

    logger.log(level, f"Log level set to {logging.getLevelName(level)}")


def add_file_logging(
    log_dir_path: Path, level_name: str = "INFO", file_name: str = LOG_FILE_NAME
) -> None:
    """
    Enable rotating file logging to `file_name` inside `log_dir_path`.

    The directory is created if needed. Any file handler previously installed by
    this module is removed and closed first. Invalid level names fall back to INFO.
    """
    global _file_handler
    if _file_handler and _file_handler in logger.handlers:
        logger.removeHandler(_file_handler)
        _file_handler.close()

    log_dir_path.mkdir(parents=True, exist_ok=True)
    log_file = log_dir_path / file_name

    resolved = _resolve_level(level_name)
    if resolved is None:
        logger.warning(
            f"Invalid file log level name: {level_name}. Defaulting to INFO."
        )
        resolved = logging.INFO
    if resolved >= logging.INFO:
        file_formatter = logging.Formatter(INFO_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    else:
        file_formatter = logging.Formatter(DEBUG_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    _file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    _file_handler.setFormatter(file_formatter)
    _file_handler.setLevel(resolved)

    logger.addHandler(_file_handler)
    logger.info(
        f"File logging enabled at {log_file} with level {logging.getLevelName(resolved)}"
    )


def configure_logging(
    level_name: Optional[str] = None,
    log_dir: Optional[str] = None,
    build_dir: Optional[Path] = None,
    file_name: str = LOG_FILE_NAME,
) -> Optional[Path]:
    """
    Apply the LOG_LEVEL / LOG_DIR / LOG_FILE_NAME settings of a crossjdk run.

    A relative `log_dir` is placed under `build_dir`, so each build keeps its
    own log next to its runtime directory. Returns the log file path when file
    logging was enabled.
    """
    if level_name:
        set_log_level(level_name)
    if not log_dir:
        return None

    log_dir_path = Path(log_dir).expanduser()
    if not log_dir_path.is_absolute() and build_dir is not None:
        log_dir_path = Path(build_dir) / log_dir_path
    add_file_logging(log_dir_path, level_name or "INFO", file_name)
    return log_dir_path / file_name


def _initialize_logger() -> None:
    """
    Initialize the crossjdk logger with a console RichHandler.

    Removes existing handlers, disables propagation to the root logger and reads
    the initial level from the environment variable named by LOG_LEVEL_ENV_VAR
    (INFO when unset or invalid). File logging is opt-in via add_file_logging().
    """
    logger.propagate = False

    # Interactive sessions may import the module more than once
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        log_time_format=LOG_DATE_FORMAT,
    )

    default_log_level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
    resolved = _resolve_level(default_log_level)
    if resolved is None:
        logger.warning(
            f"Invalid {LOG_LEVEL_ENV_VAR}={default_log_level}; defaulting to INFO."
        )
        resolved = logging.INFO

    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    logger.setLevel(resolved)
    console_handler.setLevel(resolved)


_initialize_logger()
