"""Logging configuration helpers for the backuplit service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

DEFAULT_LOGGER_NAME = "backuplit"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def parse_level(level: Union[int, str, None], default: int = logging.INFO) -> int:
    """Resolve ``"debug"``/``"INFO"``/``10`` style levels to a logging constant."""
    if isinstance(level, int):
        return level
    if not level:
        return default
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else default


def _build_handlers(
    log_file: Union[str, Path, None],
    include_stream: bool,
) -> tuple[List[logging.Handler], Optional[str]]:
    handlers: List[logging.Handler] = []
    warning = None
    if log_file:
        log_path = Path(log_file).expanduser()
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
        except OSError as exc:
            warning = f"Cannot write log file '{log_path}', logging to the console only: {exc}"
            include_stream = True
    if include_stream:
        handlers.append(logging.StreamHandler())
    return handlers, warning


def configure_logging(
    logger_name: Optional[str] = None,
    *,
    level: Union[int, str] = logging.INFO,
    log_file: Union[str, Path, None] = None,
    include_stream: bool = True,
) -> logging.Logger:
    """Install root handlers and return the service logger.

    An unwritable ``log_file`` is reported through the returned logger and
    console output is used instead.
    """
    numeric_level = parse_level(level)
    handlers, warning = _build_handlers(log_file, include_stream)
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    logger = logging.getLogger(logger_name or DEFAULT_LOGGER_NAME)
    logger.setLevel(numeric_level)
    if warning:
        logger.warning(warning)
    return logger


__all__ = ["configure_logging", "parse_level"]
