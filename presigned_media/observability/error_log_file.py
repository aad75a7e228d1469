"""Rotating file handler for refresh warnings and exhaustion errors.

Failed refreshes are absorbed by the retry governor and never reach the
consumer, so the file is the place to look when images silently fall back.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from presigned_media.config import MediaConfig


_error_file_handler: RotatingFileHandler | None = None


def setup_error_log_file(config: "MediaConfig") -> RotatingFileHandler | None:
    """Attach a rotating warnings file to the root logger.

    Args:
        config: Configuration with error log settings.

    Returns:
        The configured RotatingFileHandler, or None if disabled or unwritable.
    """
    global _error_file_handler

    if not config.error_log_file_enabled:
        return None

    if _error_file_handler is not None:
        return _error_file_handler

    log_level = getattr(logging, config.error_log_level.upper(), logging.WARNING)

    log_file = Path(config.error_log_file_path).expanduser()
    if not log_file.is_absolute():
        from presigned_media.config import _find_repo_root

        log_file = _find_repo_root(start=Path(__file__)) / log_file
    log_file = log_file.resolve()

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=config.error_log_max_bytes,
            backupCount=config.error_log_backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        print(f"Warning: Cannot create error log file {log_file}: {e}", file=sys.stderr)
        return None

    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logging.getLogger().addHandler(handler)
    _error_file_handler = handler

    logging.getLogger(__name__).info(
        "Error log file handler initialized: %s (level=%s)",
        log_file,
        logging.getLevelName(log_level),
    )
    return handler
