"""Logging helpers and filters.

Centralizes logging setup so the CLI entry point and embedding applications
configure handlers, third-party levels and redaction the same way.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

from presigned_media.observability.error_log_file import setup_error_log_file
from presigned_media.observability.redaction import redact_text

if TYPE_CHECKING:
    from presigned_media.config import MediaConfig


class RedactSignedUrlFilter(logging.Filter):
    """Mask URL signatures and bearer tokens in every record passing a handler.

    Module loggers already pass URLs through redact_signed_url; this catches
    third-party loggers (httpx logs full request URLs) and stray f-strings.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (filter)
        try:
            message = record.getMessage()
        except Exception:
            # Never break logging.
            return True

        redacted = redact_text(message, max_chars=0)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def install_redaction_filters(logger: logging.Logger | None = None) -> None:
    """Install RedactSignedUrlFilter on every handler of ``logger`` (root by default).

    Safe to call multiple times.
    """

    target = logger or logging.getLogger()
    for handler in target.handlers:
        if any(isinstance(f, RedactSignedUrlFilter) for f in handler.filters):
            continue
        handler.addFilter(RedactSignedUrlFilter())


def configure_logging(config: "MediaConfig", **basic_config: Any) -> None:
    """Configure root logging for the process.

    Args:
        config: Configuration carrying the log level and error file options.
        **basic_config: Extra keyword arguments forwarded to logging.basicConfig.
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    basic_config.setdefault("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    basic_config.setdefault("handlers", [logging.StreamHandler(sys.stdout)])
    logging.basicConfig(level=level, **basic_config)

    # httpx logs every request line at INFO, full signed URLs included.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    setup_error_log_file(config)
    install_redaction_filters()
