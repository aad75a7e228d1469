"""Observability utilities (redaction, error logging, refresh activity)."""

from presigned_media.observability.error_log_file import setup_error_log_file
from presigned_media.observability.redaction import redact_signed_url, redact_text
from presigned_media.observability.refresh_activity import (
    ActivitySnapshot,
    RefreshActivity,
    RefreshObserver,
)

__all__ = [
    "ActivitySnapshot",
    "RefreshActivity",
    "RefreshObserver",
    "redact_signed_url",
    "redact_text",
    "setup_error_log_file",
]
