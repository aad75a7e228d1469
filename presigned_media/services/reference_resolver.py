"""Map caller-supplied references onto canonical storage keys.

A reference is whatever a content record stored for an image: a bare storage
key (``images/1700000000-uuid.png``), a previously issued signed URL, or
nothing. Refresh requests always need the bare key.
"""

from __future__ import annotations

import logging
from urllib.parse import unquote, urlsplit

from presigned_media.observability.redaction import redact_signed_url

logger = logging.getLogger(__name__)

_PATH_STYLE_MARKER = "/file/"
_LOCAL_SCHEMES = ("blob:", "data:")


def is_absolute_url(value: str | None) -> bool:
    """True for http(s) URLs; bare keys and local blob/data URIs are not."""
    if not value:
        return False
    lowered = value.strip().lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


def is_local_url(value: str | None) -> bool:
    """True for browser-local URIs that can never be refreshed."""
    return bool(value) and value.strip().lower().startswith(_LOCAL_SCHEMES)


def _strip_query(value: str) -> str:
    for sep in ("?", "#"):
        idx = value.find(sep)
        if idx != -1:
            value = value[:idx]
    return value


def _key_from_path_style(url: str) -> str | None:
    """``https://host/file/<bucket>/<key>`` -> ``<key>``."""
    marker = url.find(_PATH_STYLE_MARKER)
    if marker == -1:
        return None

    bucket_start = marker + len(_PATH_STYLE_MARKER)
    bucket_end = url.find("/", bucket_start)
    if bucket_end == -1 or bucket_end == bucket_start:
        return None

    return _strip_query(url[bucket_end + 1 :])


def _key_from_s3_host(url: str) -> str | None:
    """Virtual-host and legacy path-style S3 URLs."""
    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    path = parts.path.lstrip("/")

    if ".s3." in host:
        # <bucket>.s3.<region>.amazonaws.com/<key>
        return path
    if host.startswith("s3.") or host.startswith("s3-"):
        # s3.<region>.amazonaws.com/<bucket>/<key>
        _, sep, key = path.partition("/")
        return key if sep else None
    return None


def resolve_storage_key(reference: str | None) -> str | None:
    """Return the storage key for a reference, or None if it cannot be refreshed.

    Never raises; None means "nothing to refresh".
    """
    if reference is None:
        return None

    value = reference.strip()
    if not value:
        return None

    if is_local_url(value):
        return None

    if not is_absolute_url(value):
        return value

    try:
        key = _key_from_path_style(value)
        if key is None:
            key = _key_from_s3_host(value)
    except ValueError as e:
        logger.warning("Failed to extract file key from %s: %s", redact_signed_url(value), e)
        return None

    if not key:
        logger.debug("No storage key recognised in %s", redact_signed_url(value))
        return None

    return unquote(key)
