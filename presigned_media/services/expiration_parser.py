"""Expiry extraction for signed URLs.

Signed S3 and GCS URLs carry their own validity window in the query string:
an issue timestamp (`X-Amz-Date` / `X-Goog-Date`) in the compact
``YYYYMMDDTHHMMSSZ`` form and a duration in seconds (`X-Amz-Expires` /
`X-Goog-Expires`). The absolute expiry is their sum.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qsl, urlsplit

from presigned_media.errors import ParseError

logger = logging.getLogger(__name__)

# Matches the backend's default signing duration.
DEFAULT_FALLBACK_VALIDITY = timedelta(days=7)

_DURATION_PARAMS = ("x-amz-expires", "x-goog-expires")
_ISSUED_AT_PARAMS = ("x-amz-date", "x-goog-date")
_COMPACT_TIMESTAMP_LEN = len("20240101T000000Z")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def decode_compact_timestamp(value: str) -> datetime:
    """Decode ``YYYYMMDDTHHMMSSZ`` into an aware UTC datetime.

    Raises:
        ParseError: If the value is not in the compact form.
    """
    value = (value or "").strip()
    if len(value) != _COMPACT_TIMESTAMP_LEN or value[8] != "T" or value[-1] != "Z":
        raise ParseError(f"Not a compact timestamp: {value!r}")

    digits = value[0:8] + value[9:15]
    if not digits.isdigit():
        raise ParseError(f"Not a compact timestamp: {value!r}")

    try:
        return datetime(
            year=int(value[0:4]),
            month=int(value[4:6]),
            day=int(value[6:8]),
            hour=int(value[9:11]),
            minute=int(value[11:13]),
            second=int(value[13:15]),
            tzinfo=timezone.utc,
        )
    except ValueError as e:
        raise ParseError(f"Invalid calendar fields in {value!r}: {e}") from e


def _query_params(url: str) -> dict[str, str]:
    query = urlsplit(url).query
    return {k.lower(): v for k, v in parse_qsl(query, keep_blank_values=True)}


def _first(params: dict[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        if name in params:
            return params[name]
    return None


def extract_expiration(url: str) -> datetime:
    """Strict variant of parse_expiration.

    Raises:
        ParseError: If either parameter is missing or malformed.
    """
    try:
        params = _query_params(url)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Unparseable URL: {e}") from e

    duration_raw = _first(params, _DURATION_PARAMS)
    issued_raw = _first(params, _ISSUED_AT_PARAMS)
    if duration_raw is None or issued_raw is None:
        raise ParseError("URL carries no expiry parameters")

    try:
        duration = int(duration_raw)
    except ValueError as e:
        raise ParseError(f"Invalid duration {duration_raw!r}") from e
    if duration < 0:
        raise ParseError(f"Negative duration {duration}")

    issued_at = decode_compact_timestamp(issued_raw)
    try:
        return issued_at + timedelta(seconds=duration)
    except OverflowError as e:
        raise ParseError(f"Duration out of range: {duration}") from e


def parse_expiration(
    url: str | None,
    *,
    now: datetime | None = None,
    fallback: timedelta = DEFAULT_FALLBACK_VALIDITY,
) -> datetime:
    """Return the absolute expiry of a signed URL.

    Never raises: a missing or malformed expiry yields ``now + fallback``.

    Args:
        url: Signed URL to inspect.
        now: Reference instant for the fallback (defaults to current UTC time).
        fallback: Validity assumed when the URL has no parseable expiry.

    Returns:
        Aware UTC datetime.
    """
    try:
        return extract_expiration(url or "")
    except ParseError as e:
        logger.debug("Falling back to default expiry: %s", e)
        return (now or utcnow()) + fallback
