"""Signed URL lifecycle services."""

from .expiration_parser import decode_compact_timestamp, parse_expiration
from .reference_resolver import is_absolute_url, resolve_storage_key
from .refresh_executor import RefreshExecutor, static_token_provider
from .refresh_scheduler import RefreshScheduler
from .retry_governor import RetryGovernor
from .url_lifecycle import SignedUrlTracker

__all__ = [
    "RefreshExecutor",
    "RefreshScheduler",
    "RetryGovernor",
    "SignedUrlTracker",
    "decode_compact_timestamp",
    "is_absolute_url",
    "parse_expiration",
    "resolve_storage_key",
    "static_token_provider",
]
