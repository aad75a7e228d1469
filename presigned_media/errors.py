"""Error taxonomy for signed URL handling.

Only ResolutionError and ExhaustedError are surfaced to consumers. The others
are absorbed by the lifecycle manager: ParseError falls back to a default
expiry, NetworkError and ProtocolError are retried through the governor.
"""

from __future__ import annotations


class SignedUrlError(Exception):
    """Base class for all signed URL errors."""


class ParseError(SignedUrlError):
    """Expiry could not be derived from a signed URL."""


class ResolutionError(SignedUrlError):
    """A reference cannot be mapped to a storage key."""

    def __init__(self, reference: str | None) -> None:
        super().__init__(f"Could not extract file key from reference: {reference!r}")
        self.reference = reference


class NetworkError(SignedUrlError):
    """The refresh call failed at the transport or HTTP level."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(SignedUrlError):
    """The refresh endpoint answered with a malformed or unsuccessful envelope."""


class ExhaustedError(SignedUrlError):
    """Refresh attempts hit the ceiling; terminal until the reference changes."""

    def __init__(
        self,
        storage_key: str | None,
        attempts: int,
        last_error: BaseException | None = None,
    ) -> None:
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(
            f"Giving up on {storage_key!r} after {attempts} attempts{detail}"
        )
        self.storage_key = storage_key
        self.attempts = attempts
        self.last_error = last_error
