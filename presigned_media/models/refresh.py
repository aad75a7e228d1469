"""Refresh endpoint envelope and result models."""

from __future__ import annotations

from pydantic import Field

from presigned_media.models.base import JsonModel

# Ten years; anything longer is not a real signing window.
MAX_EXPIRES_IN_SECONDS = 10 * 365 * 24 * 3600


class RefreshPayload(JsonModel):
    file_key: str | None = None
    presigned_url: str | None = None
    expires_in: float | None = Field(
        default=None, ge=0, le=MAX_EXPIRES_IN_SECONDS, allow_inf_nan=False
    )


class RefreshEnvelope(JsonModel):
    """`{success, data?: {fileKey, presignedUrl, expiresIn}, message?}`."""

    success: bool = False
    data: RefreshPayload | None = None
    message: str | None = None


class RefreshedUrl(JsonModel):
    """A freshly signed URL and its validity window in seconds."""

    file_key: str
    url: str
    expires_in: float | None = None
