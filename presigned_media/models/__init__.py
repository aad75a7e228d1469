"""Typed models for references, refresh envelopes and tracker state."""

from presigned_media.models.references import EntityAssociation, SignedResourceReference
from presigned_media.models.refresh import RefreshedUrl, RefreshEnvelope, RefreshPayload
from presigned_media.models.state import SignedUrlSnapshot, SignedUrlState

__all__ = [
    "EntityAssociation",
    "RefreshedUrl",
    "RefreshEnvelope",
    "RefreshPayload",
    "SignedResourceReference",
    "SignedUrlSnapshot",
    "SignedUrlState",
]
