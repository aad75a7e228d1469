"""Consumer-side bindings for rendering signed images."""

from presigned_media.binding.resource_binding import (
    FALLBACK_IMAGE_SRC,
    EntityUrlPersister,
    ResourceBinding,
)

__all__ = ["FALLBACK_IMAGE_SRC", "EntityUrlPersister", "ResourceBinding"]
