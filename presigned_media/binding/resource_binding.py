"""Image-element side of the lifecycle.

A ResourceBinding stands in for one rendered image: it reads the tracker's
current URL, reports load failures back to it, and switches to a static
placeholder once the tracker gives up. When the image belongs to a database
record, every refreshed URL is handed to a persister so the stored copy stays
current.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

from presigned_media.errors import SignedUrlError
from presigned_media.models.references import EntityAssociation, SignedResourceReference
from presigned_media.models.refresh import RefreshedUrl
from presigned_media.models.state import SignedUrlSnapshot
from presigned_media.observability.redaction import redact_signed_url
from presigned_media.services.url_lifecycle import SignedUrlTracker

logger = logging.getLogger(__name__)

# Neutral "broken image" glyph shown once a reference is given up on.
FALLBACK_IMAGE_SRC = (
    "data:image/svg+xml;base64,PHN2ZyB3aWR0aD0iODgiIGhlaWdodD0iODgiIHhtbG5zPSJodHRwOi8v"
    "d3d3LnczLm9yZy8yMDAwL3N2ZyIgc3Ryb2tlPSIjMDAwIiBzdHJva2UtbGluZWpvaW49InJvdW5kIiBv"
    "cGFjaXR5PSIuMyIgZmlsbD0ibm9uZSIgc3Ryb2tlLXdpZHRoPSIzLjciPjxyZWN0IHg9IjE2IiB5PSIx"
    "NiIgd2lkdGg9IjU2IiBoZWlnaHQ9IjU2IiByeD0iNiIvPjxwYXRoIGQ9Im0xNiA1OCAxNi0xOCAzMiAz"
    "MiIvPjxjaXJjbGUgY3g9IjUzIiBjeT0iMzUiIHI9IjciLz48L3N2Zz4KCg=="
)


@runtime_checkable
class EntityUrlPersister(Protocol):
    """Stores a refreshed URL on the record that owns the image."""

    async def persist(self, association: EntityAssociation, url: str) -> None: ...


class ResourceBinding:
    """Rendering surface for one signed image reference."""

    def __init__(
        self,
        tracker: SignedUrlTracker,
        *,
        persister: EntityUrlPersister | None = None,
        fallback_src: str = FALLBACK_IMAGE_SRC,
    ) -> None:
        self._tracker = tracker
        self._persister = persister
        self._fallback_src = fallback_src
        self._persist_tasks: set[asyncio.Task] = set()
        self._last_error: SignedUrlError | None = None

        self._chained_on_error = tracker.on_error
        self._chained_on_refreshed = tracker.on_refreshed
        tracker.on_error = self._handle_tracker_error
        tracker.on_refreshed = self._handle_refreshed

    @property
    def tracker(self) -> SignedUrlTracker:
        return self._tracker

    @property
    def snapshot(self) -> SignedUrlSnapshot:
        return self._tracker.snapshot

    @property
    def last_error(self) -> SignedUrlError | None:
        return self._last_error

    @property
    def shows_fallback(self) -> bool:
        snap = self._tracker.snapshot
        return snap.exhausted or not snap.current_url

    @property
    def src(self) -> str:
        """Image source to render right now."""
        if self.shows_fallback:
            return self._fallback_src
        return self._tracker.snapshot.current_url

    def bind(
        self,
        reference: str | None,
        association: EntityAssociation | None = None,
    ) -> SignedUrlSnapshot:
        """Point the image at a (possibly new) reference.

        Rebinding the same reference and association keeps the current
        session, so re-renders do not reset retry bookkeeping.
        """
        current = self._tracker.reference
        if (
            current.raw is not None
            and current.raw == reference
            and current.association == association
        ):
            return self._tracker.snapshot

        self._last_error = None
        return self._tracker.track(reference, association)

    async def handle_error(self) -> str:
        """Called when the image failed to load; returns the source to try next."""
        logger.debug("Image load failed: %s", redact_signed_url(self._tracker.snapshot.current_url))
        await self._tracker.report_load_failure()
        return self.src

    def handle_load(self) -> None:
        logger.debug("Image loaded: %s", redact_signed_url(self._tracker.snapshot.current_url))

    async def wait_idle(self) -> None:
        """Wait for tracker refreshes and pending persistence writes."""
        await self._tracker.wait_idle()
        while self._persist_tasks:
            await asyncio.gather(*list(self._persist_tasks))

    def close(self) -> None:
        self._tracker.dispose()

    def _handle_tracker_error(self, error: SignedUrlError) -> None:
        self._last_error = error
        if self._chained_on_error is not None:
            self._chained_on_error(error)

    def _handle_refreshed(
        self,
        reference: SignedResourceReference,
        refreshed: RefreshedUrl,
    ) -> None:
        if self._chained_on_refreshed is not None:
            self._chained_on_refreshed(reference, refreshed)

        if self._persister is None or reference.association is None:
            return

        task = asyncio.get_running_loop().create_task(
            self._persist(reference.association, refreshed.url)
        )
        self._persist_tasks.add(task)
        task.add_done_callback(self._persist_tasks.discard)

    async def _persist(self, association: EntityAssociation, url: str) -> None:
        try:
            await self._persister.persist(association, url)
        except Exception:
            # Persistence is best effort; the displayed URL is already valid.
            logger.exception(
                "Failed to persist refreshed URL for %s/%s",
                association.entity_type,
                association.entity_id,
            )
        else:
            logger.debug(
                "Persisted refreshed URL for %s/%s",
                association.entity_type,
                association.entity_id,
            )
