"""Wiring for trackers and bindings that share one HTTP client and config."""

from __future__ import annotations

import asyncio
import logging

import httpx

from presigned_media.binding.resource_binding import EntityUrlPersister, ResourceBinding
from presigned_media.config import MediaConfig
from presigned_media.models.references import EntityAssociation
from presigned_media.observability.refresh_activity import RefreshActivity, RefreshObserver
from presigned_media.services.expiration_parser import utcnow
from presigned_media.services.refresh_executor import (
    RefreshExecutor,
    TokenProvider,
    static_token_provider,
)
from presigned_media.services.refresh_scheduler import Clock, RefreshScheduler
from presigned_media.services.retry_governor import RetryGovernor
from presigned_media.services.url_lifecycle import (
    ErrorCallback,
    RefreshedCallback,
    SignedUrlTracker,
)

logger = logging.getLogger(__name__)


class SignedUrlService:
    """Creates trackers configured from MediaConfig.

    Owns the httpx client unless one is passed in. Use as an async context
    manager or call aclose() on shutdown.
    """

    def __init__(
        self,
        config: MediaConfig,
        *,
        client: httpx.AsyncClient | None = None,
        token_provider: TokenProvider | None = None,
        observer: RefreshObserver | None = None,
        clock: Clock = utcnow,
    ) -> None:
        """Initialize the service.

        Args:
            config: Endpoint and lifecycle settings.
            client: Optional pre-built client (tests pass one with a mock transport).
            token_provider: Bearer token source; defaults to config.auth_token.
            observer: Refresh observer; defaults to a fresh RefreshActivity.
            clock: Current-time source shared by every tracker.
        """
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.api_base_url,
            timeout=httpx.Timeout(config.request_timeout_seconds),
        )
        self.executor = RefreshExecutor(
            self._client,
            refresh_path=config.refresh_path,
            token_provider=token_provider or static_token_provider(config.auth_token),
        )
        self.activity = observer if observer is not None else RefreshActivity()
        self._clock = clock
        self._trackers: list[SignedUrlTracker] = []

        logger.info(
            "SignedUrlService initialized (endpoint=%s%s, lead_time=%ss, max_attempts=%d)",
            config.api_base_url,
            config.refresh_path,
            config.lead_time_seconds,
            config.max_attempts,
        )

    def create_tracker(
        self,
        *,
        on_error: ErrorCallback | None = None,
        on_refreshed: RefreshedCallback | None = None,
    ) -> SignedUrlTracker:
        tracker = SignedUrlTracker(
            self.executor,
            governor=RetryGovernor(
                max_attempts=self.config.max_attempts,
                min_interval=self.config.min_attempt_interval,
            ),
            scheduler=RefreshScheduler(self.config.lead_time, clock=self._clock),
            clock=self._clock,
            fallback_validity=self.config.fallback_validity,
            on_error=on_error,
            on_refreshed=on_refreshed,
            observer=self.activity,
        )
        self._trackers.append(tracker)
        return tracker

    def track(
        self,
        reference: str | None,
        association: EntityAssociation | None = None,
        *,
        on_error: ErrorCallback | None = None,
        on_refreshed: RefreshedCallback | None = None,
    ) -> SignedUrlTracker:
        """Create a tracker and start tracking ``reference`` with it."""
        tracker = self.create_tracker(on_error=on_error, on_refreshed=on_refreshed)
        tracker.track(reference, association)
        return tracker

    def bind(
        self,
        reference: str | None,
        association: EntityAssociation | None = None,
        *,
        persister: EntityUrlPersister | None = None,
        on_error: ErrorCallback | None = None,
    ) -> ResourceBinding:
        """Create a ResourceBinding for ``reference``."""
        binding = ResourceBinding(
            self.create_tracker(on_error=on_error),
            persister=persister,
        )
        binding.bind(reference, association)
        return binding

    async def aclose(self) -> None:
        """Dispose every tracker, let in-flight refreshes settle, close the client."""
        trackers, self._trackers = self._trackers, []
        for tracker in trackers:
            tracker.dispose()
        # Results of in-flight refreshes are discarded, but the requests still
        # need the client open until they finish.
        await asyncio.gather(*(tracker.wait_idle() for tracker in trackers))
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SignedUrlService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
