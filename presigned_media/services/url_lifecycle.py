"""Per-reference lifecycle of a signed URL.

A SignedUrlTracker follows one reference at a time. Four triggers feed the
same gated refresh path:

- the initial resolution of a bare storage key,
- the proactive timer armed one lead time before expiry,
- a consumer reporting that the current URL failed to load,
- a retry one debounce interval after an attempt failed.

State for a reference lives in a single SignedUrlState record. Binding a new
reference replaces that record; refreshes still in flight hold the old record
and drop their result when they find it is no longer the live one.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from datetime import timedelta
from typing import Callable

from presigned_media.enums import BindingPhase, GateDecision, RefreshTrigger
from presigned_media.errors import (
    ExhaustedError,
    NetworkError,
    ProtocolError,
    ResolutionError,
    SignedUrlError,
)
from presigned_media.models.references import EntityAssociation, SignedResourceReference
from presigned_media.models.refresh import RefreshedUrl
from presigned_media.models.state import SignedUrlSnapshot, SignedUrlState
from presigned_media.observability.redaction import redact_signed_url
from presigned_media.observability.refresh_activity import RefreshObserver
from presigned_media.services.expiration_parser import (
    DEFAULT_FALLBACK_VALIDITY,
    parse_expiration,
    utcnow,
)
from presigned_media.services.reference_resolver import is_absolute_url, resolve_storage_key
from presigned_media.services.refresh_executor import RefreshExecutor
from presigned_media.services.refresh_scheduler import Clock, RefreshScheduler
from presigned_media.services.retry_governor import RetryGovernor

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[SignedUrlError], None]
RefreshedCallback = Callable[[SignedResourceReference, RefreshedUrl], None]
SnapshotListener = Callable[[SignedUrlSnapshot], None]

_session_ids = itertools.count(1)


class SignedUrlTracker:
    """Keeps one reference's signed URL valid for as long as it is tracked."""

    def __init__(
        self,
        executor: RefreshExecutor,
        *,
        governor: RetryGovernor | None = None,
        scheduler: RefreshScheduler | None = None,
        clock: Clock = utcnow,
        fallback_validity: timedelta = DEFAULT_FALLBACK_VALIDITY,
        on_error: ErrorCallback | None = None,
        on_refreshed: RefreshedCallback | None = None,
        observer: RefreshObserver | None = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            executor: Performs the network call.
            governor: Attempt gating; defaults to 3 attempts, 2s spacing.
            scheduler: Proactive timer; defaults to a 1h lead time.
            clock: Returns the current aware UTC datetime.
            fallback_validity: Validity assumed for URLs without expiry parameters.
            on_error: Receives ResolutionError and ExhaustedError.
            on_refreshed: Receives every successful refresh of the live session.
            observer: Notified when network refreshes start and finish.
        """
        self._executor = executor
        self._governor = governor or RetryGovernor()
        self._clock = clock
        self._scheduler = scheduler or RefreshScheduler(clock=clock)
        self._fallback_validity = fallback_validity
        self.on_error = on_error
        self.on_refreshed = on_refreshed
        self._observer = observer
        self._listeners: list[SnapshotListener] = []
        self._tasks: set[asyncio.Task] = set()
        self._state = self._new_state(SignedResourceReference())

    # ------------------------------------------------------------------
    # Consumer-facing API
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> SignedUrlSnapshot:
        return self._state.snapshot()

    @property
    def reference(self) -> SignedResourceReference:
        return self._state.reference

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    @property
    def governor(self) -> RetryGovernor:
        return self._governor

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def track(
        self,
        reference: str | None,
        association: EntityAssociation | None = None,
    ) -> SignedUrlSnapshot:
        """Start a new session for ``reference``, discarding the previous one.

        Args:
            reference: Storage key, signed URL, or None.
            association: Owning record for persistence of refreshed URLs.

        Returns:
            The snapshot of the new session right after it started.

        Must run inside an event loop when the reference needs a network
        refresh or a timer.
        """
        self._end_session()

        ref = SignedResourceReference(
            raw=reference,
            storage_key=resolve_storage_key(reference),
            association=association,
        )
        state = self._new_state(ref)
        self._state = state

        if ref.is_empty:
            logger.debug("Tracking empty reference (session %d)", state.session_id)
            self._notify()
            return state.snapshot()

        raw = ref.raw.strip()
        if raw.lower().startswith("data:"):
            # Inline content never expires and has nothing to refresh.
            state.current_url = raw
            state.phase = BindingPhase.VALID
            self._notify()
            return state.snapshot()

        if is_absolute_url(raw):
            state.current_url = raw
            state.expires_at = parse_expiration(
                raw, now=self._clock(), fallback=self._fallback_validity
            )
            state.phase = BindingPhase.VALID

        if not ref.is_refreshable:
            logger.warning(
                "Reference cannot be refreshed: %s", redact_signed_url(raw)
            )
            self._surface(ResolutionError(raw))
            self._notify()
            return state.snapshot()

        if state.current_url is None:
            state.phase = BindingPhase.RESOLVING
            self._notify()
            self._spawn(state, RefreshTrigger.INITIAL)
        else:
            self._notify()
            self._arm(state)

        return state.snapshot()

    async def report_load_failure(self) -> str | None:
        """Reactive path: the consumer could not load the current URL.

        Returns:
            The new URL, or None if the refresh was skipped, failed or the
            session is exhausted.
        """
        state = self._state
        if state.reference.is_empty:
            return None

        if not state.reference.is_refreshable:
            if not state.exhausted:
                state.exhausted = True
                state.phase = BindingPhase.EXHAUSTED
                self._notify()
            return None

        return await self._refresh(state, RefreshTrigger.REACTIVE)

    async def refresh_now(self) -> str | None:
        """Run the gated refresh path on demand."""
        state = self._state
        if not state.reference.is_refreshable:
            return None
        return await self._refresh(state, RefreshTrigger.PROACTIVE)

    async def wait_idle(self) -> None:
        """Wait for refresh tasks spawned by timers or track() to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def dispose(self) -> None:
        """Cancel the timer and discard state; the tracker can be reused with track()."""
        self._end_session()
        self._state = self._new_state(SignedResourceReference())
        self._notify()
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Refresh path
    # ------------------------------------------------------------------

    def _is_live(self, state: SignedUrlState) -> bool:
        return state is self._state

    def _spawn(self, state: SignedUrlState, trigger: RefreshTrigger) -> None:
        task = asyncio.get_running_loop().create_task(self._refresh(state, trigger))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _refresh(self, state: SignedUrlState, trigger: RefreshTrigger) -> str | None:
        if not self._is_live(state):
            return None

        decision = self._governor.try_begin(state, self._clock())
        if decision is GateDecision.SKIP:
            return None
        if decision is GateDecision.EXHAUSTED:
            self._scheduler.cancel()
            self._notify()
            self._surface(
                ExhaustedError(state.storage_key, state.attempt_count, state.last_error)
            )
            return None

        key = state.storage_key
        state.phase = (
            BindingPhase.REFRESH_PENDING if state.current_url else BindingPhase.RESOLVING
        )
        self._notify()
        logger.debug(
            "Refreshing %s (trigger=%s, attempt %d/%d, session %d)",
            key,
            trigger,
            state.attempt_count,
            self._governor.max_attempts,
            state.session_id,
        )

        if self._observer is not None:
            self._observer.refresh_started(key)
        try:
            refreshed = await self._executor.execute(key, state.reference.association)
        except (NetworkError, ProtocolError) as e:
            if self._observer is not None:
                self._observer.refresh_finished(key, False)
            return self._handle_failure(state, trigger, e)
        except Exception as e:
            logger.exception("Unexpected error while refreshing %s", key)
            if self._observer is not None:
                self._observer.refresh_finished(key, False)
            return self._handle_failure(
                state, trigger, NetworkError(f"Unexpected refresh error: {e}")
            )

        if self._observer is not None:
            self._observer.refresh_finished(key, True)
        return self._handle_success(state, refreshed)

    def _handle_failure(
        self,
        state: SignedUrlState,
        trigger: RefreshTrigger,
        error: SignedUrlError,
    ) -> None:
        if not self._is_live(state):
            logger.debug("Discarding failed refresh for stale session %d", state.session_id)
            return None

        if self._governor.record_failure(state, error):
            logger.warning(
                "Refresh of %s failed (trigger=%s, attempt %d/%d): %s",
                state.storage_key,
                trigger,
                state.attempt_count,
                self._governor.max_attempts,
                error,
            )
            self._scheduler.cancel()
            self._notify()
            self._surface(ExhaustedError(state.storage_key, state.attempt_count, error))
            return None

        retry_delay = self._governor.min_interval
        logger.warning(
            "Refresh of %s failed (trigger=%s, attempt %d/%d): %s; %d left, retrying in %.1fs",
            state.storage_key,
            trigger,
            state.attempt_count,
            self._governor.max_attempts,
            error,
            self._governor.remaining_attempts(state),
            retry_delay.total_seconds(),
        )
        state.phase = BindingPhase.VALID if state.current_url else BindingPhase.RESOLVING
        self._notify()
        self._scheduler.retry_in(
            retry_delay,
            lambda: self._spawn(state, RefreshTrigger.RETRY),
        )
        return None

    def _handle_success(self, state: SignedUrlState, refreshed: RefreshedUrl) -> str | None:
        if not self._is_live(state):
            logger.debug(
                "Discarding refreshed URL for stale session %d", state.session_id
            )
            return None

        now = self._clock()
        if refreshed.expires_in is not None:
            expires_at = now + timedelta(seconds=refreshed.expires_in)
        else:
            expires_at = parse_expiration(
                refreshed.url, now=now, fallback=self._fallback_validity
            )

        self._governor.record_success(state)
        state.current_url = refreshed.url
        state.expires_at = expires_at
        state.phase = BindingPhase.VALID
        self._notify()

        if self.on_refreshed is not None:
            try:
                self.on_refreshed(state.reference, refreshed)
            except Exception:
                logger.exception("on_refreshed callback failed for %s", state.storage_key)

        # A URL that is already inside the lead window is as fresh as the
        # backend issues; the next refresh waits for a load failure.
        self._arm(state, fire_immediately=False)
        return refreshed.url

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _arm(self, state: SignedUrlState, *, fire_immediately: bool = True) -> None:
        if state.expires_at is None or not self._is_live(state):
            return
        self._scheduler.arm(
            state.expires_at,
            lambda: self._spawn(state, RefreshTrigger.PROACTIVE),
            fire_immediately=fire_immediately,
        )

    def _new_state(self, reference: SignedResourceReference) -> SignedUrlState:
        return SignedUrlState(reference=reference, session_id=next(_session_ids))

    def _end_session(self) -> None:
        self._scheduler.cancel()

    def _surface(self, error: SignedUrlError) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception:
            logger.exception("on_error callback failed")

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self._state.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Snapshot listener failed")
