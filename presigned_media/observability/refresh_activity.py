"""In-flight refresh accounting.

Consumers that show a global "loading" indicator subscribe to a
RefreshActivity instance and get told when the number of in-flight refreshes
crosses between zero and non-zero. Instances are injected into trackers; there
is no module-level singleton.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol, runtime_checkable

from presigned_media.models.base import JsonModel

logger = logging.getLogger(__name__)


@runtime_checkable
class RefreshObserver(Protocol):
    """Receives start/finish notifications for every network refresh."""

    def refresh_started(self, storage_key: str) -> None: ...

    def refresh_finished(self, storage_key: str, ok: bool) -> None: ...


class ActivitySnapshot(JsonModel):
    status: str = "idle"  # idle | refreshing

    inflight: int = 0
    succeeded: int = 0
    failed: int = 0
    last_progress_age_s: float = 0.0
    last_key: str | None = None


class RefreshActivity:
    """Counts in-flight refreshes and notifies loading subscribers."""

    def __init__(self) -> None:
        self._inflight = 0
        self._succeeded = 0
        self._failed = 0
        self._last_progress_monotonic = time.monotonic()
        self._last_key: str | None = None
        self._subscribers: list[Callable[[bool], None]] = []

    @property
    def loading(self) -> bool:
        return self._inflight > 0

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Register a callback invoked with the new loading flag on each edge."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def refresh_started(self, storage_key: str) -> None:
        was_loading = self.loading
        self._inflight += 1
        self._mark(storage_key)
        if not was_loading:
            self._notify(True)

    def refresh_finished(self, storage_key: str, ok: bool) -> None:
        self._inflight = max(0, self._inflight - 1)
        if ok:
            self._succeeded += 1
        else:
            self._failed += 1
        self._mark(storage_key)
        if not self.loading:
            self._notify(False)

    def snapshot(self) -> ActivitySnapshot:
        return ActivitySnapshot(
            status="refreshing" if self.loading else "idle",
            inflight=self._inflight,
            succeeded=self._succeeded,
            failed=self._failed,
            last_progress_age_s=max(0.0, time.monotonic() - self._last_progress_monotonic),
            last_key=self._last_key,
        )

    def _mark(self, storage_key: str) -> None:
        self._last_progress_monotonic = time.monotonic()
        self._last_key = storage_key

    def _notify(self, loading: bool) -> None:
        for callback in list(self._subscribers):
            try:
                callback(loading)
            except Exception:
                logger.exception("Loading subscriber failed")
