"""Proactive refresh timer for one tracked reference."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable

from presigned_media.services.expiration_parser import utcnow

logger = logging.getLogger(__name__)

DEFAULT_LEAD_TIME = timedelta(hours=1)

Clock = Callable[[], datetime]


class RefreshScheduler:
    """Owns at most one pending timer.

    Arming always cancels the previous timer first. When the refresh window
    has already opened the callback runs immediately instead of being
    scheduled.
    """

    def __init__(
        self,
        lead_time: timedelta = DEFAULT_LEAD_TIME,
        *,
        clock: Clock = utcnow,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.lead_time = lead_time
        self._clock = clock
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._delay: float | None = None
        self._fires_at: datetime | None = None

    @property
    def is_armed(self) -> bool:
        return self._handle is not None and not self._handle.cancelled()

    @property
    def delay(self) -> float | None:
        """Seconds computed by the last arm() call (0.0 for an immediate refresh)."""
        return self._delay

    @property
    def fires_at(self) -> datetime | None:
        return self._fires_at

    def arm(
        self,
        expires_at: datetime,
        callback: Callable[[], None],
        *,
        fire_immediately: bool = True,
    ) -> float:
        """Schedule ``callback`` one lead time before ``expires_at``.

        Args:
            expires_at: Absolute expiry of the current URL.
            callback: Invoked when the refresh window opens.
            fire_immediately: When False and the window is already open, the
                callback is not run and nothing is scheduled.

        Returns:
            The delay in seconds; 0.0 means the window is already open.
        """
        self.cancel()

        now = self._clock()
        delay = ((expires_at - now) - self.lead_time).total_seconds()

        if delay <= 0:
            self._delay = 0.0
            self._fires_at = now
            if not fire_immediately:
                logger.debug(
                    "Expiry %s is already inside the %s lead window; not re-arming",
                    expires_at,
                    self.lead_time,
                )
                return 0.0
            logger.debug("Expiry %s is inside the lead window; refreshing now", expires_at)
            callback()
            return 0.0

        loop = self._loop or asyncio.get_running_loop()
        self._delay = delay
        self._fires_at = now + timedelta(seconds=delay)
        self._handle = loop.call_later(delay, self._fire, callback)
        logger.debug("Proactive refresh armed in %.1fs (at %s)", delay, self._fires_at)
        return delay

    def retry_in(self, delay: timedelta, callback: Callable[[], None]) -> float:
        """Schedule ``callback`` after ``delay``, replacing any pending timer.

        Unlike arm(), the callback always goes through the event loop.
        """
        self.cancel()

        seconds = max(0.0, delay.total_seconds())
        loop = self._loop or asyncio.get_running_loop()
        self._delay = seconds
        self._fires_at = self._clock() + timedelta(seconds=seconds)
        self._handle = loop.call_later(seconds, self._fire, callback)
        logger.debug("Retry armed in %.3fs", seconds)
        return seconds

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        try:
            callback()
        except Exception:
            logger.exception("Proactive refresh callback failed")
