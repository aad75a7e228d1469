"""Gatekeeper for refresh attempts.

Every refresh, whether fired by the proactive timer, a failed image load or
the initial resolution of a bare key, asks the governor first. The governor
only touches the SignedUrlState it is handed and never awaits, so a check and
the matching update always happen in the same event-loop step.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from presigned_media.enums import BindingPhase, GateDecision
from presigned_media.models.state import SignedUrlState

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_INTERVAL = timedelta(milliseconds=2000)


class RetryGovernor:
    """Enforces re-entrancy, attempt ceiling and debounce spacing."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_interval: timedelta = DEFAULT_MIN_INTERVAL,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.min_interval = min_interval

    def try_begin(self, state: SignedUrlState, now: datetime) -> GateDecision:
        """Decide whether a refresh may start and record it if so.

        Checks, in order: an in-flight refresh, the attempt ceiling, and the
        minimum spacing since the previous attempt.
        """
        if state.is_refreshing:
            logger.debug("Refresh already in flight for %s; skipping", state.storage_key)
            return GateDecision.SKIP

        if state.exhausted:
            return GateDecision.SKIP

        if state.attempt_count >= self.max_attempts:
            self._mark_exhausted(state)
            return GateDecision.EXHAUSTED

        if (
            state.last_attempt_at is not None
            and now - state.last_attempt_at < self.min_interval
        ):
            logger.debug(
                "Refresh for %s requested %.3fs after the last attempt; skipping",
                state.storage_key,
                (now - state.last_attempt_at).total_seconds(),
            )
            return GateDecision.SKIP

        state.is_refreshing = True
        state.attempt_count += 1
        state.last_attempt_at = now
        return GateDecision.PROCEED

    def record_success(self, state: SignedUrlState) -> None:
        state.attempt_count = 0
        state.is_refreshing = False
        state.last_error = None

    def record_failure(self, state: SignedUrlState, error: BaseException) -> bool:
        """Record a failed attempt.

        Returns:
            True if this failure exhausted the session.
        """
        state.is_refreshing = False
        state.last_error = error
        if state.attempt_count >= self.max_attempts:
            self._mark_exhausted(state)
            return True
        return False

    def remaining_attempts(self, state: SignedUrlState) -> int:
        if state.exhausted:
            return 0
        return max(0, self.max_attempts - state.attempt_count)

    def _mark_exhausted(self, state: SignedUrlState) -> None:
        state.exhausted = True
        state.phase = BindingPhase.EXHAUSTED
        logger.warning(
            "Refresh attempts exhausted for %s after %d attempts",
            state.storage_key,
            state.attempt_count,
        )
