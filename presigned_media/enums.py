"""StrEnum definitions for type-safe constants."""

from enum import StrEnum


class GateDecision(StrEnum):
    """Outcome of asking the retry governor whether a refresh may start."""

    PROCEED = "proceed"
    SKIP = "skip"
    EXHAUSTED = "exhausted"


class BindingPhase(StrEnum):
    """Per-reference lifecycle phase."""

    UNINITIALIZED = "uninitialized"
    RESOLVING = "resolving"
    VALID = "valid"
    REFRESH_PENDING = "refresh_pending"
    EXHAUSTED = "exhausted"


class RefreshTrigger(StrEnum):
    """What caused a refresh attempt."""

    INITIAL = "initial"
    PROACTIVE = "proactive"
    REACTIVE = "reactive"
    RETRY = "retry"
