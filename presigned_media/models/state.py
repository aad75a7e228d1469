"""Per-reference mutable state and its read-only snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from presigned_media.enums import BindingPhase
from presigned_media.models.base import JsonModel
from presigned_media.models.references import SignedResourceReference


class SignedUrlSnapshot(JsonModel):
    """What a rendering consumer is allowed to see."""

    current_url: str | None = None
    is_refreshing: bool = False
    exhausted: bool = False
    phase: BindingPhase = BindingPhase.UNINITIALIZED
    attempt_count: int = 0
    expires_at: datetime | None = None
    storage_key: str | None = None


@dataclass(slots=True, eq=False)
class SignedUrlState:
    """Mutable record owned by exactly one tracker session.

    Identity matters: in-flight refreshes hold a reference to the state they
    started from and drop their result if it is no longer the live one.
    """

    reference: SignedResourceReference
    session_id: int
    current_url: str | None = None
    expires_at: datetime | None = None
    attempt_count: int = 0
    last_attempt_at: datetime | None = None
    is_refreshing: bool = False
    exhausted: bool = False
    phase: BindingPhase = BindingPhase.UNINITIALIZED
    last_error: BaseException | None = None

    @property
    def storage_key(self) -> str | None:
        return self.reference.storage_key

    def snapshot(self) -> SignedUrlSnapshot:
        return SignedUrlSnapshot(
            current_url=self.current_url,
            is_refreshing=self.is_refreshing,
            exhausted=self.exhausted,
            phase=self.phase,
            attempt_count=self.attempt_count,
            expires_at=self.expires_at,
            storage_key=self.storage_key,
        )
