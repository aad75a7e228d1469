"""Reference and association models.

A reference identifies what a tracker follows. It is immutable: binding a
different value starts a new tracking session.
"""

from __future__ import annotations

from pydantic import field_validator

from presigned_media.models.base import FrozenJsonModel


class EntityAssociation(FrozenJsonModel):
    """Database record that stores a copy of the signed URL."""

    entity_type: str
    entity_id: str

    @field_validator("entity_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("entity_type", "entity_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    def as_query_params(self) -> dict[str, str]:
        return {"entityType": self.entity_type, "entityId": self.entity_id}


class SignedResourceReference(FrozenJsonModel):
    """Caller-supplied reference plus the canonical storage key derived from it."""

    raw: str | None = None
    storage_key: str | None = None
    association: EntityAssociation | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.raw or "").strip()

    @property
    def is_refreshable(self) -> bool:
        return self.storage_key is not None
