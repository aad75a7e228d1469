"""JsonModel base classes for the refresh API boundary."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JsonModel(BaseModel):
    """Base model with camelCase/snake_case conversion.

    - Wire JSON uses camelCase (the refresh endpoint speaks camelCase)
    - Internal Python uses snake_case
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def model_dump_json(self, **kwargs) -> str:
        """Override to ensure camelCase in JSON output."""
        kwargs.setdefault("by_alias", True)
        return super().model_dump_json(**kwargs)

    def to_json(self, by_alias: bool = True, pretty: bool = False) -> str:
        """Serialize to JSON string."""
        return self.model_dump_json(
            indent=2 if pretty else None, exclude_none=True, by_alias=by_alias
        )

    def to_dict(self, by_alias: bool = False) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary without None values."""
        return self.model_dump(mode="json", exclude_none=True, by_alias=by_alias)


class FrozenJsonModel(JsonModel):
    """Immutable, hashable variant used for identity-like values."""

    model_config = ConfigDict(frozen=True)
