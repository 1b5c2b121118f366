"""Shared schema pieces — camelCase base model and entity-type helpers."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

EntityType = Literal["person", "company"]
ENTITY_TYPES: tuple[str, ...] = ("person", "company")


class CamelModel(BaseModel):
    """Base for everything that crosses a JSON boundary.

    Stored values and action payloads use camelCase keys; Python code uses
    snake_case attributes. Both spellings are accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump with camelCase keys, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def entity_emoji(entity_type: str) -> str:
    return "👤" if entity_type == "person" else "🏢"


def entity_label(entity_type: str) -> str:
    """'Person' / 'Company'"""
    return "Person" if entity_type == "person" else "Company"
