"""Item Schemas — pydantic models for item records returned by the item-list provider.

Invariants:
    - ItemRecord.id is non-empty and stripped
    - category accepts the provider's "rarity" key as an alias
    - Unknown provider fields are preserved (extra="allow") and travel with the record

Design Decisions:
    - Validate once at the fetch boundary; core planners trust ItemRecord afterwards
    - frozen: variant generation copies records, never mutates them
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ItemRecord(BaseModel):
    """One fetched item of a set, in provider order."""
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    category: str | None = Field(
        None, validation_alias=AliasChoices("category", "rarity"),
    )
    sequence_number: str | None = Field(
        None, validation_alias=AliasChoices("sequence_number", "number"),
    )
    name: str | None = None

    @field_validator("id")
    @classmethod
    def strip_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("id cannot be empty or whitespace")
        return v

    @field_validator("sequence_number", mode="before")
    @classmethod
    def coerce_sequence_number(cls, v: object) -> object:
        """Providers send numbers as int or str ("12", "TG05")."""
        if isinstance(v, int):
            return str(v)
        return v


def parse_item_records(raw_items: list[dict]) -> list[ItemRecord]:
    """Validate a provider payload, keeping source order."""
    return [ItemRecord.model_validate(raw) for raw in raw_items]
