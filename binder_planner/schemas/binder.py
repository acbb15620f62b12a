"""Binder Schemas — host binder documents parsed into core snapshots.

Invariants:
    - Slot keys are non-negative integers, given as "12" or "slot_12"
    - Duplicate positions (e.g. "3" and "slot_3") are rejected
    - Missing settings fall back to the configured defaults, never to None

Design Decisions:
    - Accept the host's camelCase keys (gridSize, pageCount, cardId) via aliases
    - to_snapshot() is the only way host data reaches the planners
"""

from datetime import datetime, timezone

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from binder_planner.core.binder_state import Binder, BinderSettings, ItemEntry
from binder_planner.core.domain_types import BinderId, GridSizeId
from binder_planner.core.variants import VARIANT_TAG
from binder_planner.schemas.item import ItemRecord


def _parse_slot_key(key: str | int) -> int:
    raw = str(key).strip()
    if raw.startswith("slot_"):
        raw = raw[len("slot_"):]
    position = int(raw)
    if position < 0:
        raise ValueError(f"slot position must be >= 0, got {position}")
    return position


class BinderSlotRecord(BaseModel):
    """One occupied slot as stored by the host."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    card_id: str = Field(validation_alias=AliasChoices("card_id", "cardId"))
    card_data: ItemRecord | None = Field(
        None, validation_alias=AliasChoices("card_data", "cardData"),
    )
    reverse_holo: bool = Field(False, validation_alias=AliasChoices("reverse_holo", "reverseHolo"))
    original_id: str | None = Field(None, validation_alias=AliasChoices("original_id", "originalId"))
    added_at: datetime | None = Field(None, validation_alias=AliasChoices("added_at", "addedAt"))

    def to_entry(self) -> ItemEntry:
        return ItemEntry(
            item_id=self.card_id,
            record=self.card_data,
            variant=VARIANT_TAG if self.reverse_holo else None,
            original_id=self.original_id,
            added_at=self.added_at or datetime.now(timezone.utc),
        )


class BinderSettingsRecord(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    grid_size: str | None = Field(None, validation_alias=AliasChoices("grid_size", "gridSize"))
    page_count: int | None = Field(None, ge=1, validation_alias=AliasChoices("page_count", "pageCount"))
    max_pages: int | None = Field(None, ge=1, validation_alias=AliasChoices("max_pages", "maxPages"))


class BinderRecord(BaseModel):
    """Host binder document (only the fields the planners read)."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(min_length=1)
    cards: dict[str, BinderSlotRecord] = Field(default_factory=dict)
    settings: BinderSettingsRecord = Field(default_factory=BinderSettingsRecord)

    @field_validator("cards")
    @classmethod
    def unique_positions(cls, v: dict[str, BinderSlotRecord]) -> dict[str, BinderSlotRecord]:
        positions = [_parse_slot_key(k) for k in v]
        if len(positions) != len(set(positions)):
            raise ValueError("duplicate slot positions")
        return v

    def to_snapshot(
        self,
        *,
        default_grid_size: str = "3x3",
        default_max_pages: int = 100,
    ) -> Binder:
        """Core snapshot. The service refreshes page_count from the repository afterwards."""
        s = self.settings
        return Binder(
            id=BinderId(self.id),
            items={_parse_slot_key(k): slot.to_entry() for k, slot in self.cards.items()},
            settings=BinderSettings(
                grid_size_id=GridSizeId(s.grid_size or default_grid_size),
                page_count=s.page_count or 1,
                max_pages=s.max_pages or default_max_pages,
            ),
        )
