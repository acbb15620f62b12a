"""Binder State — in-memory snapshot of a binder handed to the planners.

Invariants:
    - items keys are unique non-negative positions (dict keys enforce uniqueness)
    - A snapshot is never mutated by core/; projections return new objects
    - settings.page_count >= 1 (max_pages is enforced by the expansion planner)

Design Decisions:
    - Plain dataclasses, not ORM rows: the persistence layer is an external collaborator
    - Grid is resolved on access so a changed grid_size_id is never stale
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from binder_planner.core.domain_types import BinderId, GridSizeId
from binder_planner.core.grid_config import DEFAULT_GRID_SIZE, GridConfig, resolve_grid_config
from binder_planner.schemas.item import ItemRecord


DEFAULT_MAX_PAGES: int = 100


@dataclass(frozen=True)
class ItemEntry:
    """One occupied slot. Variants carry original_id back to their source item."""
    item_id: str
    record: ItemRecord | None = None
    variant: str | None = None
    original_id: str | None = None
    added_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_variant(self) -> bool:
        return self.variant is not None

    @property
    def name(self) -> str | None:
        return self.record.name if self.record else None


@dataclass(frozen=True)
class BinderSettings:
    grid_size_id: GridSizeId = DEFAULT_GRID_SIZE
    page_count: int = 1
    max_pages: int = DEFAULT_MAX_PAGES

    def __post_init__(self):
        if self.page_count < 1:
            raise ValueError(f"page_count must be >= 1, got {self.page_count}")
        if self.max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {self.max_pages}")


@dataclass
class Binder:
    """Snapshot of binder content and layout settings."""
    id: BinderId
    items: dict[int, ItemEntry] = field(default_factory=dict)
    settings: BinderSettings = field(default_factory=BinderSettings)

    def __post_init__(self):
        negative = [p for p in self.items if p < 0]
        if negative:
            raise ValueError(f"positions must be >= 0, got {sorted(negative)}")

    @property
    def grid(self) -> GridConfig:
        return resolve_grid_config(self.settings.grid_size_id)

    @property
    def slots_per_page(self) -> int:
        return self.grid.total_slots

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def occupied_positions(self) -> list[int]:
        return sorted(self.items)

    @property
    def highest_position(self) -> int:
        """Highest occupied position, -1 when empty."""
        return max(self.items) if self.items else -1

    def with_settings(self, **changes) -> "Binder":
        """New snapshot sharing items, with updated settings."""
        return Binder(
            id=self.id,
            items=dict(self.items),
            settings=replace(self.settings, **changes),
        )
