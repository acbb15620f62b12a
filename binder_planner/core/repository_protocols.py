"""Boundary Protocols — contracts between the planning core and the outside world.

Invariants:
    - Core NEVER imports an implementation; dependency arrows point inward only
    - All IO (item fetch, binder writes, downstream caching) accessed through Protocol types
    - Implementations provided by the host application via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core pure functions that USE their results are never async; the services
      layer orchestrates the async calls around the pure logic
"""

from typing import Protocol

from binder_planner.core.binder_state import ItemEntry
from binder_planner.core.domain_types import BinderId, EntryId, GridSizeId, Position, SetId
from binder_planner.core.position_shift import Move


class ItemListProvider(Protocol):
    """Fetches the ordered item list of a set (raw provider records)."""
    async def fetch(self, set_id: SetId) -> list[dict]: ...


class BinderRepository(Protocol):
    """Contract for binder persistence — implemented by the host application."""
    async def get_page_count(self, binder_id: BinderId) -> int: ...
    async def update_settings(
        self, binder_id: BinderId, *, grid_size_id: GridSizeId | None = None,
    ) -> None: ...
    async def add_pages(self, binder_id: BinderId, count: int) -> None: ...
    async def batch_move(self, binder_id: BinderId, moves: list[Move]) -> None: ...
    async def clear_items(self, binder_id: BinderId, reason: str) -> int: ...
    async def insert_at(
        self,
        binder_id: BinderId,
        entries: list[ItemEntry],
        *,
        is_replacement: bool,
        start_position: Position | None = None,
    ) -> None: ...


class PlacedItemsSink(Protocol):
    """Read-through cache receiving the final list of a committed placement."""
    async def store(self, set_id: SetId, entries: list[ItemEntry]) -> None: ...


class HistoryStateApplier(Protocol):
    """Restores binder content to the state after a history entry (None = live)."""
    async def apply_history_state(self, binder_id: BinderId, entry_id: EntryId | None) -> None: ...
