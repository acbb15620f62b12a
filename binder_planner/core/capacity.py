"""Capacity Planner — slot accounting and expansion proposals for a binder snapshot.

Invariants:
    - CapacityInfo is derived on every call (never cached, never persisted)
    - total_slots = card_pages_for(page_count) * grid.total_slots
    - shortfall = needed - total when will_clear, else needed - available
    - Expansion options: grid resizes first (ascending), then at most one page-addition option
    - Every returned option's new_capacity >= total + shortfall >= needed_slots
    - ensure_capacity raises BEFORE any write; nothing here mutates a binder

Design Decisions:
    - will_clear is an explicit keyword on every entry point, never inferred
      from the placement mode
    - Pure functions returning frozen dataclasses; apply_expansion returns a
      projected Binder that the planners run against
"""

import math
from dataclasses import dataclass

from binder_planner.core.binder_state import Binder
from binder_planner.core.domain_types import ExpansionKind
from binder_planner.core.errors import (
    CapacityExceededError,
    ErrorContext,
    ExpansionUnavailableError,
)
from binder_planner.core.grid_config import GridConfig, grid_sizes_larger_than, resolve_grid_config
from binder_planner.core.page_addressing import card_pages_for


# Each binder page added after the cover is a two-card-page spread
CARD_PAGES_PER_NEW_BINDER_PAGE: int = 2


@dataclass(frozen=True)
class CapacityInfo:
    total_slots: int
    used_slots: int
    available_slots: int
    grid: GridConfig
    current_pages: int


@dataclass(frozen=True)
class ExpansionOption:
    """A suggestion. Nothing changes until the caller commits it."""
    kind: ExpansionKind
    value: str | int
    new_capacity: int
    additional_slots: int
    label: str
    description: str


# ─── Measurement ─────────────────────────────────────────────────

def compute_capacity(binder: Binder, *, will_clear: bool = False) -> CapacityInfo:
    """Measure the binder. used_slots is 0 when a full replacement is pending."""
    grid = binder.grid
    pages = binder.settings.page_count
    total = card_pages_for(pages) * grid.total_slots
    used = 0 if will_clear else binder.item_count
    return CapacityInfo(
        total_slots=total,
        used_slots=used,
        available_slots=total - used,
        grid=grid,
        current_pages=pages,
    )


def compute_shortfall(capacity: CapacityInfo, needed_slots: int, *, will_clear: bool) -> int:
    """Slots missing for `needed_slots`; <= 0 means it fits."""
    if will_clear:
        return needed_slots - capacity.total_slots
    return needed_slots - capacity.available_slots


# ─── Expansion options ───────────────────────────────────────────

def _grid_resize_options(
    capacity: CapacityInfo, required_total: int,
) -> list[ExpansionOption]:
    card_pages = card_pages_for(capacity.current_pages)
    options = []
    for grid in grid_sizes_larger_than(capacity.grid):
        new_total = card_pages * grid.total_slots
        if new_total >= required_total:
            options.append(ExpansionOption(
                kind=ExpansionKind.GRID_RESIZE,
                value=grid.size_id,
                new_capacity=new_total,
                additional_slots=new_total - capacity.total_slots,
                label=f"Change to {grid.size_id} grid",
                description=f"New capacity: {new_total} slots",
            ))
    return options


def _page_addition_option(
    capacity: CapacityInfo, shortfall: int, max_pages: int,
) -> ExpansionOption | None:
    slots_per_new_page = capacity.grid.total_slots * CARD_PAGES_PER_NEW_BINDER_PAGE
    pages_needed = math.ceil(shortfall / slots_per_new_page)
    if capacity.current_pages + pages_needed > max_pages:
        return None
    added = pages_needed * slots_per_new_page
    return ExpansionOption(
        kind=ExpansionKind.ADD_PAGES,
        value=pages_needed,
        new_capacity=capacity.total_slots + added,
        additional_slots=added,
        label=f"Add {pages_needed} page{'s' if pages_needed > 1 else ''}",
        description=f"New capacity: {capacity.total_slots + added} slots",
    )


def compute_expansion_options(
    binder: Binder, needed_slots: int, *, will_clear: bool,
) -> list[ExpansionOption]:
    """All viable ways to make `needed_slots` fit. Empty when it already fits."""
    capacity = compute_capacity(binder, will_clear=will_clear)
    shortfall = compute_shortfall(capacity, needed_slots, will_clear=will_clear)
    if shortfall <= 0:
        return []

    required_total = capacity.total_slots + shortfall
    options = _grid_resize_options(capacity, required_total)
    page_option = _page_addition_option(capacity, shortfall, binder.settings.max_pages)
    if page_option is not None:
        options.append(page_option)
    return options


# ─── Validation ──────────────────────────────────────────────────

def ensure_capacity(
    binder: Binder,
    needed_slots: int,
    *,
    will_clear: bool,
    options: list[ExpansionOption] | None = None,
    context: ErrorContext | None = None,
) -> CapacityInfo:
    """Pre-commit gate: return the capacity if `needed_slots` fits, raise otherwise.

    `options` replaces the computed expansion options in the raised error
    (callers that re-plan per option pass only the viable ones).
    """
    capacity = compute_capacity(binder, will_clear=will_clear)
    shortfall = compute_shortfall(capacity, needed_slots, will_clear=will_clear)
    if shortfall <= 0:
        return capacity

    if options is None:
        options = compute_expansion_options(binder, needed_slots, will_clear=will_clear)
    if not options:
        raise ExpansionUnavailableError(shortfall, binder.settings.max_pages, context)
    raise CapacityExceededError(
        shortfall=shortfall,
        needed_slots=needed_slots,
        total_slots=capacity.total_slots,
        options=options,
        context=context,
    )


def apply_expansion(binder: Binder, option: ExpansionOption) -> Binder:
    """Project the binder after `option` is committed. Pure."""
    if option.kind == ExpansionKind.GRID_RESIZE:
        grid = resolve_grid_config(str(option.value))
        return binder.with_settings(grid_size_id=grid.size_id)

    pages_to_add = int(option.value)
    if pages_to_add < 1:
        raise ValueError(f"page addition must add >= 1 page, got {pages_to_add}")
    new_count = binder.settings.page_count + pages_to_add
    if new_count > binder.settings.max_pages:
        raise ExpansionUnavailableError(
            option.additional_slots, binder.settings.max_pages,
            ErrorContext(binder_id=binder.id),
        )
    return binder.with_settings(page_count=new_count)
