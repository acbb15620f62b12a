"""Page Addressing — converts linear item positions to binder pages and slots.

Invariants:
    - Binder page 0 (cover) holds exactly one card-page
    - Every binder page after the cover is a spread of two card-pages
    - card_pages_for(1) == 1, card_pages_for(p) == 1 + (p - 1) * 2 for p > 1
    - position_to_page is monotonic non-decreasing and maps position 0 to page 0
    - All functions are PURE: no IO, no state

Design Decisions:
    - Cover-plus-spreads asymmetry mirrors the physical binder; capacity math in
      capacity.py and page jumps in history.py both go through this module
    - Card-page indices are physical (0 = cover side, 1/2 = first spread, ...)
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class PagePosition:
    """Where a linear position lands. Derived, never stored."""
    page_index: int
    slot_index: int
    card_page_index: int


def _check_slots(slots_per_page: int) -> None:
    if slots_per_page < 1:
        raise ValueError(f"slots_per_page must be >= 1, got {slots_per_page}")


def _check_position(position: int) -> None:
    if position < 0:
        raise ValueError(f"position must be >= 0, got {position}")


# ─── Page counts ─────────────────────────────────────────────────

def card_pages_for(page_count: int) -> int:
    """Number of card-pages in a binder with `page_count` binder pages."""
    if page_count < 1:
        raise ValueError(f"page_count must be >= 1, got {page_count}")
    if page_count == 1:
        return 1
    return 1 + (page_count - 1) * 2


def total_slots_for(page_count: int, slots_per_page: int) -> int:
    _check_slots(slots_per_page)
    return card_pages_for(page_count) * slots_per_page


def required_binder_pages(highest_position: int, slots_per_page: int) -> int:
    """Smallest page count whose slots reach `highest_position`.

    An empty binder (highest_position < 0) still has its cover page.
    """
    _check_slots(slots_per_page)
    if highest_position < 0:
        return 1
    required_card_pages = math.ceil((highest_position + 1) / slots_per_page)
    if required_card_pages <= 1:
        return 1
    return 1 + math.ceil((required_card_pages - 1) / 2)


# ─── Position -> page ────────────────────────────────────────────

def position_to_page(position: int, slots_per_page: int) -> int:
    """Binder page (0 = cover) that displays `position`."""
    _check_position(position)
    _check_slots(slots_per_page)
    if position < slots_per_page:
        return 0
    physical_page = position // slots_per_page
    if physical_page == 0:
        return 0
    return math.ceil(physical_page / 2)


def position_to_page_position(position: int, slots_per_page: int) -> PagePosition:
    """Resolve `position` to (binder page, slot within its card-page)."""
    page_index = position_to_page(position, slots_per_page)
    return PagePosition(
        page_index=page_index,
        slot_index=position % slots_per_page,
        card_page_index=position // slots_per_page,
    )


# ─── Page -> positions ───────────────────────────────────────────

def card_page_indices(binder_page: int) -> list[int]:
    """Physical card-pages shown on a binder page: cover is [0], page p is [2p-1, 2p]."""
    if binder_page < 0:
        raise ValueError(f"binder_page must be >= 0, got {binder_page}")
    if binder_page == 0:
        return [0]
    left = (binder_page - 1) * 2 + 1
    return [left, left + 1]


def positions_for_binder_page(binder_page: int, slots_per_page: int) -> range:
    """Contiguous range of linear positions displayed on `binder_page`."""
    _check_slots(slots_per_page)
    indices = card_page_indices(binder_page)
    return range(indices[0] * slots_per_page, (indices[-1] + 1) * slots_per_page)


def next_page_boundary(position: int, slots_per_page: int) -> int:
    """Round `position` up to the first slot of a card-page (no-op when already aligned)."""
    _check_position(position)
    _check_slots(slots_per_page)
    remainder = position % slots_per_page
    if remainder == 0:
        return position
    return position + (slots_per_page - remainder)


def find_next_empty_position(items: Mapping[int, object], start: int = 0) -> int:
    """First unoccupied position at or after `start`."""
    _check_position(start)
    position = start
    while position in items:
        position += 1
    return position
