"""Variant Generation — synthetic reverse-holo copies of eligible items.

Invariants:
    - Only VARIANT_ELIGIBLE_CATEGORIES qualify (closed set; no higher tiers)
    - Copy keys are unique: "<id>-rh" for the first copy, "<id>-rh-<n>" after it
    - Every variant carries original_id == source id and variant == VARIANT_TAG
    - exact_variant_count feeds committed plans; estimate_variant_count is display-only

Design Decisions:
    - Estimate and exact count are separate functions with separate inputs
      (printed total vs fetched list), so an estimate cannot reach a plan
"""

import math
from collections.abc import Sequence
from datetime import datetime

from binder_planner.core.binder_state import ItemEntry
from binder_planner.schemas.item import ItemRecord


VARIANT_ELIGIBLE_CATEGORIES: frozenset[str] = frozenset({
    "Common",
    "Uncommon",
    "Rare",
    "Rare Holo",
})

VARIANT_TAG: str = "reverse_holo"
VARIANT_KEY_SUFFIX: str = "rh"

# Rough share of a set's printed cards that get a reverse holo
DEFAULT_VARIANT_ESTIMATE_RATIO: float = 0.6


def is_variant_eligible(item: ItemRecord) -> bool:
    return item.category in VARIANT_ELIGIBLE_CATEGORIES


def variant_key(item_id: str, copy_index: int) -> str:
    if copy_index < 0:
        raise ValueError(f"copy_index must be >= 0, got {copy_index}")
    if copy_index == 0:
        return f"{item_id}-{VARIANT_KEY_SUFFIX}"
    return f"{item_id}-{VARIANT_KEY_SUFFIX}-{copy_index + 1}"


def make_variant_entries(item: ItemRecord, copies: int, added_at: datetime) -> list[ItemEntry]:
    """`copies` variant entries for `item`; empty when it is not eligible."""
    if copies < 1:
        raise ValueError(f"copies must be >= 1, got {copies}")
    if not is_variant_eligible(item):
        return []
    return [
        ItemEntry(
            item_id=variant_key(item.id, i),
            record=item,
            variant=VARIANT_TAG,
            original_id=item.id,
            added_at=added_at,
        )
        for i in range(copies)
    ]


def count_variant_eligible(items: Sequence[ItemRecord]) -> int:
    return sum(1 for item in items if is_variant_eligible(item))


def exact_variant_count(items: Sequence[ItemRecord], copies: int) -> int:
    """Variant entries a plan over `items` will generate."""
    if copies < 1:
        raise ValueError(f"copies must be >= 1, got {copies}")
    return count_variant_eligible(items) * copies


def estimate_variant_count(
    printed_total: int, copies: int = 1, ratio: float = DEFAULT_VARIANT_ESTIMATE_RATIO,
) -> int:
    """Pre-fetch guess for display. Never use for a committed plan."""
    if printed_total < 0:
        raise ValueError(f"printed_total must be >= 0, got {printed_total}")
    return math.floor(printed_total * ratio) * copies
