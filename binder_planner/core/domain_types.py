"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - BinderId, SetId, EntryId wrap str — never pass anonymous strings through the planners
    - Position is a non-negative linear slot index across the whole binder
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders and validate directly in pydantic
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

BinderId = NewType("BinderId", str)
SetId = NewType("SetId", str)
EntryId = NewType("EntryId", str)


# ─── Value Types ─────────────────────────────────────────────────

Position = NewType("Position", int)          # >= 0
GridSizeId = NewType("GridSizeId", str)      # e.g. "3x3"


# ─── Enums ───────────────────────────────────────────────────────

class VariantOrder(str, Enum):
    """Where generated variant copies go relative to the regular items."""
    INTERLEAVED = "interleaved"
    FIRST = "first"
    LAST = "last"


class BinderPlacement(str, Enum):
    """Where a bulk-inserted set lands in the binder."""
    REPLACE = "replace"
    START = "start"
    END = "end"


class ExpansionKind(str, Enum):
    """The two independent families of capacity expansion."""
    GRID_RESIZE = "grid_resize"
    ADD_PAGES = "add_pages"


class ActionKind(str, Enum):
    """Logged binder actions — maps to HistoryEntry.action."""
    ADD = "add"
    REMOVE = "remove"
    MOVE = "move"
    SWAP = "swap"
    BULK_MOVE = "bulk_move"


class PlacementStep(str, Enum):
    """Ordered write steps of a committed set placement (used for failure attribution)."""
    EXPAND = "expand"
    CLEAR = "clear"
    SHIFT = "shift"
    INSERT = "insert"
