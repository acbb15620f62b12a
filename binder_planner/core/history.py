"""History Navigator — append-only action log with an undo/redo pointer and page jumps.

Invariants:
    - HistoryEntry is immutable once appended
    - current_position == -1 means "viewing the live/newest state"
    - Otherwise current_position indexes the entry whose post-state is being viewed
    - navigate_back: live -> last index; i > 0 -> i - 1; index 0 -> no-op
    - navigate_forward: i < last -> i + 1; live or last -> no-op
    - revert_to jumps straight to an entry's index regardless of the pointer
    - clear() requires explicit confirmation and resets to empty / live
    - The navigator NEVER mutates binder content; it only reports a page to jump to

Design Decisions:
    - Recording while not live discards redo entries and returns to live by default;
      discard_redo_on_record=False keeps them and leaves the pointer where it is
    - Page jump resolved from position -> to_position -> from_position -> target_position
      (target_position only for bulk moves), through page_addressing.position_to_page
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from binder_planner.core.domain_types import ActionKind, EntryId, Position
from binder_planner.core.errors import ConfirmationRequiredError, HistoryEntryNotFoundError
from binder_planner.core.page_addressing import position_to_page


LIVE_POSITION: int = -1


@dataclass(frozen=True)
class HistoryEntry:
    id: EntryId
    action: ActionKind
    timestamp: datetime
    position: Position | None = None
    from_position: Position | None = None
    to_position: Position | None = None
    target_position: Position | None = None
    item_name: str | None = None
    item_count: int | None = None
    target_page: int | None = None
    description: str | None = None

    @classmethod
    def create(cls, action: ActionKind, **fields) -> "HistoryEntry":
        """New entry with a generated id and a UTC timestamp."""
        fields.setdefault("timestamp", datetime.now(timezone.utc))
        return cls(id=EntryId(uuid.uuid4().hex), action=ActionKind(action), **fields)

    @property
    def anchor_position(self) -> int | None:
        """The position a page jump should reveal for this action."""
        if self.position is not None:
            return self.position
        if self.to_position is not None:
            return self.to_position
        if self.from_position is not None:
            return self.from_position
        if self.action == ActionKind.BULK_MOVE and self.target_position is not None:
            return self.target_position
        return None

    def describe(self) -> str:
        """Human summary with 1-based positions."""
        name = self.item_name or "item"
        if self.action == ActionKind.ADD and self.position is not None:
            if self.item_count and self.item_count > 1:
                return f"Added {self.item_count} items starting at position {self.position + 1}"
            return f"Added {name} to position {self.position + 1}"
        if self.action == ActionKind.REMOVE and self.position is not None:
            return f"Removed {name} from position {self.position + 1}"
        if self.action == ActionKind.MOVE and self.from_position is not None and self.to_position is not None:
            return f"Moved {name} from {self.from_position + 1} to {self.to_position + 1}"
        if self.action == ActionKind.SWAP and self.from_position is not None and self.to_position is not None:
            return f"Swapped items at positions {self.from_position + 1} and {self.to_position + 1}"
        if self.action == ActionKind.BULK_MOVE:
            return self.description or f"Moved {self.item_count or 0} items to page {self.target_page}"
        return self.description or "Unknown action"


@dataclass(frozen=True)
class NavigationResult:
    """Outcome of a navigation. target_page is None when nothing to jump to."""
    moved: bool
    current_position: int
    entry: HistoryEntry | None = None
    target_page: int | None = None


@dataclass
class HistoryNavigator:
    """Undo/redo pointer over a binder's action log. Pure state, no IO."""

    entries: list[HistoryEntry] = field(default_factory=list)
    current_position: int = LIVE_POSITION
    discard_redo_on_record: bool = True

    # ─── Queries ─────────────────────────────────────────────────

    @property
    def is_live(self) -> bool:
        return self.current_position == LIVE_POSITION

    @property
    def can_navigate_back(self) -> bool:
        if self.is_live:
            return len(self.entries) > 0
        return self.current_position > 0

    @property
    def can_navigate_forward(self) -> bool:
        return not self.is_live and self.current_position < len(self.entries) - 1

    def index_of(self, entry_id: EntryId) -> int:
        for i, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return i
        raise HistoryEntryNotFoundError(entry_id)

    def entries_after_pointer(self) -> list[HistoryEntry]:
        """Entries whose effects are undone at the current pointer."""
        if self.is_live:
            return []
        return self.entries[self.current_position + 1:]

    # ─── Transitions ─────────────────────────────────────────────

    def record(self, entry: HistoryEntry) -> None:
        """Append an entry."""
        if not self.is_live and self.discard_redo_on_record:
            del self.entries[self.current_position + 1:]
            self.current_position = LIVE_POSITION
        self.entries.append(entry)

    def navigate_back(self, slots_per_page: int) -> NavigationResult:
        if self.is_live and self.entries:
            return self._move_to(len(self.entries) - 1, slots_per_page)
        if not self.is_live and self.current_position > 0:
            return self._move_to(self.current_position - 1, slots_per_page)
        return NavigationResult(moved=False, current_position=self.current_position)

    def navigate_forward(self, slots_per_page: int) -> NavigationResult:
        if self.can_navigate_forward:
            return self._move_to(self.current_position + 1, slots_per_page)
        return NavigationResult(moved=False, current_position=self.current_position)

    def revert_to(self, entry_id: EntryId, slots_per_page: int) -> NavigationResult:
        return self._move_to(self.index_of(entry_id), slots_per_page)

    def clear(self, *, confirmed: bool) -> int:
        """Drop every entry. Returns how many were discarded."""
        if not confirmed:
            raise ConfirmationRequiredError("clear history")
        count = len(self.entries)
        self.entries.clear()
        self.current_position = LIVE_POSITION
        return count

    def _move_to(self, index: int, slots_per_page: int) -> NavigationResult:
        entry = self.entries[index]
        self.current_position = index
        return NavigationResult(
            moved=True,
            current_position=index,
            entry=entry,
            target_page=page_for_entry(entry, slots_per_page),
        )


def page_for_entry(entry: HistoryEntry, slots_per_page: int) -> int | None:
    """Binder page to jump to for `entry`, None when it carries no position."""
    anchor = entry.anchor_position
    if anchor is None:
        return None
    return position_to_page(anchor, slots_per_page)
