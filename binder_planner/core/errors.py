"""Error Hierarchy — typed, categorized exceptions for every binder planning failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Planning errors are raised BEFORE any write; persistence errors name the failed step
    - to_report() produces a serialisable envelope for the caller
    - An unknown grid size is never an error (it resolves to the default grid)

Design Decisions:
    - Single hierarchy with BinderPlannerError base: one except clause covers all planner failures
    - ErrorContext as dataclass: rich attribution without coupling to logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from binder_planner.core.domain_types import BinderId, EntryId, SetId


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    CAPACITY = "capacity"
    RESOURCE_NOT_FOUND = "resource_not_found"
    PERSISTENCE = "persistence"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error attribution and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    binder_id: BinderId | None = None
    set_id: SetId | None = None
    step: str | None = None
    debug_info: dict[str, Any] | None = None


class BinderPlannerError(Exception):
    """Base exception for all binder planner errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    @property
    def recoverable(self) -> bool:
        return self.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING, ErrorSeverity.ERROR)

    def to_report(self) -> dict:
        """Convert to a standardized error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "recoverable": self.recoverable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "binder_id": self.context.binder_id,
                    "set_id": self.context.set_id,
                    "step": self.context.step,
                },
            }
        }


# ─── Planning Errors (raised before any write) ──────────────────

class CapacityExceededError(BinderPlannerError):
    """Placement does not fit the binder as it stands (or after the chosen expansion)."""
    def __init__(
        self,
        shortfall: int,
        needed_slots: int,
        total_slots: int,
        options: list | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Placement needs {needed_slots} slots: {shortfall} slot(s) short "
            f"of capacity {total_slots}.",
            "CAPACITY_EXCEEDED", ErrorCategory.CAPACITY,
            ErrorSeverity.ERROR, context,
        )
        self.shortfall = shortfall
        self.needed_slots = needed_slots
        self.total_slots = total_slots
        self.options = list(options or [])


class ExpansionUnavailableError(BinderPlannerError):
    """No grid resize or page addition can absorb the shortfall within max_pages."""
    def __init__(self, shortfall: int, max_pages: int, context: ErrorContext | None = None):
        super().__init__(
            f"No expansion can provide {shortfall} more slot(s) within {max_pages} pages.",
            "EXPANSION_UNAVAILABLE", ErrorCategory.CAPACITY,
            ErrorSeverity.ERROR, context,
        )
        self.shortfall = shortfall
        self.max_pages = max_pages


class ConfirmationRequiredError(BinderPlannerError):
    """An irreversible operation was requested without explicit caller confirmation."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"'{operation}' is irreversible and must be confirmed first.",
            "CONFIRMATION_REQUIRED", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context,
        )
        self.operation = operation


class HistoryEntryNotFoundError(BinderPlannerError):
    """Requested history entry does not exist."""
    def __init__(self, entry_id: EntryId, context: ErrorContext | None = None):
        super().__init__(
            f"History entry '{entry_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context,
        )
        self.entry_id = entry_id


# ─── Invariant Violations ───────────────────────────────────────

class MoveCollisionError(BinderPlannerError):
    """A move landed on an occupied slot or had no source item.

    Unreachable when moves are applied in the order plan_shift emits them.
    """
    def __init__(self, from_position: int, to_position: int, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Move {from_position} -> {to_position} collided: {reason}",
            "MOVE_COLLISION", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context,
        )
        self.from_position = from_position
        self.to_position = to_position


# ─── External Collaborator Errors ───────────────────────────────

class ItemFetchError(BinderPlannerError):
    """Item-list provider failed or returned unusable records."""
    def __init__(self, set_id: SetId, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Fetching items for set '{set_id}' failed: {message}",
            "ITEM_FETCH_FAILED", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context,
        )
        self.set_id = set_id


class PersistenceFailureError(BinderPlannerError):
    """A binder write failed mid-commit. Later steps were not issued."""
    def __init__(
        self,
        step: str,
        message: str,
        completed_steps: list[str] | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.step = step
        super().__init__(
            f"Persistence step '{step}' failed: {message}",
            "PERSISTENCE_FAILURE", ErrorCategory.PERSISTENCE,
            ErrorSeverity.CRITICAL, ctx,
        )
        self.step = step
        self.completed_steps = list(completed_steps or [])
