"""History Service — drives undo/redo navigation and reports the page to jump to.

Invariants:
    - The navigator decides the target entry; the applier performs the actual revert
    - If the applier fails, the navigator pointer is restored and PersistenceFailureError raised
    - A page jump is reported only for navigations that moved and carry a position
    - Clearing history requires confirmation (enforced by the navigator)

Design Decisions:
    - slots_per_page comes from the binder snapshot at navigation time, so a grid
      change between actions still lands on the right page
"""

import logging
from collections.abc import Callable

from binder_planner.config import Settings, get_settings
from binder_planner.core.binder_state import Binder
from binder_planner.core.domain_types import EntryId
from binder_planner.core.errors import ErrorContext, PersistenceFailureError
from binder_planner.core.history import HistoryEntry, HistoryNavigator, NavigationResult
from binder_planner.core.repository_protocols import HistoryStateApplier

logger = logging.getLogger(__name__)


class HistoryService:
    """Undo/redo for one binder."""

    def __init__(
        self,
        applier: HistoryStateApplier,
        navigator: HistoryNavigator | None = None,
        *,
        on_page_jump: Callable[[int], None] | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.applier = applier
        self.navigator = navigator or HistoryNavigator(
            discard_redo_on_record=settings.history_discard_redo_on_record,
        )
        self.on_page_jump = on_page_jump

    def record(self, entry: HistoryEntry) -> None:
        self.navigator.record(entry)

    async def back(self, binder: Binder) -> NavigationResult:
        return await self._navigate(
            binder, lambda: self.navigator.navigate_back(binder.slots_per_page),
        )

    async def forward(self, binder: Binder) -> NavigationResult:
        return await self._navigate(
            binder, lambda: self.navigator.navigate_forward(binder.slots_per_page),
        )

    async def revert_to(self, binder: Binder, entry_id: EntryId) -> NavigationResult:
        return await self._navigate(
            binder, lambda: self.navigator.revert_to(entry_id, binder.slots_per_page),
        )

    def clear(self, *, confirmed: bool) -> int:
        count = self.navigator.clear(confirmed=confirmed)
        logger.info(f"Cleared {count} history entries")
        return count

    async def _navigate(
        self, binder: Binder, move: Callable[[], NavigationResult],
    ) -> NavigationResult:
        previous = self.navigator.current_position
        result = move()
        if not result.moved:
            return result

        try:
            await self.applier.apply_history_state(binder.id, result.entry.id)
        except Exception as e:
            self.navigator.current_position = previous
            logger.error(
                f"History revert to {result.entry.id} failed: {e}",
                extra={"binder_id": binder.id, "step": "history_revert",
                       "error_code": "PERSISTENCE_FAILURE"},
            )
            raise PersistenceFailureError(
                "history_revert", str(e), [], ErrorContext(binder_id=binder.id),
            ) from e

        if result.target_page is not None and self.on_page_jump is not None:
            self.on_page_jump(result.target_page)
        logger.info(
            f"History moved to {result.current_position}",
            extra={"binder_id": binder.id, "target_page": result.target_page},
        )
        return result
