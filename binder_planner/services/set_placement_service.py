"""Set Placement Service — fetch, plan, validate, then commit a full-set insert.

Invariants:
    - Plan-then-commit: fetch, expansion projection, plan, capacity check and collision
      check all finish before the first write
    - Writes issued in order: expand -> clear -> shift -> insert
    - The first failing write stops the commit and raises PersistenceFailureError
      naming the failed step and the steps already completed
    - page_count is re-read from the repository before planning (no stale capacity)
    - The placed-items sink is fire-and-forget: its failures are logged, never raised

Design Decisions:
    - Item lists come through an injected ItemListCache, so repeated previews of the
      same set never refetch
    - History is recorded only after every write succeeded
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import ValidationError

from binder_planner.config import Settings, get_settings
from binder_planner.core.binder_state import Binder, ItemEntry
from binder_planner.core.capacity import ExpansionOption
from binder_planner.core.domain_types import ActionKind, ExpansionKind, PlacementStep, SetId
from binder_planner.core.errors import (
    BinderPlannerError,
    ErrorContext,
    ItemFetchError,
    PersistenceFailureError,
)
from binder_planner.core.history import HistoryEntry, HistoryNavigator
from binder_planner.core.page_addressing import position_to_page
from binder_planner.core.repository_protocols import (
    BinderRepository,
    ItemListProvider,
    PlacedItemsSink,
)
from binder_planner.core.set_placement import (
    PlacementPlan,
    PlacementPreview,
    PreparedPlacement,
    prepare_placement,
    preview_placement,
    project_placement,
)
from binder_planner.core.variants import estimate_variant_count
from binder_planner.infrastructure.item_cache import ItemListCache
from binder_planner.schemas.binder import BinderRecord
from binder_planner.schemas.item import ItemRecord, parse_item_records
from binder_planner.schemas.placement import SetPlacementConfig, VariantOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacementResult:
    """A fully applied placement."""
    plan: PlacementPlan
    items: dict[int, ItemEntry]
    completed_steps: list[str] = field(default_factory=list)
    expansion: ExpansionOption | None = None
    history_entries: list[HistoryEntry] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return self.plan.output_size


class SetPlacementService:
    """Adds a complete set to a binder. One instance per binder session."""

    def __init__(
        self,
        repository: BinderRepository,
        provider: ItemListProvider,
        cache: ItemListCache,
        *,
        sink: PlacedItemsSink | None = None,
        history: HistoryNavigator | None = None,
        settings: Settings | None = None,
    ):
        self.repository = repository
        self.provider = provider
        self.cache = cache
        self.sink = sink
        self.history = history
        self.settings = settings or get_settings()

    # ─── Reads ───────────────────────────────────────────────────

    def snapshot(self, record: BinderRecord | dict) -> Binder:
        """Parse a host binder document, filling gaps from settings."""
        if not isinstance(record, BinderRecord):
            record = BinderRecord.model_validate(record)
        return record.to_snapshot(
            default_grid_size=self.settings.default_grid_size,
            default_max_pages=self.settings.default_max_pages,
        )

    async def load_items(self, set_id: SetId) -> list[ItemRecord]:
        """Fetched, validated item list of a set (cached)."""
        cached = self.cache.get(set_id)
        if cached is not None:
            return list(cached)

        ctx = ErrorContext(set_id=set_id)
        try:
            raw = await self.provider.fetch(set_id)
        except Exception as e:
            logger.error(
                f"Item fetch failed for set {set_id}: {e}",
                extra={"set_id": set_id, "error_code": "ITEM_FETCH_FAILED"},
            )
            raise ItemFetchError(set_id, str(e), ctx) from e

        try:
            items = parse_item_records(raw)
        except ValidationError as e:
            raise ItemFetchError(set_id, f"invalid item records: {e.error_count()} error(s)", ctx) from e
        if not items:
            raise ItemFetchError(set_id, "provider returned no items", ctx)

        self.cache.put(set_id, items)
        logger.info(
            f"Fetched {len(items)} items for set {set_id}",
            extra={"set_id": set_id, "item_count": len(items)},
        )
        return items

    async def refresh_snapshot(self, binder: Binder) -> Binder:
        """Snapshot with page_count re-read from the repository."""
        try:
            page_count = await self.repository.get_page_count(binder.id)
        except Exception as e:
            raise PersistenceFailureError(
                "page_count", str(e), [], ErrorContext(binder_id=binder.id),
            ) from e
        if page_count < 1:
            raise PersistenceFailureError(
                "page_count", f"repository reported invalid page count {page_count}", [],
                ErrorContext(binder_id=binder.id),
            )
        if page_count == binder.settings.page_count:
            return binder
        return binder.with_settings(page_count=page_count)

    def estimate_total(self, printed_total: int, variants: VariantOptions) -> int:
        """Pre-fetch display figure: printed total plus estimated variants."""
        return printed_total + estimate_variant_count(
            printed_total, variants.effective_copies, self.settings.variant_estimate_ratio,
        )

    async def preview(
        self, binder: Binder, set_id: SetId, config: SetPlacementConfig,
        *, now: datetime | None = None,
    ) -> PlacementPreview:
        """Plan and capacity verdict for display. Issues no writes."""
        snapshot = await self.refresh_snapshot(binder)
        items = await self.load_items(set_id)
        return preview_placement(snapshot, items, config, now=now)

    # ─── Commit ──────────────────────────────────────────────────

    async def apply(
        self,
        binder: Binder,
        set_id: SetId,
        config: SetPlacementConfig,
        *,
        expansion: ExpansionOption | None = None,
        now: datetime | None = None,
    ) -> PlacementResult:
        """Plan, validate and commit. Raises before any write if the plan is invalid."""
        ctx = ErrorContext(binder_id=binder.id, set_id=set_id)
        snapshot = await self.refresh_snapshot(binder)
        items = await self.load_items(set_id)

        try:
            prepared = prepare_placement(
                snapshot, items, config, expansion=expansion, now=now, context=ctx,
            )
            final_items = project_placement(prepared.binder, prepared.plan)
        except BinderPlannerError as e:
            logger.warning(
                f"Placement rejected before commit: {e.message}",
                extra={"binder_id": binder.id, "set_id": set_id, "error_code": e.code},
            )
            raise

        completed = await self._commit(snapshot, prepared, set_id, ctx)
        entries = self._record_history(prepared, set_id)
        await self._notify_sink(set_id, prepared.plan)

        logger.info(
            f"Placed {prepared.plan.output_size} items from {set_id} "
            f"({prepared.plan.placement.value}) at {prepared.plan.start_position}",
            extra={
                "binder_id": binder.id, "set_id": set_id,
                "item_count": prepared.plan.output_size,
                "move_count": len(prepared.plan.moves),
            },
        )
        return PlacementResult(
            plan=prepared.plan,
            items=final_items,
            completed_steps=completed,
            expansion=expansion,
            history_entries=entries,
        )

    async def _commit(
        self, snapshot: Binder, prepared: PreparedPlacement, set_id: SetId, ctx: ErrorContext,
    ) -> list[str]:
        plan = prepared.plan
        binder_id = snapshot.id
        completed: list[str] = []

        if prepared.expansion is not None:
            option = prepared.expansion
            if option.kind == ExpansionKind.GRID_RESIZE:
                await self._run_step(
                    PlacementStep.EXPAND, completed, ctx,
                    lambda: self.repository.update_settings(binder_id, grid_size_id=str(option.value)),
                )
            else:
                await self._run_step(
                    PlacementStep.EXPAND, completed, ctx,
                    lambda: self.repository.add_pages(binder_id, int(option.value)),
                )

        if plan.clears_binder and snapshot.items:
            await self._run_step(
                PlacementStep.CLEAR, completed, ctx,
                lambda: self.repository.clear_items(binder_id, f"complete_set_replacement_{set_id}"),
            )

        if plan.moves:
            await self._run_step(
                PlacementStep.SHIFT, completed, ctx,
                lambda: self.repository.batch_move(binder_id, list(plan.moves)),
            )

        await self._run_step(
            PlacementStep.INSERT, completed, ctx,
            lambda: self.repository.insert_at(
                binder_id, list(plan.entries),
                is_replacement=plan.clears_binder,
                start_position=plan.start_position,
            ),
        )
        return completed

    async def _run_step(
        self,
        step: PlacementStep,
        completed: list[str],
        ctx: ErrorContext,
        call: Callable[[], Awaitable[object]],
    ) -> None:
        try:
            await call()
        except Exception as e:
            error = PersistenceFailureError(step.value, str(e), completed, ctx)
            error.__cause__ = e
            logger.error(
                f"Placement step {step.value} failed after {completed}: {e}",
                extra={
                    "binder_id": ctx.binder_id, "set_id": ctx.set_id,
                    "step": step.value, "completed_steps": list(completed),
                },
                exc_info=error,
            )
            raise error from e
        completed.append(step.value)
        logger.info(
            f"Placement step {step.value} done",
            extra={"binder_id": ctx.binder_id, "set_id": ctx.set_id, "step": step.value},
        )

    # ─── After commit ────────────────────────────────────────────

    def _record_history(self, prepared: PreparedPlacement, set_id: SetId) -> list[HistoryEntry]:
        if self.history is None:
            return []
        plan = prepared.plan
        recorded = []
        if plan.moves:
            first_shifted = min(m.to_position for m in plan.moves)
            recorded.append(HistoryEntry.create(
                ActionKind.BULK_MOVE,
                target_position=first_shifted,
                target_page=position_to_page(first_shifted, plan.slots_per_page),
                item_count=len(plan.moves),
                description=f"Moved {len(plan.moves)} items forward for set {set_id}",
            ))
        recorded.append(HistoryEntry.create(
            ActionKind.ADD,
            position=plan.start_position,
            item_count=plan.output_size,
            description=f"Added {plan.output_size} items from set {set_id}",
        ))
        for entry in recorded:
            self.history.record(entry)
        return recorded

    async def _notify_sink(self, set_id: SetId, plan: PlacementPlan) -> None:
        if self.sink is None:
            return
        try:
            await self.sink.store(set_id, list(plan.entries))
        except Exception as e:
            logger.warning(
                f"Placed-items cache update failed for {set_id}: {e}",
                extra={"set_id": set_id},
            )
