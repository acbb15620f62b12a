"""Set Placement Engine — turns a fetched item list into an ordered, positioned insert plan.

Invariants:
    - Output size == len(items) + copies * eligible(items) when variants are on, else len(items)
    - replace: binder cleared, output written from position 0
    - start: every existing item shifted forward by output_size + buffer_pages * slots_per_page,
      moves ordered by descending source; output written from position 0
    - end: output starts on a card-page boundary after the highest occupied position,
      plus buffer_pages * slots_per_page; existing items untouched
    - The whole plan (variants, positions, moves, capacity need) is computed before any write
    - prepare_placement validates capacity and clear confirmation; it never partially applies
    - Every expansion option offered (preview or CapacityExceededError) fits once re-planned

Design Decisions:
    - needed_slots for start/end is the projected extent minus current used slots, so the
      capacity shortfall equals how far the highest projected position overflows
    - Expansion is applied to a projected snapshot first, then the plan is built against it
    - Timestamps injected via `now` keep planning deterministic in tests
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from binder_planner.core.binder_state import Binder, ItemEntry
from binder_planner.core.capacity import (
    CapacityInfo,
    ExpansionOption,
    apply_expansion,
    compute_capacity,
    compute_expansion_options,
    compute_shortfall,
    ensure_capacity,
)
from binder_planner.core.domain_types import BinderId, BinderPlacement, Position, VariantOrder
from binder_planner.core.errors import (
    ConfirmationRequiredError,
    ErrorContext,
    ExpansionUnavailableError,
    MoveCollisionError,
)
from binder_planner.core.page_addressing import next_page_boundary
from binder_planner.core.position_shift import Move, apply_moves, plan_shift
from binder_planner.core.variants import make_variant_entries
from binder_planner.schemas.item import ItemRecord
from binder_planner.schemas.placement import SetPlacementConfig, VariantOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacementPlan:
    """Everything a commit needs, in write order."""
    binder_id: BinderId
    placement: BinderPlacement
    entries: tuple[ItemEntry, ...]
    start_position: Position
    moves: tuple[Move, ...] = ()
    clears_binder: bool = False
    will_clear: bool = False
    needed_slots: int = 0
    buffer_slots: int = 0
    source_count: int = 0
    variant_count: int = 0
    slots_per_page: int = 1

    @property
    def output_size(self) -> int:
        return len(self.entries)

    @property
    def end_position(self) -> int:
        """One past the last newly placed position."""
        return self.start_position + self.output_size

    @property
    def placements(self) -> list[tuple[Position, ItemEntry]]:
        return [(Position(self.start_position + i), e) for i, e in enumerate(self.entries)]


@dataclass(frozen=True)
class PlacementPreview:
    """Non-raising view of a plan for display before the user commits."""
    plan: PlacementPlan
    capacity: CapacityInfo
    shortfall: int
    options: list[ExpansionOption] = field(default_factory=list)

    @property
    def fits(self) -> bool:
        return self.shortfall <= 0

    @property
    def can_expand(self) -> bool:
        return bool(self.options)


@dataclass(frozen=True)
class PreparedPlacement:
    """A validated plan plus the projected binder it was computed against."""
    binder: Binder
    plan: PlacementPlan
    capacity: CapacityInfo
    expansion: ExpansionOption | None = None


# ─── Ordering ────────────────────────────────────────────────────

def order_entries(
    items: Sequence[ItemRecord], options: VariantOptions, added_at: datetime,
) -> list[ItemEntry]:
    """Regular entries plus generated variants, in the configured order."""
    regular = [ItemEntry(item_id=item.id, record=item, added_at=added_at) for item in items]
    if not options.include_variants:
        return regular

    copies_by_index = [
        make_variant_entries(item, options.variant_copies, added_at) for item in items
    ]
    variants = [v for copies in copies_by_index for v in copies]

    if options.variant_order == VariantOrder.FIRST:
        return variants + regular
    if options.variant_order == VariantOrder.LAST:
        return regular + variants

    ordered: list[ItemEntry] = []
    for entry, copies in zip(regular, copies_by_index):
        ordered.append(entry)
        ordered.extend(copies)
    return ordered


# ─── Planning ────────────────────────────────────────────────────

def build_placement_plan(
    binder: Binder,
    items: Sequence[ItemRecord],
    config: SetPlacementConfig,
    *,
    now: datetime | None = None,
) -> PlacementPlan:
    """Compute the full insert plan for `items` against `binder`. Pure, never raises on capacity."""
    if not items:
        raise ValueError("cannot plan a placement for an empty item list")

    added_at = now or datetime.now(timezone.utc)
    entries = tuple(order_entries(items, config.variants, added_at))
    output_size = len(entries)
    slots = binder.slots_per_page
    buffer_slots = config.buffer_pages * slots
    mode = config.binder_placement

    common = dict(
        binder_id=binder.id,
        placement=mode,
        entries=entries,
        source_count=len(items),
        variant_count=output_size - len(items),
        slots_per_page=slots,
    )

    if mode == BinderPlacement.REPLACE:
        plan = PlacementPlan(
            **common,
            start_position=Position(0),
            clears_binder=True,
            will_clear=True,
            needed_slots=output_size,
        )

    elif mode == BinderPlacement.START:
        shift_by = output_size + buffer_slots
        moves = tuple(plan_shift(binder.occupied_positions, shift_by))
        extent = output_size
        if binder.items:
            extent = max(extent, binder.highest_position + shift_by + 1)
        plan = PlacementPlan(
            **common,
            start_position=Position(0),
            moves=moves,
            needed_slots=extent - binder.item_count,
            buffer_slots=buffer_slots,
        )

    else:
        page_start = next_page_boundary(binder.highest_position + 1, slots)
        start = page_start + buffer_slots
        plan = PlacementPlan(
            **common,
            start_position=Position(start),
            needed_slots=start + output_size - binder.item_count,
            buffer_slots=buffer_slots,
        )

    logger.debug(
        f"Planned {mode.value} placement of {output_size} entries "
        f"at {plan.start_position} ({len(plan.moves)} moves)",
        extra={"binder_id": binder.id, "item_count": output_size},
    )
    return plan


def _fits_after(
    binder: Binder,
    items: Sequence[ItemRecord],
    config: SetPlacementConfig,
    option: ExpansionOption,
    now: datetime | None,
) -> bool:
    try:
        projected = apply_expansion(binder, option)
    except ExpansionUnavailableError:
        return False
    plan = build_placement_plan(projected, items, config, now=now)
    capacity = compute_capacity(projected, will_clear=plan.will_clear)
    return compute_shortfall(capacity, plan.needed_slots, will_clear=plan.will_clear) <= 0


def viable_expansion_options(
    binder: Binder,
    items: Sequence[ItemRecord],
    config: SetPlacementConfig,
    plan: PlacementPlan,
    *,
    now: datetime | None = None,
) -> list[ExpansionOption]:
    """Expansion options whose re-planned layout fits.

    A larger grid moves card-page boundaries and widens buffer pages, so an
    option that covers the current shortfall can still overflow once applied.
    """
    options = compute_expansion_options(binder, plan.needed_slots, will_clear=plan.will_clear)
    return [o for o in options if _fits_after(binder, items, config, o, now)]


def preview_placement(
    binder: Binder,
    items: Sequence[ItemRecord],
    config: SetPlacementConfig,
    *,
    now: datetime | None = None,
) -> PlacementPreview:
    """Plan plus capacity verdict and expansion options, without raising on overflow."""
    plan = build_placement_plan(binder, items, config, now=now)
    capacity = compute_capacity(binder, will_clear=plan.will_clear)
    shortfall = compute_shortfall(capacity, plan.needed_slots, will_clear=plan.will_clear)
    options = viable_expansion_options(binder, items, config, plan, now=now) if shortfall > 0 else []
    return PlacementPreview(plan=plan, capacity=capacity, shortfall=shortfall, options=options)


def prepare_placement(
    binder: Binder,
    items: Sequence[ItemRecord],
    config: SetPlacementConfig,
    *,
    expansion: ExpansionOption | None = None,
    now: datetime | None = None,
    context: ErrorContext | None = None,
) -> PreparedPlacement:
    """Commit gate: project the expansion, plan, and validate. Raises instead of partially applying."""
    ctx = context or ErrorContext(binder_id=binder.id)
    projected = apply_expansion(binder, expansion) if expansion else binder
    plan = build_placement_plan(projected, items, config, now=now)

    if plan.clears_binder and projected.items:
        if not getattr(config.placement, "clear_confirmed", False):
            raise ConfirmationRequiredError("clear binder", ctx)

    shortfall = compute_shortfall(
        compute_capacity(projected, will_clear=plan.will_clear),
        plan.needed_slots, will_clear=plan.will_clear,
    )
    options = viable_expansion_options(projected, items, config, plan, now=now) if shortfall > 0 else []
    capacity = ensure_capacity(
        projected, plan.needed_slots, will_clear=plan.will_clear, options=options, context=ctx,
    )
    return PreparedPlacement(binder=projected, plan=plan, capacity=capacity, expansion=expansion)


# ─── Projection ──────────────────────────────────────────────────

def project_placement(binder: Binder, plan: PlacementPlan) -> dict[int, ItemEntry]:
    """Binder contents after `plan` is committed, computed in memory."""
    items = {} if plan.clears_binder else dict(binder.items)
    items = apply_moves(items, plan.moves)
    for position, entry in plan.placements:
        if position in items:
            raise MoveCollisionError(position, position, "insert target is occupied")
        items[position] = entry
    return items
