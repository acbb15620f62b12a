"""Grid Configuration — closed table of card-page layouts.

Invariants:
    - GRID_CONFIGS is the single source of truth for supported grid sizes
    - total_slots == columns * rows
    - resolve_grid_config never raises: unknown ids resolve to DEFAULT_GRID_SIZE
"""

import logging
from dataclasses import dataclass

from binder_planner.core.domain_types import GridSizeId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridConfig:
    """Slots laid out on one card-page."""
    size_id: GridSizeId
    columns: int
    rows: int

    @property
    def total_slots(self) -> int:
        return self.columns * self.rows


DEFAULT_GRID_SIZE = GridSizeId("3x3")

GRID_CONFIGS: dict[GridSizeId, GridConfig] = {
    GridSizeId("1x1"): GridConfig(GridSizeId("1x1"), columns=1, rows=1),
    GridSizeId("2x2"): GridConfig(GridSizeId("2x2"), columns=2, rows=2),
    GridSizeId("3x3"): GridConfig(GridSizeId("3x3"), columns=3, rows=3),
    GridSizeId("4x3"): GridConfig(GridSizeId("4x3"), columns=4, rows=3),
    GridSizeId("4x4"): GridConfig(GridSizeId("4x4"), columns=4, rows=4),
}


def resolve_grid_config(size_id: GridSizeId | str | None) -> GridConfig:
    """Look up a grid size, falling back to the default layout."""
    grid = GRID_CONFIGS.get(size_id or "")
    if grid is None:
        logger.debug(f"Unknown grid size {size_id!r}, using {DEFAULT_GRID_SIZE}")
        return GRID_CONFIGS[DEFAULT_GRID_SIZE]
    return grid


def is_known_grid_size(size_id: GridSizeId | str | None) -> bool:
    return (size_id or "") in GRID_CONFIGS


def grid_sizes_larger_than(grid: GridConfig) -> list[GridConfig]:
    """Every supported grid with more slots than `grid`, smallest first."""
    larger = [g for g in GRID_CONFIGS.values() if g.total_slots > grid.total_slots]
    return sorted(larger, key=lambda g: g.total_slots)
