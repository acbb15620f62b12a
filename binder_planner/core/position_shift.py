"""Position Shifter — collision-free move plans for pushing content forward.

Invariants:
    - plan_shift ALWAYS orders moves by descending from_position
    - Applied in that order, no move lands on an item that has not moved yet
    - apply_moves returns a new mapping; the input is never mutated
    - A collision during apply_moves is an invariant violation (MoveCollisionError)

Design Decisions:
    - Forward shifts only: source and destination ranges overlap, so only the
      descending order is safe and the planner refuses negative offsets
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TypeVar

from binder_planner.core.domain_types import Position
from binder_planner.core.errors import MoveCollisionError

T = TypeVar("T")


@dataclass(frozen=True)
class Move:
    from_position: Position
    to_position: Position

    def as_dict(self) -> dict:
        return {"from_position": self.from_position, "to_position": self.to_position}


def plan_shift(positions: Iterable[int], offset: int) -> list[Move]:
    """Moves that push every position forward by `offset`, highest first."""
    if offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")
    unique = set(positions)
    if any(p < 0 for p in unique):
        raise ValueError("positions must be >= 0")
    if offset == 0:
        return []
    return [Move(Position(p), Position(p + offset)) for p in sorted(unique, reverse=True)]


def apply_moves(items: Mapping[int, T], moves: Iterable[Move]) -> dict[int, T]:
    """Apply `moves` in the given order to a copy of `items`."""
    result = dict(items)
    for move in moves:
        if move.from_position not in result:
            raise MoveCollisionError(
                move.from_position, move.to_position, "no item at source position",
            )
        if move.to_position in result and move.to_position != move.from_position:
            raise MoveCollisionError(
                move.from_position, move.to_position, "destination is occupied",
            )
        result[move.to_position] = result.pop(move.from_position)
    return result
