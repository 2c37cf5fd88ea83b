from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from .exceptions import OutOfBoundsError, SnapshotError


Coordinate = Tuple[int, int]

ICE_HEALTH = 2


class SpecialType(IntEnum):
    NORMAL = 0
    ICE = 1
    BOMB = 2


class Color(IntEnum):
    NONE = 0
    SOLAR = 1
    ELECTRIC = 2
    PLASMA = 3
    TOXIC = 4
    LASER = 5
    VOID = 6


COLOR_HEX: Dict[Color, str] = {
    Color.SOLAR: "#facc15",
    Color.ELECTRIC: "#06b6d4",
    Color.PLASMA: "#e879f9",
    Color.TOXIC: "#34d399",
    Color.LASER: "#f43f5e",
    Color.VOID: "#8b5cf6",
}


@dataclass(frozen=True)
class Cell:
    filled: bool = False
    color: Color = Color.NONE
    special: SpecialType = SpecialType.NORMAL
    health: Optional[int] = None

    @classmethod
    def block(cls, color: Color, special: SpecialType = SpecialType.NORMAL, health: Optional[int] = None) -> "Cell":
        if special == SpecialType.ICE and health is None:
            health = ICE_HEALTH
        if special != SpecialType.ICE:
            health = None
        return cls(filled=True, color=Color(color), special=SpecialType(special), health=health)


EMPTY_CELL = Cell()


class Board:
    """Square grid of cells stored as three numpy layers indexed [y, x].

    `colors` holds 0 for empty cells and a Color value for filled ones, `kinds`
    the SpecialType and `health` the remaining ice health (0 when unset).
    Row index grows downward; gravity pulls toward row size - 1.
    """

    def __init__(self, size: int = 10) -> None:
        self.size = int(size)
        if self.size <= 0:
            raise ValueError(f"Board size must be positive, got {size}")
        self.colors = np.zeros((self.size, self.size), dtype=np.int8)
        self.kinds = np.zeros((self.size, self.size), dtype=np.int8)
        self.health = np.zeros((self.size, self.size), dtype=np.int8)

    def reset(self) -> None:
        self.colors.fill(0)
        self.kinds.fill(0)
        self.health.fill(0)

    def is_inside(self, x: int, y: int) -> bool:
        return 0 <= x < self.size and 0 <= y < self.size

    def require_inside(self, x: int, y: int) -> None:
        if not self.is_inside(x, y):
            raise OutOfBoundsError(f"({x}, {y}) is outside a {self.size}x{self.size} board")

    def cell(self, x: int, y: int) -> Cell:
        self.require_inside(x, y)
        color = int(self.colors[y, x])
        if color == 0:
            return EMPTY_CELL
        special = SpecialType(int(self.kinds[y, x]))
        health = int(self.health[y, x]) if special == SpecialType.ICE else None
        return Cell(filled=True, color=Color(color), special=special, health=health)

    def is_filled(self, x: int, y: int) -> bool:
        self.require_inside(x, y)
        return bool(self.colors[y, x] != 0)

    def set_cell(self, x: int, y: int, cell: Cell) -> None:
        self.require_inside(x, y)
        if not cell.filled:
            self.clear_cell(x, y)
            return
        if cell.color == Color.NONE:
            raise ValueError("A filled cell needs a color")
        self.colors[y, x] = int(cell.color)
        self.kinds[y, x] = int(cell.special)
        if cell.special == SpecialType.ICE:
            health = ICE_HEALTH if cell.health is None else int(cell.health)
            if health < 1:
                raise ValueError(f"Ice health must be at least 1, got {health}")
            self.health[y, x] = health
        else:
            self.health[y, x] = 0

    def clear_cell(self, x: int, y: int) -> None:
        self.require_inside(x, y)
        self.colors[y, x] = 0
        self.kinds[y, x] = 0
        self.health[y, x] = 0

    def clear_cells(self, mask: np.ndarray) -> int:
        """Empty every cell selected by a boolean mask; returns how many were filled."""
        cleared = int(np.count_nonzero(mask & (self.colors != 0)))
        self.colors[mask] = 0
        self.kinds[mask] = 0
        self.health[mask] = 0
        return cleared

    def filled_mask(self) -> np.ndarray:
        return self.colors != 0

    def filled_count(self) -> int:
        return int(np.count_nonzero(self.colors))

    def full_rows(self) -> List[int]:
        return [int(r) for r in np.where(np.all(self.colors != 0, axis=1))[0]]

    def full_columns(self) -> List[int]:
        return [int(c) for c in np.where(np.all(self.colors != 0, axis=0))[0]]

    def apply_gravity(self, *carried: np.ndarray, columns: Optional[Iterable[int]] = None) -> int:
        """Compact columns toward the bottom, keeping block order.

        Only `columns` are compacted when given, otherwise the whole board.
        Extra (size, size) arrays in `carried` are permuted alongside the
        board layers. Returns the number of cells that moved.
        """
        moved = 0
        for x in range(self.size) if columns is None else columns:
            rows = np.flatnonzero(self.colors[:, x] != 0)
            target = np.arange(self.size - rows.size, self.size)
            if np.array_equal(rows, target):
                continue
            moved += int(np.count_nonzero(rows != target))
            for layer in (self.colors, self.kinds, self.health, *carried):
                column = layer[rows, x].copy()
                layer[:, x] = 0
                layer[target, x] = column
        return moved

    def copy(self) -> "Board":
        new_board = Board(self.size)
        new_board.colors = self.colors.copy()
        new_board.kinds = self.kinds.copy()
        new_board.health = self.health.copy()
        return new_board

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return (
            self.size == other.size
            and np.array_equal(self.colors, other.colors)
            and np.array_equal(self.kinds, other.kinds)
            and np.array_equal(self.health, other.health)
        )

    def __repr__(self) -> str:
        return f"Board(size={self.size}, filled={self.filled_count()})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "colors": self.colors.tolist(),
            "kinds": self.kinds.tolist(),
            "health": self.health.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Board":
        try:
            board = cls(int(data["size"]))
            layers = [np.asarray(data[key], dtype=np.int8) for key in ("colors", "kinds", "health")]
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            raise SnapshotError(f"Malformed board payload: {exc}") from exc
        for layer in layers:
            if layer.shape != (board.size, board.size):
                raise SnapshotError(f"Board layer has shape {layer.shape}, expected {(board.size, board.size)}")
        colors, kinds, health = layers
        filled = colors != 0
        ice = filled & (kinds == SpecialType.ICE)
        problems = {
            "color out of range": (colors < 0) | (colors > max(Color)),
            "unknown special type": (kinds < 0) | (kinds > max(SpecialType)),
            "empty cell with a special or health": ~filled & ((kinds != 0) | (health != 0)),
            "ice without health": ice & (health < 1),
            "health on a non-ice cell": filled & ~ice & (health != 0),
        }
        for reason, bad in problems.items():
            if bad.any():
                y, x = (int(v) for v in np.argwhere(bad)[0])
                raise SnapshotError(f"Invalid board cell ({x}, {y}): {reason}")
        board.colors, board.kinds, board.health = colors, kinds, health
        return board


def board_to_text(board: Board) -> str:
    """Debug dump: '·' empty, '█' normal, '*' bomb, a digit for ice health."""
    lines = []
    for y in range(board.size):
        chars = []
        for x in range(board.size):
            if board.colors[y, x] == 0:
                chars.append("·")
            elif board.kinds[y, x] == SpecialType.BOMB:
                chars.append("*")
            elif board.kinds[y, x] == SpecialType.ICE:
                chars.append(str(int(board.health[y, x])))
            else:
                chars.append("█")
        lines.append("".join(chars))
    return "\n".join(lines)
