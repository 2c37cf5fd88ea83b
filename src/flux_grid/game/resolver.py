"""
Line resolution: the fixed-point loop run after every placement or skill.

Each wave detects full rows and columns, turns them into hits, propagates bomb
explosions, removes the cleared cells in one batch and lets every column fall.
Waves repeat until no line is left to count.

A cell takes at most one hit per `resolve` call. Ice chipped during the call
is shielded for the rest of it, and a full line made only of shielded cells
is spent: it is not hit again and not counted, so a full row of fresh ice
loses one health per call instead of melting within a single placement.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, FrozenSet, List, Sequence, Set, Tuple

import numpy as np

from .grid import Board, Coordinate, SpecialType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionWave:
    rows: Tuple[int, ...]
    columns: Tuple[int, ...]
    cleared: FrozenSet[Coordinate]
    damaged: FrozenSet[Coordinate]
    exploded: Tuple[Coordinate, ...]
    color_bonus: bool

    @property
    def lines(self) -> int:
        return len(self.rows) + len(self.columns)


@dataclass
class ResolutionResult:
    board: Board
    total_lines_cleared: int = 0
    chain_waves: int = 0
    color_bonus: bool = False
    bombs_exploded: int = 0
    ice_cells_damaged: int = 0
    ice_cells_broken: int = 0
    cells_cleared: int = 0
    waves: List[ResolutionWave] = field(default_factory=list)

    @property
    def cleared_any(self) -> bool:
        return self.total_lines_cleared > 0


class _Wave:
    """Hit bookkeeping for a single wave. Mutates ice health and the shield mask."""

    def __init__(self, grid: Board, shielded: np.ndarray) -> None:
        self.grid = grid
        self.shielded = shielded
        self.clear = np.zeros_like(shielded)
        self.damaged: List[Coordinate] = []
        self.exploded: List[Coordinate] = []
        self.ice_broken = 0
        self._pending: Deque[Coordinate] = deque()
        self._visited: Set[Coordinate] = set()

    def hit(self, x: int, y: int) -> None:
        grid = self.grid
        if grid.colors[y, x] == 0 or self.clear[y, x] or self.shielded[y, x]:
            return
        kind = SpecialType(int(grid.kinds[y, x]))
        if kind == SpecialType.ICE:
            if grid.health[y, x] > 1:
                grid.health[y, x] -= 1
                self.shielded[y, x] = True
                self.damaged.append((x, y))
                return
            self.ice_broken += 1
        elif kind == SpecialType.BOMB:
            self._pending.append((x, y))
        elif kind != SpecialType.NORMAL:
            raise AssertionError(f"Unhandled special type {kind!r}")
        self.clear[y, x] = True

    def detonate(self) -> None:
        size = self.grid.size
        while self._pending:
            bx, by = self._pending.popleft()
            if (bx, by) in self._visited:
                continue
            self._visited.add((bx, by))
            self.exploded.append((bx, by))
            for ny in range(max(0, by - 1), min(size, by + 2)):
                for nx in range(max(0, bx - 1), min(size, bx + 2)):
                    self.hit(nx, ny)


def _has_monochrome_line(grid: Board, rows: Sequence[int], columns: Sequence[int]) -> bool:
    for r in rows:
        if np.unique(grid.colors[r, :]).size == 1:
            return True
    for c in columns:
        if np.unique(grid.colors[:, c]).size == 1:
            return True
    return False


def _counted_lines(grid: Board, shielded: np.ndarray) -> Tuple[List[int], List[int]]:
    rows = [r for r in grid.full_rows() if not shielded[r, :].all()]
    columns = [c for c in grid.full_columns() if not shielded[:, c].all()]
    return rows, columns


def resolve(board: Board) -> ResolutionResult:
    """Clear lines on a copy of `board` until it is stable and report what happened."""
    grid = board.copy()
    shielded = np.zeros((grid.size, grid.size), dtype=bool)
    result = ResolutionResult(board=grid)

    rows, columns = _counted_lines(grid, shielded)
    while rows or columns:
        color_bonus = _has_monochrome_line(grid, rows, columns)

        wave = _Wave(grid, shielded)
        line_cells = np.zeros_like(shielded)
        line_cells[rows, :] = True
        line_cells[:, columns] = True
        for y, x in zip(*np.nonzero(line_cells)):
            wave.hit(int(x), int(y))
        wave.detonate()

        cleared = frozenset((int(x), int(y)) for y, x in zip(*np.nonzero(wave.clear)))
        result.cells_cleared += grid.clear_cells(wave.clear)
        grid.apply_gravity(shielded)

        result.chain_waves += 1
        result.total_lines_cleared += len(rows) + len(columns)
        result.color_bonus = result.color_bonus or color_bonus
        result.bombs_exploded += len(wave.exploded)
        result.ice_cells_damaged += len(wave.damaged)
        result.ice_cells_broken += wave.ice_broken
        result.waves.append(
            ResolutionWave(
                rows=tuple(rows),
                columns=tuple(columns),
                cleared=cleared,
                damaged=frozenset(wave.damaged),
                exploded=tuple(wave.exploded),
                color_bonus=color_bonus,
            )
        )
        logger.debug(
            "wave %d: rows=%s cols=%s cleared=%d damaged=%d bombs=%d bonus=%s",
            result.chain_waves, rows, columns, len(cleared), len(wave.damaged), len(wave.exploded), color_bonus,
        )
        rows, columns = _counted_lines(grid, shielded)

    return result
