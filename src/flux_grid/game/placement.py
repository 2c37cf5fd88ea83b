from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .exceptions import InvalidPlacementError
from .grid import ICE_HEALTH, Board, Cell, Coordinate, SpecialType
from .pieces import Piece

logger = logging.getLogger(__name__)


def can_place(board: Board, piece: Piece, x: int, y: int) -> bool:
    """Check if piece fits with its top-left corner at (x, y)"""
    for cx, cy in piece.cells_at(x, y):
        if not board.is_inside(cx, cy):
            return False
        if board.colors[cy, cx] != 0:
            return False
    return True


def place(board: Board, piece: Piece, x: int, y: int, ice_health: int = ICE_HEALTH) -> Board:
    """Return a copy of `board` with `piece` written at (x, y). Does not resolve lines."""
    if not can_place(board, piece, x, y):
        raise InvalidPlacementError(f"{piece!r} does not fit at ({x}, {y})")
    new_board = board.copy()
    health = ice_health if piece.special == SpecialType.ICE else None
    cell = Cell.block(piece.color, piece.special, health)
    for cx, cy in piece.cells_at(x, y):
        new_board.set_cell(cx, cy, cell)
    logger.debug("placed %r at (%d, %d)", piece, x, y)
    return new_board


def valid_placements(board: Board, piece: Piece) -> List[Coordinate]:
    """All (x, y) origins where the piece fits, row-major"""
    h, w = piece.shape.shape
    positions: List[Coordinate] = []
    for y in range(board.size - h + 1):
        for x in range(board.size - w + 1):
            if can_place(board, piece, x, y):
                positions.append((x, y))
    return positions


def piece_fits_anywhere(board: Board, piece: Piece, rotations: bool = True) -> bool:
    candidates = piece.all_rotations() if rotations else [piece]
    return any(valid_placements(board, candidate) for candidate in candidates)


def any_piece_fits(board: Board, pieces: Iterable[Piece], rotations: bool = True) -> bool:
    return any(piece_fits_anywhere(board, piece, rotations) for piece in pieces)


def _count_adjacent_filled(board: Board, cells: List[Coordinate]) -> int:
    count = 0
    for x, y in cells:
        for dx, dy in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            nx, ny = x + dx, y + dy
            if board.is_inside(nx, ny) and board.colors[ny, nx] != 0:
                count += 1
    return count


def evaluate_placement(board: Board, piece: Piece, x: int, y: int) -> int:
    """Heuristic used by the MAGNET ability; assumes the placement is valid"""
    cells = piece.cells_at(x, y)
    filled = board.filled_mask()
    for cx, cy in cells:
        filled[cy, cx] = True
    lines = int(np.count_nonzero(filled.all(axis=1)) + np.count_nonzero(filled.all(axis=0)))
    score = lines * 100
    score += _count_adjacent_filled(board, cells) * 10
    score += (board.size - y) * 2
    return score


def find_best_placement(board: Board, piece: Piece) -> Optional[Tuple[int, int]]:
    best_score = -1
    best: Optional[Tuple[int, int]] = None
    for x, y in valid_placements(board, piece):
        score = evaluate_placement(board, piece, x, y)
        if score > best_score:
            best_score = score
            best = (x, y)
    return best
