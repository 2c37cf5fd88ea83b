"""
Shared fixtures for the engine and environment tests.
Board builders are factory fixtures so each test states the exact cells it needs.
"""

import random
from typing import Callable, Iterable, Optional

import pytest

from flux_grid.game.config import GameConfig
from flux_grid.game.core import FluxGame
from flux_grid.game.grid import Board, Cell, Color, SpecialType
from flux_grid.game.pieces import SHAPES_BY_ID, Piece


@pytest.fixture
def board() -> Board:
    """Empty 10x10 board."""
    return Board(10)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def fill_row() -> Callable[..., Board]:
    """Fill row `y` except the x positions in `skip`."""

    def _fill(
        board: Board,
        y: int,
        color: Color = Color.SOLAR,
        skip: Iterable[int] = (),
        special: SpecialType = SpecialType.NORMAL,
        health: Optional[int] = None,
    ) -> Board:
        skipped = set(skip)
        for x in range(board.size):
            if x not in skipped:
                board.set_cell(x, y, Cell.block(color, special, health))
        return board

    return _fill


@pytest.fixture
def fill_column() -> Callable[..., Board]:
    """Fill column `x` except the y positions in `skip`."""

    def _fill(board: Board, x: int, color: Color = Color.SOLAR, skip: Iterable[int] = ()) -> Board:
        skipped = set(skip)
        for y in range(board.size):
            if y not in skipped:
                board.set_cell(x, y, Cell.block(color))
        return board

    return _fill


@pytest.fixture
def make_piece() -> Callable[..., Piece]:
    """Build a tray piece from a catalog shape id."""

    def _make(shape_id: str, special: SpecialType = SpecialType.NORMAL) -> Piece:
        return Piece.from_shape(SHAPES_BY_ID[shape_id], special)

    return _make


@pytest.fixture
def game() -> FluxGame:
    """Endless session with a fixed seed."""
    return FluxGame(GameConfig(random_seed=7))
