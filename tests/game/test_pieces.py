"""Unit tests for flux_grid/game/pieces.py"""

import random

import numpy as np
import pytest

from flux_grid.game.config import SpawnRules
from flux_grid.game.grid import Color, SpecialType
from flux_grid.game.pieces import SHAPES, SHAPES_BY_ID, Piece, PieceGenerator


class _FixedRoll(random.Random):
    """Random whose random() always returns the same value."""

    def __init__(self, roll: float) -> None:
        super().__init__(0)
        self.roll = roll

    def random(self) -> float:
        return self.roll


def test_catalog() -> None:
    assert [s.shape_id for s in SHAPES] == [
        "dot", "h2", "v2", "h3", "v3", "h4", "v4", "square",
        "l_shape", "j_shape", "t_shape", "cross", "z_shape", "s_shape", "corner",
    ]
    assert SHAPES_BY_ID["cross"].cell_count == 5
    assert SHAPES_BY_ID["square"].color == Color.SOLAR


def test_rotation_is_clockwise(make_piece) -> None:
    piece = make_piece("l_shape")
    rotated = piece.rotated(1)
    expected = np.array([[1, 1, 1], [1, 0, 0]], dtype=bool)
    assert np.array_equal(rotated.shape, expected)
    assert rotated.instance_id == piece.instance_id
    assert rotated.color == piece.color


def test_four_turns_is_identity(make_piece) -> None:
    piece = make_piece("t_shape")
    assert np.array_equal(piece.rotated(4).shape, piece.shape)
    assert np.array_equal(piece.rotated(1).rotated(3).shape, piece.shape)


@pytest.mark.parametrize(
    "shape_id, orientations",
    [("dot", 1), ("square", 1), ("cross", 1), ("h2", 2), ("z_shape", 2), ("t_shape", 4), ("l_shape", 4)],
)
def test_all_rotations_unique(make_piece, shape_id: str, orientations: int) -> None:
    assert len(make_piece(shape_id).all_rotations()) == orientations


def test_shape_is_read_only(make_piece) -> None:
    piece = make_piece("square")
    with pytest.raises(ValueError):
        piece.shape[0, 0] = False


def test_offsets_are_col_row(make_piece) -> None:
    assert make_piece("v2").offsets() == [(0, 0), (0, 1)]
    assert make_piece("h2").cells_at(3, 4) == [(3, 4), (4, 4)]


def test_empty_shape_rejected() -> None:
    with pytest.raises(ValueError):
        Piece("bad", np.zeros((2, 2), dtype=bool), Color.SOLAR)


def test_dict_round_trip(make_piece) -> None:
    piece = make_piece("j_shape", SpecialType.ICE).rotated(2)
    restored = Piece.from_dict(piece.to_dict())
    assert restored.instance_id == piece.instance_id
    assert restored.special == SpecialType.ICE
    assert np.array_equal(restored.shape, piece.shape)


def test_generator_is_deterministic() -> None:
    first = PieceGenerator(random.Random(42)).generate_pieces(6)
    second = PieceGenerator(random.Random(42)).generate_pieces(6)
    assert [p.shape_id for p in first] == [p.shape_id for p in second]
    assert [p.special for p in first] == [p.special for p in second]
    assert [p.instance_id for p in first] == [p.instance_id for p in second]
    assert len({p.instance_id for p in first}) == 6


@pytest.mark.parametrize(
    "roll, allow_ice, expected",
    [
        (0.93, True, SpecialType.BOMB),
        (0.92, True, SpecialType.ICE),
        (0.86, True, SpecialType.ICE),
        (0.86, False, SpecialType.NORMAL),
        (0.85, True, SpecialType.NORMAL),
        (0.10, True, SpecialType.NORMAL),
    ],
)
def test_special_thresholds(roll: float, allow_ice: bool, expected: SpecialType) -> None:
    assert PieceGenerator(_FixedRoll(roll)).roll_special(allow_ice) == expected


def test_lucky_pieces_are_small() -> None:
    generator = PieceGenerator(random.Random(3), SpawnRules(lucky_probability=1.0))
    pieces = generator.generate_pieces(30, lucky=True)
    assert all(p.cell_count <= 3 for p in pieces)


def test_generator_rejects_empty_catalog() -> None:
    with pytest.raises(ValueError):
        PieceGenerator(random.Random(0), catalog=())
