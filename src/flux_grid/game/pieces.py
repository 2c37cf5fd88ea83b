from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import SpawnRules
from .grid import Color, SpecialType


Shape = np.ndarray


def _rot90(shape: Shape, k: int) -> Shape:
    k = k % 4
    if k == 0:
        return shape
    return np.rot90(shape, k, axes=(1, 0))  # rotate clockwise when k>0


@dataclass(frozen=True)
class ShapeDef:
    shape_id: str
    rows: Tuple[Tuple[int, ...], ...]
    color: Color

    def matrix(self) -> Shape:
        return np.array(self.rows, dtype=bool)

    @property
    def cell_count(self) -> int:
        return sum(sum(row) for row in self.rows)


# 1010! style shapes
SHAPES: Tuple[ShapeDef, ...] = (
    ShapeDef("dot", ((1,),), Color.SOLAR),
    ShapeDef("h2", ((1, 1),), Color.ELECTRIC),
    ShapeDef("v2", ((1,), (1,)), Color.ELECTRIC),
    ShapeDef("h3", ((1, 1, 1),), Color.PLASMA),
    ShapeDef("v3", ((1,), (1,), (1,)), Color.PLASMA),
    ShapeDef("h4", ((1, 1, 1, 1),), Color.TOXIC),
    ShapeDef("v4", ((1,), (1,), (1,), (1,)), Color.TOXIC),
    ShapeDef("square", ((1, 1), (1, 1)), Color.SOLAR),
    ShapeDef("l_shape", ((1, 0), (1, 0), (1, 1)), Color.LASER),
    ShapeDef("j_shape", ((0, 1), (0, 1), (1, 1)), Color.LASER),
    ShapeDef("t_shape", ((1, 1, 1), (0, 1, 0)), Color.VOID),
    ShapeDef("cross", ((0, 1, 0), (1, 1, 1), (0, 1, 0)), Color.PLASMA),
    ShapeDef("z_shape", ((1, 1, 0), (0, 1, 1)), Color.TOXIC),
    ShapeDef("s_shape", ((0, 1, 1), (1, 1, 0)), Color.ELECTRIC),
    ShapeDef("corner", ((1, 1), (1, 0)), Color.VOID),
)

SHAPES_BY_ID: Dict[str, ShapeDef] = {s.shape_id: s for s in SHAPES}
SHAPE_INDEX: Dict[str, int] = {s.shape_id: i for i, s in enumerate(SHAPES)}


@dataclass(frozen=True, eq=False)
class Piece:
    """A tray piece. The shape matrix is read-only; rotation builds a new Piece."""

    shape_id: str
    shape: Shape
    color: Color
    special: SpecialType = SpecialType.NORMAL
    instance_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        matrix = np.array(self.shape, dtype=bool)
        if matrix.ndim != 2 or not matrix.any():
            raise ValueError(f"Piece shape must be a non-empty 2D matrix, got {self.shape!r}")
        matrix.setflags(write=False)
        object.__setattr__(self, "shape", matrix)

    @classmethod
    def from_shape(
        cls,
        shape_def: ShapeDef,
        special: SpecialType = SpecialType.NORMAL,
        instance_id: Optional[str] = None,
    ) -> "Piece":
        if instance_id is None:
            return cls(shape_def.shape_id, shape_def.matrix(), shape_def.color, special)
        return cls(shape_def.shape_id, shape_def.matrix(), shape_def.color, special, instance_id)

    @property
    def cell_count(self) -> int:
        return int(np.count_nonzero(self.shape))

    def rotated(self, turns: int = 1) -> "Piece":
        return replace(self, shape=_rot90(self.shape, turns))

    def offsets(self) -> List[Tuple[int, int]]:
        """(col, row) offsets of the filled shape cells, row-major."""
        rows, cols = np.nonzero(self.shape)
        return [(int(c), int(r)) for r, c in zip(rows, cols)]

    def cells_at(self, origin_x: int, origin_y: int) -> List[Tuple[int, int]]:
        return [(origin_x + dx, origin_y + dy) for dx, dy in self.offsets()]

    def all_rotations(self) -> List["Piece"]:
        """Distinct orientations, rotation 0 first."""
        rotations: List[Piece] = []
        for r in range(4):
            candidate = self.rotated(r)
            if not any(np.array_equal(candidate.shape, existing.shape) for existing in rotations):
                rotations.append(candidate)
        return rotations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shape_id": self.shape_id,
            "shape": self.shape.astype(int).tolist(),
            "color": int(self.color),
            "special": int(self.special),
            "instance_id": self.instance_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Piece":
        return cls(
            shape_id=str(data["shape_id"]),
            shape=np.array(data["shape"], dtype=bool),
            color=Color(int(data["color"])),
            special=SpecialType(int(data["special"])),
            instance_id=str(data["instance_id"]),
        )

    def __repr__(self) -> str:
        return f"Piece({self.shape_id}, {self.color.name}, {self.special.name}, {self.instance_id[:8]})"


class PieceGenerator:
    """Draws tray pieces from the shape catalog with an injectable RNG."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        rules: Optional[SpawnRules] = None,
        catalog: Sequence[ShapeDef] = SHAPES,
    ) -> None:
        if not catalog:
            raise ValueError("Shape catalog is empty")
        self.rng = rng or random.Random()
        self.rules = rules or SpawnRules()
        self.catalog = tuple(catalog)
        self.lucky_pool = tuple(s for s in self.catalog if s.cell_count <= self.rules.lucky_max_cells) or self.catalog

    def roll_special(self, allow_ice: bool = True) -> SpecialType:
        roll = self.rng.random()
        if roll > self.rules.bomb_threshold:
            return SpecialType.BOMB
        if roll > self.rules.ice_threshold:
            return SpecialType.ICE if allow_ice else SpecialType.NORMAL
        return SpecialType.NORMAL

    def _new_instance_id(self) -> str:
        return uuid.UUID(int=self.rng.getrandbits(128), version=4).hex

    def generate_pieces(self, count: int, lucky: bool = False, allow_ice: bool = True) -> List[Piece]:
        pieces: List[Piece] = []
        for _ in range(count):
            pool = self.catalog
            if lucky and self.rng.random() < self.rules.lucky_probability:
                pool = self.lucky_pool
            shape_def = self.rng.choice(pool)
            special = self.roll_special(allow_ice)
            pieces.append(Piece.from_shape(shape_def, special, self._new_instance_id()))
        return pieces
