from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional


@dataclass
class GameConfig:
    """Configuration for a flux-grid session"""
    grid_size: int = 10
    pieces_per_set: int = 3
    starting_flux: int = 50
    max_flux: int = 100
    # When False pieces are placed in their tray orientation only (ROTATE ability required)
    free_rotation: bool = True
    history_limit: int = 10
    freeze_moves: int = 5
    max_episode_steps: int = 10000
    random_seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.grid_size <= 0:
            raise ValueError(f"grid_size must be positive, got {self.grid_size}")
        if self.pieces_per_set <= 0:
            raise ValueError(f"pieces_per_set must be positive, got {self.pieces_per_set}")
        if not 0 <= self.starting_flux <= self.max_flux:
            raise ValueError(f"starting_flux must lie in [0, {self.max_flux}], got {self.starting_flux}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GameConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {unknown}")
        return cls(**dict(data))


@dataclass
class SpawnRules:
    """Probabilities used when generating tray pieces.

    A single roll in [0, 1) decides the special type: above `bomb_threshold`
    the piece is a bomb, above `ice_threshold` it is ice, otherwise normal.
    """
    bomb_threshold: float = 0.92
    ice_threshold: float = 0.85
    lucky_probability: float = 0.4
    lucky_max_cells: int = 3
