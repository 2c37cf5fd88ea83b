"""Game module for Flux Grid.

Exports the resolution engine and supporting classes:
- Board: Grid representation, bounds checks and gravity
- Piece / PieceGenerator: Polyomino pieces, rotation and random trays
- can_place / place: Placement validation
- resolve: Line clearing, bomb chains and ice damage
- ScoringRules / apply_flux: Score and flux economy
- FluxGame: Session loop, objectives, abilities and progression
"""

from .grid import Board, Cell, Color, SpecialType
from .pieces import SHAPES, Piece, PieceGenerator
from .placement import can_place, place
from .resolver import ResolutionResult, resolve
from .rules import FluxUpdate, ScoringRules, apply_flux
from .objectives import Objective, ObjectiveType, update_objectives
from .config import GameConfig, SpawnRules
from .core import FluxGame, GameMode

__all__ = [
    "Board",
    "Cell",
    "Color",
    "SpecialType",
    "SHAPES",
    "Piece",
    "PieceGenerator",
    "can_place",
    "place",
    "ResolutionResult",
    "resolve",
    "FluxUpdate",
    "ScoringRules",
    "apply_flux",
    "Objective",
    "ObjectiveType",
    "update_objectives",
    "GameConfig",
    "SpawnRules",
    "FluxGame",
    "GameMode",
]
