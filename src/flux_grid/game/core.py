from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Set, Tuple

import numpy as np

from .abilities import ABILITY_COSTS, DEFAULT_ACTIVE_UNLOCKS, ActiveAbility, PassiveAbility, PassiveLoadout
from .config import GameConfig, SpawnRules
from .exceptions import (
    AbilityLockedError,
    GameStateError,
    InsufficientFluxError,
    InvalidPlacementError,
    SnapshotError,
)
from .grid import Board
from .objectives import (
    ACHIEVEMENTS,
    AchievementMetric,
    GameStats,
    LevelDef,
    Objective,
    is_level_complete,
    restore_achievements,
    update_achievements,
    update_objectives,
)
from .pieces import Piece, PieceGenerator
from .placement import any_piece_fits, can_place, find_best_placement, place
from .progression import Ability, Progression, star_rating
from .resolver import ResolutionResult, resolve
from .rules import ScoringRules, apply_flux

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class GameMode(str, Enum):
    CAREER = "CAREER"
    ENDLESS = "ENDLESS"


@dataclass
class PlacementOutcome:
    piece: Piece
    x: int
    y: int
    blocks_placed: int
    resolution: ResolutionResult
    points: int
    combo: int
    flux_gained: int
    surge_triggered: bool = False
    surge_consumed: bool = False
    level_complete: bool = False
    game_over: bool = False
    unlocked_achievements: List[str] = field(default_factory=list)

    @property
    def lines_cleared(self) -> int:
        return self.resolution.total_lines_cleared


@dataclass
class SkillOutcome:
    ability: ActiveAbility
    blocks_destroyed: int
    resolution: ResolutionResult
    points: int
    combo: int


@dataclass
class _HistoryEntry:
    board: Board
    pieces: List[Piece]
    score: int
    combo: int
    surge_active: bool
    moves_left: Optional[int]
    objectives: List[Objective]
    level_complete: bool
    game_over: bool
    freeze_moves_remaining: int


class FluxGame:
    """A play session: board, tray, score, flux economy and level objectives.

    The host drives it one action at a time; every placement or skill runs a
    complete validate / resolve / score cycle before returning.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rules: Optional[ScoringRules] = None,
        spawn_rules: Optional[SpawnRules] = None,
        rng: Optional[random.Random] = None,
        progression: Optional[Progression] = None,
        passives: Optional[PassiveLoadout] = None,
    ) -> None:
        self.config = config or GameConfig()
        self.rules = rules or ScoringRules()
        self.rng = rng or random.Random(self.config.random_seed)
        self.generator = PieceGenerator(self.rng, spawn_rules)
        self.progression = progression or Progression()
        self.passives = passives or PassiveLoadout()
        self.stats = GameStats()
        self.achievements = list(ACHIEVEMENTS)
        self.high_score = 0

        self.mode = GameMode.ENDLESS
        self.level: Optional[LevelDef] = None
        self.board = Board(self.config.grid_size)
        self.pieces: List[Piece] = []
        self.score = 0
        self.flux = self.config.starting_flux
        self.combo = 0
        self.surge_active = False
        self.moves_left: Optional[int] = None
        self.objectives: List[Objective] = []
        self.level_complete = False
        self.level_rewarded = False
        self.game_over = False
        self.freeze_moves_remaining = 0
        self.step_count = 0
        self.history: Deque[_HistoryEntry] = deque(maxlen=self.config.history_limit)

        for passive in self.progression.unlocked:
            if isinstance(passive, PassiveAbility):
                self.passives.unlock(passive)
        self.start_endless()

    # ---------- Session lifecycle ----------
    def _begin(self, mode: GameMode, level: Optional[LevelDef]) -> None:
        self.mode = mode
        self.level = level
        self.board = Board(self.config.grid_size)
        self.score = 0
        self.flux = self.config.starting_flux
        self.combo = 0
        self.surge_active = False
        self.moves_left = level.moves_limit if level is not None else None
        self.objectives = level.fresh_objectives() if level is not None else []
        self.level_complete = False
        self.level_rewarded = False
        self.game_over = False
        self.freeze_moves_remaining = 0
        self.step_count = 0
        self.history.clear()
        self.pieces = self._new_tray()
        self.stats.games_played += 1
        logger.info("started %s game%s", mode.value.lower(), f" at level {level.index} ({level.name})" if level else "")

    def start_endless(self) -> None:
        self._begin(GameMode.ENDLESS, None)

    def start_level(self, level_index: int) -> None:
        if not 0 <= level_index < len(self.progression.levels):
            raise GameStateError(f"Unknown level {level_index}")
        self._begin(GameMode.CAREER, self.progression.levels[level_index])

    def next_level(self) -> bool:
        if self.level is None:
            raise GameStateError("next_level is only available in career mode")
        next_index = self.level.index + 1
        if next_index >= len(self.progression.levels):
            return False
        self.start_level(next_index)
        return True

    def reset(self, seed: Optional[int] = None) -> None:
        if seed is not None:
            self.rng.seed(seed)
        if self.level is None:
            self.start_endless()
        else:
            self.start_level(self.level.index)

    def _new_tray(self) -> List[Piece]:
        return self.generator.generate_pieces(
            self.config.pieces_per_set,
            lucky=self.passives.lucky_pieces(),
            allow_ice=self.freeze_moves_remaining == 0,
        )

    def _require_active(self) -> None:
        if self.game_over:
            raise GameStateError("The game is over")

    # ---------- Placement ----------
    def _tray_piece(self, piece_idx: int, rotation: int = 0) -> Piece:
        if not 0 <= piece_idx < len(self.pieces):
            raise InvalidPlacementError(f"No piece at tray index {piece_idx}")
        if rotation % 4 and not self.config.free_rotation:
            raise InvalidPlacementError("Free rotation is disabled; use the ROTATE ability")
        return self.pieces[piece_idx].rotated(rotation)

    def can_place_piece(self, piece_idx: int, x: int, y: int, rotation: int = 0) -> bool:
        try:
            piece = self._tray_piece(piece_idx, rotation)
        except InvalidPlacementError:
            return False
        return can_place(self.board, piece, x, y)

    def place_piece(self, piece_idx: int, x: int, y: int, rotation: int = 0) -> PlacementOutcome:
        self._require_active()
        piece = self._tray_piece(piece_idx, rotation)
        if not can_place(self.board, piece, x, y):
            raise InvalidPlacementError(f"{piece!r} does not fit at ({x}, {y})")
        return self._commit_placement(piece, x, y, consume_move=True)

    def _commit_placement(self, piece: Piece, x: int, y: int, consume_move: bool) -> PlacementOutcome:
        """Place an already validated tray piece and run the resolve / score cycle."""
        self._push_history()

        placed = place(self.board, piece, x, y, ice_health=self.passives.ice_health())
        result = resolve(placed)
        blocks = piece.cell_count
        lines = result.total_lines_cleared

        combo = self.rules.combo_level(self.combo, lines)
        points = self.rules.score_delta(
            blocks, lines, combo, result.color_bonus, self.surge_active, self.passives.score_multiplier()
        )
        gain = self.rules.flux_gain(blocks, lines, self.passives.flux_multiplier())
        update = apply_flux(self.flux, self.surge_active, gain, lines, cap=self.config.max_flux)
        if update.surge_consumed:
            logger.info("surge consumed: %d points", points)
        if update.surge_triggered:
            logger.info("surge armed")

        self.board = result.board
        self.score += points
        self.combo = combo
        self.flux = update.flux
        self.surge_active = update.surge_active
        self.high_score = max(self.high_score, self.score)
        self.step_count += 1
        self.stats.blocks_placed += blocks

        self.pieces = [p for p in self.pieces if p.instance_id != piece.instance_id]
        if not self.pieces:
            self.pieces = self._new_tray()
        if self.freeze_moves_remaining > 0:
            self.freeze_moves_remaining -= 1
        if consume_move and self.moves_left is not None:
            self.moves_left -= 1

        level_done, unlocked = self._track_progress(result, points, combo)
        if self.moves_left is not None and self.moves_left <= 0 and not self.level_complete:
            self._end_game("out of moves")
        self.check_game_over()

        logger.debug(
            "placement %d: %r at (%d, %d) lines=%d waves=%d points=%d flux=%d",
            self.step_count, piece, x, y, lines, result.chain_waves, points, self.flux,
        )
        return PlacementOutcome(
            piece=piece,
            x=x,
            y=y,
            blocks_placed=blocks,
            resolution=result,
            points=points,
            combo=combo,
            flux_gained=gain,
            surge_triggered=update.surge_triggered,
            surge_consumed=update.surge_consumed,
            level_complete=level_done,
            game_over=self.game_over,
            unlocked_achievements=unlocked,
        )

    def _credit_flux(self, amount: int) -> None:
        update = apply_flux(self.flux, self.surge_active, amount, 0, cap=self.config.max_flux)
        self.flux = update.flux
        self.surge_active = update.surge_active

    def _apply_unlocks(self, unlocks: Set[Ability]) -> None:
        for ability in unlocks:
            if isinstance(ability, PassiveAbility):
                self.passives.unlock(ability)

    def _track_progress(self, result: ResolutionResult, points: int, combo: int) -> Tuple[bool, List[str]]:
        """Objectives, stats, career progress and achievements after a resolution.

        Returns whether the level was completed by this resolution and the ids
        of newly unlocked achievements.
        """
        self.stats.record_resolution(result, points, combo)
        self._apply_unlocks(self.progression.add_to_total_score(points))

        level_done = False
        if self.objectives:
            self.objectives = update_objectives(self.objectives, result, self.score)
            if not self.level_complete and is_level_complete(self.objectives):
                self.level_complete = level_done = True
                assert self.level is not None
                stars = star_rating(self.moves_left, self.level.moves_limit)
                # undo does not roll this back, so a replayed completion pays nothing
                if not self.level_rewarded:
                    self.level_rewarded = True
                    self._credit_flux(self.level.reward_flux)
                    self._apply_unlocks(self.progression.complete_level(self.level.index, self.score, stars))
                logger.info("level %d complete with %d stars", self.level.index, stars)

        metrics = {
            AchievementMetric.SCORE: self.score,
            AchievementMetric.COMBO: combo,
            AchievementMetric.CHAIN: result.chain_waves,
            AchievementMetric.LINES: self.stats.lines_cleared,
            AchievementMetric.BOMBS: self.stats.bombs_exploded,
            AchievementMetric.ICE: self.stats.ice_broken,
        }
        self.achievements, unlocked = update_achievements(self.achievements, metrics)
        for ach in unlocked:
            self._credit_flux(ach.flux_reward)
        if unlocked:
            count = sum(1 for a in self.achievements if a.unlocked)
            self._apply_unlocks(self.progression.set_achievement_count(count))
        return level_done, [a.id for a in unlocked]

    def _end_game(self, reason: str) -> None:
        if not self.game_over:
            self.game_over = True
            logger.info("game over (%s) with score %d", reason, self.score)

    def check_game_over(self) -> bool:
        if not self.game_over and not any_piece_fits(self.board, self.pieces, rotations=self.config.free_rotation):
            self._end_game("no piece fits")
        return self.game_over

    def get_valid_actions(self) -> List[Tuple[int, int, int, int]]:
        """List of (piece_idx, x, y, rotation) valid actions"""
        rotations = range(4) if self.config.free_rotation else range(1)
        actions: List[Tuple[int, int, int, int]] = []
        for piece_idx, piece in enumerate(self.pieces):
            for rotation in rotations:
                candidate = piece.rotated(rotation)
                h, w = candidate.shape.shape
                for y in range(self.board.size - h + 1):
                    for x in range(self.board.size - w + 1):
                        if can_place(self.board, candidate, x, y):
                            actions.append((piece_idx, x, y, rotation))
        return actions

    # ---------- Abilities ----------
    @property
    def unlocked_abilities(self) -> Set[ActiveAbility]:
        return set(DEFAULT_ACTIVE_UNLOCKS) | {a for a in self.progression.unlocked if isinstance(a, ActiveAbility)}

    def can_afford(self, ability: ActiveAbility) -> bool:
        return ability in self.unlocked_abilities and self.flux >= ABILITY_COSTS[ability]

    def _require_unlocked(self, ability: ActiveAbility) -> None:
        if ability not in self.unlocked_abilities:
            raise AbilityLockedError(f"{ability.value} is locked")

    def _check_ability(self, ability: ActiveAbility) -> None:
        self._require_unlocked(ability)
        cost = ABILITY_COSTS[ability]
        if self.flux < cost:
            raise InsufficientFluxError(f"{ability.value} costs {cost} flux, {self.flux} available")

    def _charge(self, ability: ActiveAbility) -> None:
        self.flux -= ABILITY_COSTS[ability]
        self.stats.record_skill(ability.value)
        logger.debug("used %s, flux left %d", ability.value, self.flux)

    def _settle_skill(self, ability: ActiveAbility, destroyed: int, board: Board) -> SkillOutcome:
        result = resolve(board)
        lines = result.total_lines_cleared
        combo = self.combo + 1 if lines > 0 else self.combo
        points = self.rules.skill_score(destroyed, lines, combo)
        self.board = result.board
        self.score += points
        self.combo = combo
        self.high_score = max(self.high_score, self.score)
        self._charge(ability)
        self._track_progress(result, points, combo)
        self.check_game_over()
        return SkillOutcome(ability, destroyed, result, points, combo)

    def reroll(self) -> List[Piece]:
        self._require_active()
        self._check_ability(ActiveAbility.REROLL)
        self.pieces = self._new_tray()
        self._charge(ActiveAbility.REROLL)
        self.check_game_over()
        return list(self.pieces)

    def shatter(self, x: int, y: int) -> Optional[SkillOutcome]:
        self._require_active()
        self._check_ability(ActiveAbility.SHATTER)
        if not self.board.is_filled(x, y):
            return None
        board = self.board.copy()
        board.clear_cell(x, y)
        board.apply_gravity(columns=[x])
        return self._settle_skill(ActiveAbility.SHATTER, 1, board)

    def bomb(self, x: int, y: int) -> Optional[SkillOutcome]:
        self._require_active()
        self._check_ability(ActiveAbility.BOMB)
        self.board.require_inside(x, y)
        board = self.board.copy()
        area = np.zeros((board.size, board.size), dtype=bool)
        columns = range(max(0, x - 1), min(board.size, x + 2))
        area[max(0, y - 1):y + 2, columns.start:columns.stop] = True
        destroyed = board.clear_cells(area)
        if destroyed == 0:
            return None
        board.apply_gravity(columns=columns)
        return self._settle_skill(ActiveAbility.BOMB, destroyed, board)

    def rotate_piece(self, piece_idx: int) -> Piece:
        self._require_active()
        self._check_ability(ActiveAbility.ROTATE)
        if not 0 <= piece_idx < len(self.pieces):
            raise InvalidPlacementError(f"No piece at tray index {piece_idx}")
        self.pieces[piece_idx] = self.pieces[piece_idx].rotated(1)
        self._charge(ActiveAbility.ROTATE)
        return self.pieces[piece_idx]

    def swap_pieces(self, first: int, second: int) -> None:
        self._require_active()
        self._check_ability(ActiveAbility.SWAP)
        for idx in (first, second):
            if not 0 <= idx < len(self.pieces):
                raise InvalidPlacementError(f"No piece at tray index {idx}")
        self.pieces[first], self.pieces[second] = self.pieces[second], self.pieces[first]
        self._charge(ActiveAbility.SWAP)

    def freeze(self) -> None:
        self._require_active()
        self._check_ability(ActiveAbility.FREEZE)
        self.freeze_moves_remaining = self.config.freeze_moves
        self._charge(ActiveAbility.FREEZE)

    def magnet(self, piece_idx: int) -> Optional[PlacementOutcome]:
        self._require_active()
        self._check_ability(ActiveAbility.MAGNET)
        piece = self._tray_piece(piece_idx)
        target = find_best_placement(self.board, piece)
        if target is None:
            return None
        self._charge(ActiveAbility.MAGNET)
        return self._commit_placement(piece, target[0], target[1], consume_move=False)

    def undo(self) -> bool:
        """Restore the session as it was before the last placement.

        Allowed after a game over. Flux, stats and achievements are not rolled back.
        """
        self._require_unlocked(ActiveAbility.UNDO)
        if not self.history:
            return False
        self._check_ability(ActiveAbility.UNDO)
        entry = self.history.pop()
        self.board = entry.board
        self.pieces = entry.pieces
        self.score = entry.score
        self.combo = entry.combo
        self.surge_active = entry.surge_active
        self.moves_left = entry.moves_left
        self.objectives = entry.objectives
        self.level_complete = entry.level_complete
        self.game_over = entry.game_over
        self.freeze_moves_remaining = entry.freeze_moves_remaining
        self._charge(ActiveAbility.UNDO)
        return True

    def _push_history(self) -> None:
        self.history.append(
            _HistoryEntry(
                board=self.board.copy(),
                pieces=list(self.pieces),
                score=self.score,
                combo=self.combo,
                surge_active=self.surge_active,
                moves_left=self.moves_left,
                objectives=list(self.objectives),
                level_complete=self.level_complete,
                game_over=self.game_over,
                freeze_moves_remaining=self.freeze_moves_remaining,
            )
        )

    # ---------- State ----------
    def get_state(self) -> Dict[str, Any]:
        return {
            "board": self.board.to_dict(),
            "pieces": [p.to_dict() for p in self.pieces],
            "score": self.score,
            "high_score": self.high_score,
            "flux": self.flux,
            "combo": self.combo,
            "surge_active": self.surge_active,
            "mode": self.mode.value,
            "level_index": self.level.index if self.level is not None else None,
            "moves_left": self.moves_left,
            "objectives": [o.to_dict() for o in self.objectives],
            "level_complete": self.level_complete,
            "level_rewarded": self.level_rewarded,
            "game_over": self.game_over,
            "freeze_moves_remaining": self.freeze_moves_remaining,
            "step_count": self.step_count,
            "filled_ratio": self.board.filled_count() / float(self.board.size * self.board.size),
        }

    def get_game_stats(self) -> Dict[str, Any]:
        return {
            "final_score": self.score,
            "steps_taken": self.step_count,
            "final_fill_ratio": self.board.filled_count() / float(self.board.size * self.board.size),
            "avg_score_per_piece": self.score / max(1, self.step_count),
            **self.stats.to_dict(),
        }

    def snapshot(self) -> Dict[str, Any]:
        """Plain, JSON-compatible state for the host to persist."""
        return {
            "version": SNAPSHOT_VERSION,
            "state": self.get_state(),
            "stats": self.stats.to_dict(),
            "achievements": [a.to_dict() for a in self.achievements],
            "progression": self.progression.to_dict(),
            "passives": self.passives.to_dict(),
        }

    @classmethod
    def restore(
        cls,
        data: Dict[str, Any],
        config: Optional[GameConfig] = None,
        rules: Optional[ScoringRules] = None,
        rng: Optional[random.Random] = None,
    ) -> "FluxGame":
        if data.get("version") != SNAPSHOT_VERSION:
            raise SnapshotError(f"Unsupported snapshot version {data.get('version')!r}")
        try:
            state = data["state"]
            board = Board.from_dict(state["board"])
            if config is None:
                config = GameConfig(grid_size=board.size)
            elif config.grid_size != board.size:
                raise SnapshotError(
                    f"Snapshot board is {board.size}x{board.size} but config.grid_size is {config.grid_size}"
                )
            game = cls(
                config=config,
                rules=rules,
                rng=rng,
                progression=Progression.from_dict(data["progression"]),
                passives=PassiveLoadout.from_dict(data["passives"]),
            )
            game.stats = GameStats.from_dict(data["stats"])
            game.achievements = restore_achievements(data["achievements"])
            level_index = state["level_index"]
            game.mode = GameMode(state["mode"])
            game.level = game.progression.levels[level_index] if level_index is not None else None
            game.board = board
            game.pieces = [Piece.from_dict(p) for p in state["pieces"]]
            game.score = int(state["score"])
            game.high_score = int(state["high_score"])
            game.flux = int(state["flux"])
            game.combo = int(state["combo"])
            game.surge_active = bool(state["surge_active"])
            game.moves_left = state["moves_left"]
            game.objectives = [Objective.from_dict(o) for o in state["objectives"]]
            game.level_complete = bool(state["level_complete"])
            game.level_rewarded = bool(state.get("level_rewarded", game.level_complete))
            game.game_over = bool(state["game_over"])
            game.freeze_moves_remaining = int(state["freeze_moves_remaining"])
            game.step_count = int(state["step_count"])
        except (KeyError, TypeError, ValueError, IndexError) as exc:
            raise SnapshotError(f"Malformed snapshot: {exc}") from exc
        return game
