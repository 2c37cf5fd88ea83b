from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from flux_grid.game.config import GameConfig
from flux_grid.game.core import FluxGame
from flux_grid.game.exceptions import InvalidPlacementError
from flux_grid.game.grid import Color, SpecialType
from flux_grid.game.pieces import SHAPE_INDEX, SHAPES


def _compute_action_mask(game: FluxGame) -> np.ndarray:
    size = game.board.size
    k = game.config.pieces_per_set
    mask = np.zeros((k, size, size, 4), dtype=np.bool_)
    if game.game_over:
        return mask
    valid = game.get_valid_actions()  # list of (piece_idx, x, y, rotation)
    for piece_idx, x, y, r in valid:
        if 0 <= piece_idx < k and 0 <= x < size and 0 <= y < size and 0 <= r < 4:
            mask[piece_idx, y, x, r] = True
    return mask


class FluxGridEnv(gym.Env):
    """Headless endless-mode session exposed as a Gymnasium environment.

    Actions are (piece_idx, x, y, rotation). Invalid actions leave the game
    untouched and are penalized; the valid set is published as
    `info["action_mask"]` shaped (pieces, y, x, rotation).
    """

    metadata = {"render_modes": []}

    def __init__(self, config: Optional[GameConfig] = None,
                 reward_weights: Optional[Dict[str, float]] = None,
                 invalid_action_penalty: float = -0.1,
                 step_penalty: float = 0.0,
                 terminal_penalty: float = 0.0) -> None:
        super().__init__()
        self.game = FluxGame(config)

        # Reward shaping parameters
        self.invalid_action_penalty = float(invalid_action_penalty)
        self.step_penalty = float(step_penalty)
        self.terminal_penalty = float(terminal_penalty)
        self.reward_weights: Dict[str, float] = {
            "score": 0.01,     # engine score delta
            "lines": 1.0,      # per line cleared
            "chain": 0.5,      # per wave beyond the first
            "surge": 1.0,      # arming a surge
        }
        if reward_weights:
            self.reward_weights.update({k: float(v) for k, v in reward_weights.items()})

        size = self.game.config.grid_size
        k = self.game.config.pieces_per_set

        self.observation_space = spaces.Dict(
            {
                "grid": spaces.Box(low=0, high=int(max(Color)), shape=(size, size), dtype=np.int8),
                "specials": spaces.Box(low=0, high=int(max(SpecialType)), shape=(size, size), dtype=np.int8),
                "pieces": spaces.Box(low=-1, high=len(SHAPES) - 1, shape=(k,), dtype=np.int8),
                "pieces_remaining": spaces.Discrete(k + 1),
                "flux": spaces.Box(low=0, high=self.game.config.max_flux, shape=(1,), dtype=np.float32),
                "surge": spaces.Discrete(2),
            }
        )

        # Action: (piece_idx, x, y, rotation)
        self.action_space = spaces.MultiDiscrete((k, size, size, 4))

        self._steps = 0

    def _get_obs(self) -> Dict[str, Any]:
        k = self.game.config.pieces_per_set
        pieces = np.full((k,), -1, dtype=np.int8)
        for i, piece in enumerate(self.game.pieces[:k]):
            pieces[i] = SHAPE_INDEX[piece.shape_id]
        return {
            "grid": self.game.board.colors.copy(),
            "specials": self.game.board.kinds.copy(),
            "pieces": pieces,
            "pieces_remaining": len(self.game.pieces),
            "flux": np.array([self.game.flux], dtype=np.float32),
            "surge": int(self.game.surge_active),
        }

    def _get_info(self) -> Dict[str, Any]:
        return {
            "action_mask": _compute_action_mask(self.game),
            "score": self.game.score,
            "flux": self.game.flux,
            "steps": self.game.step_count,
        }

    def action_masks(self) -> np.ndarray:
        """Flat mask in MultiDiscrete component order, for sb3-contrib MaskablePPO"""
        size = self.game.board.size
        k = self.game.config.pieces_per_set
        piece_ok = np.zeros(k, dtype=np.bool_)
        x_ok = np.zeros(size, dtype=np.bool_)
        y_ok = np.zeros(size, dtype=np.bool_)
        rot_ok = np.zeros(4, dtype=np.bool_)
        if not self.game.game_over:
            for piece_idx, x, y, r in self.game.get_valid_actions():
                piece_ok[piece_idx] = x_ok[x] = y_ok[y] = rot_ok[r] = True
        return np.concatenate([piece_ok, x_ok, y_ok, rot_ok])

    def flat_action_mask(self) -> np.ndarray:
        """`info["action_mask"]` raveled; index i is valid iff decode_action(i) is."""
        return _compute_action_mask(self.game).reshape(-1)

    def decode_action(self, index: int) -> Tuple[int, int, int, int]:
        """Flat index over (pieces, y, x, rotation) -> (piece_idx, x, y, rotation)."""
        shape = (self.game.config.pieces_per_set, self.game.board.size, self.game.board.size, 4)
        piece_idx, y, x, r = np.unravel_index(int(index), shape)
        return int(piece_idx), int(x), int(y), int(r)

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        super().reset(seed=seed)
        self.game.reset(seed)
        self._steps = 0
        return self._get_obs(), self._get_info()

    def step(self, action: np.ndarray | Tuple[int, int, int, int]):
        piece_idx, x, y, r = map(int, action)

        truncated = False
        reward_components: Dict[str, float] = {}
        points = 0
        try:
            outcome = self.game.place_piece(piece_idx, x, y, r)
        except InvalidPlacementError:
            reward_components["invalid"] = self.invalid_action_penalty
        else:
            points = outcome.points
            result = outcome.resolution
            reward_components["score"] = self.reward_weights["score"] * float(points)
            reward_components["lines"] = self.reward_weights["lines"] * float(result.total_lines_cleared)
            reward_components["chain"] = self.reward_weights["chain"] * float(max(0, result.chain_waves - 1))
            if outcome.surge_triggered:
                reward_components["surge"] = self.reward_weights["surge"]

        # Step and terminal shaping
        reward_components["step"] = self.step_penalty
        terminated = bool(self.game.game_over)
        self._steps += 1
        if self._steps >= self.game.config.max_episode_steps:
            truncated = True
        if terminated:
            reward_components["terminal"] = self.terminal_penalty

        reward = float(sum(reward_components.values()))

        obs = self._get_obs()
        info = self._get_info()
        info["reward_components"] = reward_components
        info["engine_score_delta"] = float(points)
        return obs, reward, terminated, truncated, info
