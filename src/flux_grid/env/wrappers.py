from __future__ import annotations

from typing import Optional

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from .flux_grid_env import FluxGridEnv


class DiscretePlacementWrapper(gym.ActionWrapper):
    """Single Discrete action per placement, for PPO-style agents.

    Index i addresses cell i of the raveled (pieces, y, x, rotation) mask, so
    `action_masks()` lines up with the action space for sb3-contrib.

    With `remap_invalid=True` an index the engine would reject is swapped for a
    valid placement drawn with the wrapper's own seeded generator.
    """

    def __init__(self, env: gym.Env, remap_invalid: bool = False, seed: Optional[int] = None):
        super().__init__(env)
        if not isinstance(env.unwrapped, FluxGridEnv):
            raise TypeError(f"DiscretePlacementWrapper needs a FluxGridEnv, got {type(env.unwrapped).__name__}")
        self.remap_invalid = remap_invalid
        self._rng = np.random.default_rng(seed)
        self.action_space = spaces.Discrete(int(np.prod(env.action_space.nvec)))

    @property
    def flux_env(self) -> FluxGridEnv:
        return self.env.unwrapped  # type: ignore[return-value]

    def action(self, action: int) -> np.ndarray:  # type: ignore[override]
        index = int(action)
        if self.remap_invalid:
            mask = self.action_masks()
            if not mask[index]:
                valid = np.flatnonzero(mask)
                # game over: nothing to remap to, let the env penalize
                if valid.size:
                    index = int(self._rng.choice(valid))
        return np.array(self.flux_env.decode_action(index), dtype=np.int64)

    def action_masks(self) -> np.ndarray:
        return self.flux_env.flat_action_mask()
