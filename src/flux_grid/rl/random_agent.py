from __future__ import annotations

import random
from typing import Optional

import gymnasium as gym
import numpy as np

# Ensure envs are registered
import flux_grid.env  # noqa: F401


def run_random(steps: int = 200, seed: Optional[int] = None) -> float:
    env = gym.make("FluxGrid-10x10-v0")
    rng = random.Random(seed)
    obs, info = env.reset(seed=seed)
    total_reward = 0.0
    for _ in range(steps):
        # Prefer valid actions if available
        valid = np.argwhere(info["action_mask"])  # rows of (piece_idx, y, x, rotation)
        if len(valid):
            piece_idx, y, x, r = valid[rng.randrange(len(valid))]
            action = np.array([piece_idx, x, y, r], dtype=np.int64)
        else:
            action = env.action_space.sample()
        obs, reward, terminated, truncated, info = env.step(action)
        total_reward += float(reward)
        if terminated or truncated:
            obs, info = env.reset()
    env.close()
    print(f"Random agent total reward: {total_reward:.2f}")
    return total_reward


if __name__ == "__main__":  # pragma: no cover
    run_random()
