from __future__ import annotations

import argparse
import os

import gymnasium as gym

# Ensure envs are registered
import flux_grid.env  # noqa: F401
from flux_grid.env.wrappers import DiscretePlacementWrapper

ENV_ID = "FluxGrid-10x10-v0"


def make_env(seed: int | None = None, remap_invalid: bool = False) -> gym.Env:
    env = DiscretePlacementWrapper(gym.make(ENV_ID), remap_invalid=remap_invalid, seed=seed)
    if seed is not None:
        env.reset(seed=seed)
    return env


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Train PPO on the Flux Grid environment (needs the 'rl' extra)")
    p.add_argument("--algo", choices=["ppo", "maskable"], default="maskable")
    p.add_argument("--timesteps", type=int, default=200_000)
    p.add_argument("--logdir", type=str, default="./logs/ppo")
    p.add_argument("--save_path", type=str, default="./models/ppo_fluxgrid.zip")
    p.add_argument("--n_envs", type=int, default=4)
    p.add_argument("--seed", type=int, default=None)
    return p


def main() -> None:
    args = build_parser().parse_args()

    from stable_baselines3.common.vec_env import SubprocVecEnv, VecMonitor

    def env_seed(i: int) -> int | None:
        return None if args.seed is None else args.seed + i

    if args.algo == "maskable":
        # sb3-contrib MaskablePPO
        from sb3_contrib import MaskablePPO
        from sb3_contrib.common.wrappers import ActionMasker

        def mask_fn(env):
            return env.action_masks()

        def make_env_idx(i: int):
            def thunk():
                return ActionMasker(make_env(env_seed(i)), mask_fn)
            return thunk

        vec_env = VecMonitor(SubprocVecEnv([make_env_idx(i) for i in range(args.n_envs)]))
        model = MaskablePPO(
            policy="MultiInputPolicy",
            env=vec_env,
            verbose=1,
            tensorboard_log=args.logdir,
        )
    else:
        # Vanilla PPO: invalid picks are remapped to a valid placement
        from stable_baselines3 import PPO

        def make_env_idx(i: int):
            def thunk():
                return make_env(env_seed(i), remap_invalid=True)
            return thunk

        vec_env = VecMonitor(SubprocVecEnv([make_env_idx(i) for i in range(args.n_envs)]))
        model = PPO(
            policy="MultiInputPolicy",
            env=vec_env,
            verbose=1,
            tensorboard_log=args.logdir,
        )

    os.makedirs(os.path.dirname(args.save_path) or ".", exist_ok=True)
    model.learn(total_timesteps=args.timesteps)
    model.save(args.save_path)


if __name__ == "__main__":  # pragma: no cover
    main()
