"""Gymnasium environments for Flux Grid."""

from __future__ import annotations

from gymnasium.envs.registration import register

# Register default Flux Grid environment
register(
    id="FluxGrid-10x10-v0",
    entry_point="flux_grid.env.flux_grid_env:FluxGridEnv",
)

__all__ = ["FluxGrid-10x10-v0"]
