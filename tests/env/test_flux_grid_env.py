"""Unit tests for flux_grid/env"""

import gymnasium as gym
import numpy as np
import pytest

import flux_grid.env  # noqa: F401
from flux_grid.env.flux_grid_env import FluxGridEnv
from flux_grid.env.wrappers import DiscretePlacementWrapper
from flux_grid.game.config import GameConfig
from flux_grid.game.grid import Cell, Color


@pytest.fixture
def env() -> FluxGridEnv:
    return FluxGridEnv(GameConfig(random_seed=3))


def _first_valid(info) -> np.ndarray:
    piece_idx, y, x, r = np.argwhere(info["action_mask"])[0]
    return np.array([piece_idx, x, y, r], dtype=np.int64)


def test_spaces(env: FluxGridEnv) -> None:
    assert tuple(env.action_space.nvec) == (3, 10, 10, 4)
    obs, info = env.reset(seed=1)
    assert env.observation_space.contains(obs)
    assert info["action_mask"].shape == (3, 10, 10, 4)
    assert info["action_mask"].any()
    assert obs["flux"][0] == 50


def test_valid_step(env: FluxGridEnv) -> None:
    _, info = env.reset(seed=1)
    obs, reward, terminated, truncated, info = env.step(_first_valid(info))
    assert "invalid" not in info["reward_components"]
    assert info["engine_score_delta"] > 0
    assert reward > 0
    assert not terminated and not truncated
    assert obs["pieces_remaining"] == 2
    assert obs["grid"].sum() > 0


def test_invalid_step_is_penalized(env: FluxGridEnv, make_piece) -> None:
    env.reset(seed=1)
    env.game.pieces = [make_piece("dot"), make_piece("dot"), make_piece("dot")]
    env.game.board.set_cell(0, 0, Cell.block(Color.SOLAR))
    obs, reward, terminated, _, info = env.step(np.array([0, 0, 0, 0]))
    assert info["reward_components"]["invalid"] == pytest.approx(-0.1)
    assert reward == pytest.approx(-0.1)
    assert info["score"] == 0
    assert not terminated


def test_truncation() -> None:
    env = FluxGridEnv(GameConfig(random_seed=3, max_episode_steps=2))
    _, info = env.reset(seed=1)
    _, _, _, truncated, info = env.step(_first_valid(info))
    assert not truncated
    _, _, _, truncated, _ = env.step(_first_valid(info))
    assert truncated


def test_maskable_component_mask(env: FluxGridEnv) -> None:
    env.reset(seed=1)
    mask = env.action_masks()
    assert mask.shape == (3 + 10 + 10 + 4,)
    assert mask[:3].all()


def test_registered_env() -> None:
    env = gym.make("FluxGrid-10x10-v0")
    obs, info = env.reset(seed=0)
    assert "action_mask" in info
    env.close()


def test_flat_action_mask_matches_decode(env: FluxGridEnv) -> None:
    _, info = env.reset(seed=1)
    flat = env.flat_action_mask()
    assert flat.shape == (3 * 10 * 10 * 4,)
    for index in np.flatnonzero(flat)[:20]:
        piece_idx, x, y, r = env.decode_action(int(index))
        assert info["action_mask"][piece_idx, y, x, r]
        assert env.game.can_place_piece(piece_idx, x, y, r)


def test_decode_action_order(env: FluxGridEnv) -> None:
    assert env.decode_action(0) == (0, 0, 0, 0)
    assert env.decode_action(1) == (0, 0, 0, 1)
    assert env.decode_action(4) == (0, 1, 0, 0)
    assert env.decode_action(40) == (0, 0, 1, 0)
    assert env.decode_action(400) == (1, 0, 0, 0)


# -- Discrete placement wrapper --
def test_discrete_wrapper(env: FluxGridEnv) -> None:
    wrapped = DiscretePlacementWrapper(env)
    assert wrapped.action_space.n == 1200
    wrapped.reset(seed=1)
    mask = wrapped.action_masks()
    assert np.array_equal(mask, env.flat_action_mask())

    index = int(np.flatnonzero(mask)[0])
    assert tuple(wrapped.action(index)) == env.decode_action(index)
    _, _, _, _, info = wrapped.step(index)
    assert "invalid" not in info["reward_components"]


def test_discrete_wrapper_over_registered_env() -> None:
    wrapped = DiscretePlacementWrapper(gym.make("FluxGrid-10x10-v0"))
    wrapped.reset(seed=0)
    assert wrapped.action_masks().shape == (wrapped.action_space.n,)
    wrapped.close()


def test_discrete_wrapper_rejects_other_envs() -> None:
    with pytest.raises(TypeError):
        DiscretePlacementWrapper(gym.make("CartPole-v1"))


def test_discrete_wrapper_passes_invalid_actions_through(env: FluxGridEnv, make_piece) -> None:
    wrapped = DiscretePlacementWrapper(env)
    wrapped.reset(seed=1)
    env.game.pieces = [make_piece("dot"), make_piece("dot"), make_piece("dot")]
    env.game.board.set_cell(0, 0, Cell.block(Color.SOLAR))
    _, _, _, _, info = wrapped.step(0)
    assert "invalid" in info["reward_components"]


def test_discrete_wrapper_remaps_invalid_actions(env: FluxGridEnv, make_piece) -> None:
    wrapped = DiscretePlacementWrapper(env, remap_invalid=True, seed=0)
    wrapped.reset(seed=1)
    env.game.pieces = [make_piece("dot"), make_piece("dot"), make_piece("dot")]
    env.game.board.set_cell(0, 0, Cell.block(Color.SOLAR))
    # index 0 is piece 0 at (0, 0): occupied now
    assert not wrapped.action_masks()[0]
    _, _, _, _, info = wrapped.step(0)
    assert "invalid" not in info["reward_components"]
