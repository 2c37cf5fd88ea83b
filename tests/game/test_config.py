"""Unit tests for flux_grid/game/config.py"""

import pytest

from flux_grid.game.config import GameConfig


def test_defaults() -> None:
    config = GameConfig()
    assert (config.grid_size, config.pieces_per_set, config.starting_flux) == (10, 3, 50)
    assert config.free_rotation


def test_from_mapping() -> None:
    config = GameConfig.from_mapping({"grid_size": 8, "random_seed": 3})
    assert config.grid_size == 8
    assert config.random_seed == 3


def test_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError, match="gridsize"):
        GameConfig.from_mapping({"gridsize": 8})


@pytest.mark.parametrize(
    "overrides",
    [{"grid_size": 0}, {"pieces_per_set": 0}, {"starting_flux": 150}, {"starting_flux": -1}],
)
def test_validation(overrides) -> None:
    with pytest.raises(ValueError):
        GameConfig(**overrides)
