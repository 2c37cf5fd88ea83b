"""Unit tests for flux_grid/cli.py"""

import random

from flux_grid.cli import build_parser, choose_action, main
from flux_grid.game.config import GameConfig
from flux_grid.game.core import FluxGame


def test_parser_defaults() -> None:
    args = build_parser().parse_args([])
    assert args.policy == "greedy"
    assert args.level is None
    assert not args.verbose


def test_greedy_choice_is_valid() -> None:
    game = FluxGame(GameConfig(random_seed=2))
    action = choose_action(game, "greedy", random.Random(0))
    assert action is not None
    assert game.can_place_piece(*action)


def test_demo_runs(capsys) -> None:
    assert main(["--seed", "4", "--moves", "10"]) == 0
    out = capsys.readouterr().out
    assert "Flux Grid Demo" in out
    assert "Moves played:" in out


def test_demo_career_level(capsys) -> None:
    assert main(["--seed", "4", "--moves", "3", "--level", "0", "--policy", "random"]) == 0
    assert "Level 0 (Boot Sequence)" in capsys.readouterr().out
