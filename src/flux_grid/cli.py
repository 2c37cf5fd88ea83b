"""Command-line demo: plays a seeded Flux Grid session and prints the result."""

from __future__ import annotations

import argparse
import logging
import random
from typing import List, Optional, Sequence, Tuple

from .game.config import GameConfig
from .game.core import FluxGame
from .game.grid import board_to_text
from .game.placement import evaluate_placement

logger = logging.getLogger(__name__)

Action = Tuple[int, int, int, int]


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level,
                        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
                        datefmt="%H:%M:%S")


def choose_action(game: FluxGame, policy: str, rng: random.Random) -> Optional[Action]:
    valid: List[Action] = game.get_valid_actions()
    if not valid:
        return None
    if policy == "random":
        return rng.choice(valid)

    def heuristic(action: Action) -> int:
        piece_idx, x, y, rotation = action
        return evaluate_placement(game.board, game.pieces[piece_idx].rotated(rotation), x, y)

    return max(valid, key=heuristic)


def play(game: FluxGame, policy: str, max_moves: int, rng: random.Random, show_board: bool = False) -> int:
    moves = 0
    while moves < max_moves and not game.game_over:
        action = choose_action(game, policy, rng)
        if action is None:
            break
        outcome = game.place_piece(*action)
        moves += 1
        if outcome.lines_cleared:
            logger.info(
                "move %d: %d lines in %d waves for %d points (combo %d)",
                moves, outcome.lines_cleared, outcome.resolution.chain_waves, outcome.points, outcome.combo,
            )
        if show_board:
            print(board_to_text(game.board))
            print()
        if outcome.level_complete:
            break
    return moves


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="flux-grid", description="Play a seeded Flux Grid demo game")
    p.add_argument("--seed", type=int, default=0)
    p.add_argument("--moves", type=int, default=200, help="Maximum placements to play")
    p.add_argument("--level", type=int, default=None, help="Career level index (endless mode when omitted)")
    p.add_argument("--policy", choices=["greedy", "random"], default="greedy")
    p.add_argument("--grid-size", type=int, default=10)
    p.add_argument("--show-board", action="store_true", help="Print the board after every placement")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging (per-wave resolver detail)")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    game = FluxGame(GameConfig(grid_size=args.grid_size, random_seed=args.seed))
    if args.level is not None:
        game.start_level(args.level)
    moves = play(game, args.policy, args.moves, random.Random(args.seed), args.show_board)

    print("=== Flux Grid Demo ===")
    print(board_to_text(game.board))
    print(f"Moves played: {moves}")
    print(f"Score: {game.score}  Flux: {game.flux}  Surge: {game.surge_active}")
    if game.level is not None:
        status = "complete" if game.level_complete else ("failed" if game.game_over else "in progress")
        print(f"Level {game.level.index} ({game.level.name}): {status}")
    print(f"Game over: {game.game_over}")
    return 0
