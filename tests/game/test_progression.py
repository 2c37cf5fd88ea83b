"""Unit tests for flux_grid/game/progression.py"""

import pytest

from flux_grid.game.abilities import ActiveAbility, PassiveAbility
from flux_grid.game.progression import Progression, star_rating


@pytest.mark.parametrize(
    "moves_left, moves_limit, stars",
    [(10, 20, 3), (6, 20, 2), (5, 20, 2), (4, 20, 1), (0, 20, 1), (None, None, 3)],
)
def test_star_rating(moves_left, moves_limit, stars: int) -> None:
    assert star_rating(moves_left, moves_limit) == stars


def test_first_level_unlocked_only() -> None:
    progression = Progression()
    assert progression.is_level_unlocked(0)
    assert not progression.is_level_unlocked(1)


def test_complete_level_unlocks_next_and_abilities() -> None:
    progression = Progression()
    unlocked = progression.complete_level(0, score=1200, stars=2)

    assert unlocked == {ActiveAbility.ROTATE, PassiveAbility.FLUX_BOOST}
    assert progression.is_level_unlocked(1)
    progress = progression.level_progress[0]
    assert progress.completed and progress.stars == 2 and progress.best_score == 1200


def test_replay_keeps_best_result() -> None:
    progression = Progression()
    progression.complete_level(0, score=1200, stars=3)
    assert progression.complete_level(0, score=900, stars=1) == set()
    assert progression.level_progress[0].stars == 3
    assert progression.level_progress[0].best_score == 1200


def test_unknown_level() -> None:
    with pytest.raises(KeyError):
        Progression().complete_level(99, score=0, stars=1)


def test_total_score_unlocks() -> None:
    progression = Progression()
    assert progression.add_to_total_score(20000) == set()
    assert progression.add_to_total_score(5000) == {PassiveAbility.SCORE_MULTIPLIER}
    assert progression.add_to_total_score(25000) == {ActiveAbility.MAGNET}


def test_achievement_count_unlocks() -> None:
    progression = Progression()
    assert progression.set_achievement_count(2) == {PassiveAbility.ICE_BREAKER, ActiveAbility.UNDO}


def test_dict_round_trip() -> None:
    progression = Progression()
    progression.complete_level(0, score=1500, stars=3)
    progression.add_to_total_score(1500)
    restored = Progression.from_dict(progression.to_dict())
    assert restored.unlocked == progression.unlocked
    assert restored.max_level_reached == 1
    assert restored.total_score == 1500
    assert restored.level_progress[0].stars == 3
