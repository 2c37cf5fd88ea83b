from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Set, Tuple, Union

from .abilities import ActiveAbility, PassiveAbility
from .objectives import LEVELS, LevelDef

logger = logging.getLogger(__name__)

Ability = Union[ActiveAbility, PassiveAbility]


class UnlockConditionType(str, Enum):
    LEVEL = "LEVEL"
    ACHIEVEMENT_COUNT = "ACHIEVEMENT_COUNT"
    TOTAL_SCORE = "TOTAL_SCORE"


@dataclass(frozen=True)
class UnlockCondition:
    type: UnlockConditionType
    value: int


@dataclass(frozen=True)
class AbilityUnlock:
    ability: Ability
    condition: UnlockCondition


ABILITY_UNLOCKS: Tuple[AbilityUnlock, ...] = (
    AbilityUnlock(ActiveAbility.ROTATE, UnlockCondition(UnlockConditionType.LEVEL, 1)),
    AbilityUnlock(PassiveAbility.FLUX_BOOST, UnlockCondition(UnlockConditionType.LEVEL, 1)),
    AbilityUnlock(ActiveAbility.SWAP, UnlockCondition(UnlockConditionType.LEVEL, 2)),
    AbilityUnlock(ActiveAbility.FREEZE, UnlockCondition(UnlockConditionType.LEVEL, 3)),
    AbilityUnlock(PassiveAbility.LUCKY_PIECES, UnlockCondition(UnlockConditionType.LEVEL, 4)),
    AbilityUnlock(PassiveAbility.ICE_BREAKER, UnlockCondition(UnlockConditionType.ACHIEVEMENT_COUNT, 1)),
    AbilityUnlock(ActiveAbility.UNDO, UnlockCondition(UnlockConditionType.ACHIEVEMENT_COUNT, 2)),
    AbilityUnlock(PassiveAbility.SCORE_MULTIPLIER, UnlockCondition(UnlockConditionType.TOTAL_SCORE, 25000)),
    AbilityUnlock(ActiveAbility.MAGNET, UnlockCondition(UnlockConditionType.TOTAL_SCORE, 50000)),
)


def star_rating(moves_left: Optional[int], moves_limit: Optional[int]) -> int:
    if not moves_limit or moves_left is None:
        return 3
    ratio = moves_left / moves_limit
    if ratio >= 0.5:
        return 3
    if ratio >= 0.25:
        return 2
    return 1


@dataclass
class LevelProgress:
    level_index: int
    completed: bool = False
    stars: int = 0
    best_score: int = 0


def _ability_from_name(name: str) -> Ability:
    try:
        return ActiveAbility(name)
    except ValueError:
        return PassiveAbility(name)


class Progression:
    """Career state across levels: progress, total score and ability unlocks."""

    def __init__(self, levels: Sequence[LevelDef] = LEVELS, unlocks: Sequence[AbilityUnlock] = ABILITY_UNLOCKS) -> None:
        self.levels = tuple(levels)
        self.unlock_rules = tuple(unlocks)
        self.max_level_reached = 0
        self.total_score = 0
        self.achievement_count = 0
        self.unlocked: Set[Ability] = set()
        self.level_progress: Dict[int, LevelProgress] = {lvl.index: LevelProgress(lvl.index) for lvl in self.levels}

    def is_level_unlocked(self, level_index: int) -> bool:
        return 0 <= level_index <= self.max_level_reached

    def complete_level(self, level_index: int, score: int, stars: int) -> Set[Ability]:
        progress = self.level_progress.get(level_index)
        if progress is None:
            raise KeyError(f"Unknown level {level_index}")
        progress.completed = True
        progress.stars = max(progress.stars, stars)
        progress.best_score = max(progress.best_score, score)
        self.max_level_reached = max(self.max_level_reached, level_index + 1)
        return self.check_unlocks()

    def add_to_total_score(self, points: int) -> Set[Ability]:
        self.total_score += points
        return self.check_unlocks()

    def set_achievement_count(self, count: int) -> Set[Ability]:
        self.achievement_count = count
        return self.check_unlocks()

    def _condition_met(self, condition: UnlockCondition) -> bool:
        if condition.type == UnlockConditionType.LEVEL:
            return self.max_level_reached >= condition.value
        if condition.type == UnlockConditionType.ACHIEVEMENT_COUNT:
            return self.achievement_count >= condition.value
        if condition.type == UnlockConditionType.TOTAL_SCORE:
            return self.total_score >= condition.value
        raise AssertionError(f"Unhandled unlock condition {condition.type!r}")

    def check_unlocks(self) -> Set[Ability]:
        new_unlocks = {
            rule.ability
            for rule in self.unlock_rules
            if rule.ability not in self.unlocked and self._condition_met(rule.condition)
        }
        if new_unlocks:
            self.unlocked |= new_unlocks
            logger.info("abilities unlocked: %s", sorted(a.value for a in new_unlocks))
        return new_unlocks

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_level_reached": self.max_level_reached,
            "total_score": self.total_score,
            "achievement_count": self.achievement_count,
            "unlocked": sorted(a.value for a in self.unlocked),
            "level_progress": [asdict(p) for p in self.level_progress.values()],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Progression":
        progression = cls()
        progression.max_level_reached = int(data.get("max_level_reached", 0))
        progression.total_score = int(data.get("total_score", 0))
        progression.achievement_count = int(data.get("achievement_count", 0))
        progression.unlocked = {_ability_from_name(name) for name in data.get("unlocked", [])}
        for item in data.get("level_progress", []):
            progress = LevelProgress(**item)
            progression.level_progress[progress.level_index] = progress
        return progression
