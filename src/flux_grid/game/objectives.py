from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .resolver import ResolutionResult

logger = logging.getLogger(__name__)


class ObjectiveType(str, Enum):
    SCORE = "SCORE"
    CLEAR_LINES = "CLEAR_LINES"
    CHAIN_REACTION = "CHAIN_REACTION"
    BREAK_ICE = "BREAK_ICE"
    USE_BOMB = "USE_BOMB"


@dataclass(frozen=True)
class Objective:
    type: ObjectiveType
    target: int
    current: int = 0

    @property
    def completed(self) -> bool:
        return self.current >= self.target

    def with_progress(self, value: int) -> "Objective":
        return replace(self, current=max(0, min(self.target, value)))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "target": self.target, "current": self.current}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Objective":
        return cls(ObjectiveType(data["type"]), int(data["target"]), int(data.get("current", 0)))


@dataclass(frozen=True)
class LevelDef:
    index: int
    name: str
    objectives: Tuple[Objective, ...]
    moves_limit: Optional[int] = None
    reward_flux: int = 0

    def fresh_objectives(self) -> List[Objective]:
        return [replace(o, current=0) for o in self.objectives]


LEVELS: Tuple[LevelDef, ...] = (
    LevelDef(0, "Boot Sequence", (Objective(ObjectiveType.SCORE, 1000),), moves_limit=20, reward_flux=20),
    LevelDef(1, "Line Feed", (Objective(ObjectiveType.CLEAR_LINES, 5),), moves_limit=25, reward_flux=20),
    LevelDef(
        2,
        "Cold Start",
        (Objective(ObjectiveType.BREAK_ICE, 3), Objective(ObjectiveType.CLEAR_LINES, 6)),
        moves_limit=30,
        reward_flux=25,
    ),
    LevelDef(3, "Chain Link", (Objective(ObjectiveType.CHAIN_REACTION, 8),), moves_limit=30, reward_flux=25),
    LevelDef(
        4,
        "Demolition",
        (Objective(ObjectiveType.USE_BOMB, 2), Objective(ObjectiveType.SCORE, 4000)),
        moves_limit=35,
        reward_flux=30,
    ),
    LevelDef(
        5,
        "Overclock",
        (Objective(ObjectiveType.SCORE, 10000), Objective(ObjectiveType.CLEAR_LINES, 20)),
        moves_limit=40,
        reward_flux=40,
    ),
)


def update_objectives(objectives: Sequence[Objective], result: ResolutionResult, score: int) -> List[Objective]:
    """Advance level objectives with the outcome of one resolution.

    SCORE tracks the session score; the other types accumulate the matching
    resolver counter. Progress is clamped at each objective's target.
    """
    updated: List[Objective] = []
    for obj in objectives:
        if obj.type == ObjectiveType.SCORE:
            value = score
        elif obj.type == ObjectiveType.CLEAR_LINES:
            value = obj.current + result.total_lines_cleared
        elif obj.type == ObjectiveType.CHAIN_REACTION:
            value = obj.current + result.chain_waves
        elif obj.type == ObjectiveType.BREAK_ICE:
            value = obj.current + result.ice_cells_broken
        elif obj.type == ObjectiveType.USE_BOMB:
            value = obj.current + result.bombs_exploded
        else:
            raise AssertionError(f"Unhandled objective type {obj.type!r}")
        updated.append(obj.with_progress(value))
    return updated


def is_level_complete(objectives: Sequence[Objective]) -> bool:
    return bool(objectives) and all(o.completed for o in objectives)


class AchievementMetric(str, Enum):
    SCORE = "SCORE"  # best session score
    COMBO = "COMBO"  # best combo level
    CHAIN = "CHAIN"  # most chain waves in one resolution
    LINES = "LINES"  # career lines cleared
    BOMBS = "BOMBS"  # career bombs exploded
    ICE = "ICE"  # career ice broken


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    metric: AchievementMetric
    target: int
    current: int = 0
    unlocked: bool = False
    flux_reward: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "current": self.current, "unlocked": self.unlocked}


ACHIEVEMENTS: Tuple[Achievement, ...] = (
    Achievement("score_10k", "Ten Grand", "Reach 10,000 points in one game", AchievementMetric.SCORE, 10000,
                flux_reward=25),
    Achievement("combo_5", "On a Roll", "Clear lines on 5 placements in a row", AchievementMetric.COMBO, 5,
                flux_reward=20),
    Achievement("chain_3", "Chain Reactor", "Trigger 3 chain waves with one move", AchievementMetric.CHAIN, 3,
                flux_reward=30),
    Achievement("lines_100", "Line Cutter", "Clear 100 lines", AchievementMetric.LINES, 100, flux_reward=15),
    Achievement("bomb_squad", "Bomb Squad", "Explode 25 bombs", AchievementMetric.BOMBS, 25, flux_reward=15),
    Achievement("ice_breaker", "Thaw", "Break 50 ice blocks", AchievementMetric.ICE, 50, flux_reward=15),
)


def update_achievements(
    achievements: Sequence[Achievement], metrics: Mapping[AchievementMetric, int]
) -> Tuple[List[Achievement], List[Achievement]]:
    """Max-merge metric values into achievements; returns (updated, newly unlocked)."""
    updated: List[Achievement] = []
    unlocked_now: List[Achievement] = []
    for ach in achievements:
        if ach.unlocked or ach.metric not in metrics:
            updated.append(ach)
            continue
        value = min(ach.target, max(ach.current, int(metrics[ach.metric])))
        new_ach = replace(ach, current=value, unlocked=value >= ach.target)
        if new_ach.unlocked:
            unlocked_now.append(new_ach)
            logger.info("achievement unlocked: %s", new_ach.id)
        updated.append(new_ach)
    return updated, unlocked_now


def restore_achievements(saved: Sequence[Mapping[str, Any]]) -> List[Achievement]:
    """Overlay saved progress ({id, current, unlocked}) onto the catalog"""
    by_id = {str(item["id"]): item for item in saved}
    restored = []
    for ach in ACHIEVEMENTS:
        item = by_id.get(ach.id)
        if item is None:
            restored.append(ach)
        else:
            restored.append(replace(ach, current=int(item["current"]), unlocked=bool(item["unlocked"])))
    return restored


@dataclass
class GameStats:
    blocks_placed: int = 0
    lines_cleared: int = 0
    total_score: int = 0
    bombs_exploded: int = 0
    ice_broken: int = 0
    games_played: int = 0
    highest_combo: int = 0
    skill_uses: Dict[str, int] = field(default_factory=dict)

    def record_resolution(self, result: ResolutionResult, points: int, combo: int) -> None:
        self.lines_cleared += result.total_lines_cleared
        self.bombs_exploded += result.bombs_exploded
        self.ice_broken += result.ice_cells_broken
        self.total_score += points
        self.highest_combo = max(self.highest_combo, combo)

    def record_skill(self, name: str) -> None:
        self.skill_uses[name] = self.skill_uses.get(name, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameStats":
        return cls(**{k: (dict(v) if k == "skill_uses" else int(v)) for k, v in data.items()})
