from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from .grid import ICE_HEALTH


class ActiveAbility(str, Enum):
    REROLL = "REROLL"  # new tray
    SHATTER = "SHATTER"  # destroy a single block
    BOMB = "BOMB"  # destroy a 3x3 area
    ROTATE = "ROTATE"  # rotate a tray piece 90° clockwise
    SWAP = "SWAP"  # exchange two tray pieces
    FREEZE = "FREEZE"  # no ice spawns for a few placements
    MAGNET = "MAGNET"  # auto-place at the best spot
    UNDO = "UNDO"  # revert the last placement


ABILITY_COSTS: Dict[ActiveAbility, int] = {
    ActiveAbility.REROLL: 20,
    ActiveAbility.SHATTER: 40,
    ActiveAbility.BOMB: 75,
    ActiveAbility.ROTATE: 10,
    ActiveAbility.SWAP: 10,
    ActiveAbility.FREEZE: 30,
    ActiveAbility.MAGNET: 50,
    ActiveAbility.UNDO: 35,
}

DEFAULT_ACTIVE_UNLOCKS: FrozenSet[ActiveAbility] = frozenset(
    {ActiveAbility.REROLL, ActiveAbility.SHATTER, ActiveAbility.BOMB}
)


class PassiveAbility(str, Enum):
    FLUX_BOOST = "FLUX_BOOST"
    SCORE_MULTIPLIER = "SCORE_MULTIPLIER"
    LUCKY_PIECES = "LUCKY_PIECES"
    ICE_BREAKER = "ICE_BREAKER"


@dataclass(frozen=True)
class PassiveEffect:
    multiplier: float = 1.0
    health_modifier: int = 0


PASSIVE_EFFECTS: Dict[PassiveAbility, PassiveEffect] = {
    PassiveAbility.FLUX_BOOST: PassiveEffect(multiplier=1.25),
    PassiveAbility.SCORE_MULTIPLIER: PassiveEffect(multiplier=1.5),
    PassiveAbility.LUCKY_PIECES: PassiveEffect(),
    PassiveAbility.ICE_BREAKER: PassiveEffect(health_modifier=-1),
}


class PassiveLoadout:
    """Unlocked passives and the (at most three) equipped slots."""

    MAX_EQUIPPED = 3

    def __init__(self, unlocked: Iterable[PassiveAbility] = ()) -> None:
        self.unlocked = set(unlocked)
        self.slots: List[Optional[PassiveAbility]] = [None] * self.MAX_EQUIPPED

    def unlock(self, passive: PassiveAbility) -> None:
        self.unlocked.add(passive)

    def is_equipped(self, passive: PassiveAbility) -> bool:
        return passive in self.slots

    def equip(self, passive: PassiveAbility) -> bool:
        if passive not in self.unlocked or self.is_equipped(passive):
            return False
        try:
            slot = self.slots.index(None)
        except ValueError:
            return False
        self.slots[slot] = passive
        return True

    def unequip(self, passive: PassiveAbility) -> None:
        if passive in self.slots:
            self.slots[self.slots.index(passive)] = None

    def equipped(self) -> List[PassiveAbility]:
        return [p for p in self.slots if p is not None]

    def _multiplier(self, passive: PassiveAbility) -> float:
        return PASSIVE_EFFECTS[passive].multiplier if self.is_equipped(passive) else 1.0

    def flux_multiplier(self) -> float:
        return self._multiplier(PassiveAbility.FLUX_BOOST)

    def score_multiplier(self) -> float:
        return self._multiplier(PassiveAbility.SCORE_MULTIPLIER)

    def lucky_pieces(self) -> bool:
        return self.is_equipped(PassiveAbility.LUCKY_PIECES)

    def ice_health(self) -> int:
        modifier = sum(PASSIVE_EFFECTS[p].health_modifier for p in self.equipped())
        return max(1, ICE_HEALTH + modifier)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unlocked": sorted(p.value for p in self.unlocked),
            "slots": [p.value if p is not None else None for p in self.slots],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PassiveLoadout":
        loadout = cls(PassiveAbility(p) for p in data.get("unlocked", []))
        for name in data.get("slots", []):
            if name is not None:
                loadout.equip(PassiveAbility(name))
        return loadout
