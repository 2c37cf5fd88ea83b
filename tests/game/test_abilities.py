"""Unit tests for flux_grid/game/abilities.py"""

from flux_grid.game.abilities import (
    ABILITY_COSTS,
    DEFAULT_ACTIVE_UNLOCKS,
    ActiveAbility,
    PassiveAbility,
    PassiveLoadout,
)


def test_costs_cover_every_ability() -> None:
    assert set(ABILITY_COSTS) == set(ActiveAbility)
    assert ABILITY_COSTS[ActiveAbility.REROLL] == 20
    assert ABILITY_COSTS[ActiveAbility.SHATTER] == 40
    assert ABILITY_COSTS[ActiveAbility.BOMB] == 75
    assert DEFAULT_ACTIVE_UNLOCKS == {ActiveAbility.REROLL, ActiveAbility.SHATTER, ActiveAbility.BOMB}


def test_cannot_equip_locked_passive() -> None:
    loadout = PassiveLoadout()
    assert not loadout.equip(PassiveAbility.FLUX_BOOST)
    assert loadout.equipped() == []


def test_equip_rules() -> None:
    loadout = PassiveLoadout(PassiveAbility)
    assert loadout.equip(PassiveAbility.FLUX_BOOST)
    assert not loadout.equip(PassiveAbility.FLUX_BOOST)
    assert loadout.equip(PassiveAbility.SCORE_MULTIPLIER)
    assert loadout.equip(PassiveAbility.LUCKY_PIECES)
    # Three slots only
    assert not loadout.equip(PassiveAbility.ICE_BREAKER)

    loadout.unequip(PassiveAbility.SCORE_MULTIPLIER)
    assert loadout.equip(PassiveAbility.ICE_BREAKER)
    assert loadout.equipped() == [PassiveAbility.FLUX_BOOST, PassiveAbility.ICE_BREAKER, PassiveAbility.LUCKY_PIECES]


def test_passive_effects() -> None:
    loadout = PassiveLoadout(PassiveAbility)
    assert loadout.flux_multiplier() == 1.0
    assert loadout.score_multiplier() == 1.0
    assert not loadout.lucky_pieces()
    assert loadout.ice_health() == 2

    for passive in (PassiveAbility.FLUX_BOOST, PassiveAbility.SCORE_MULTIPLIER, PassiveAbility.ICE_BREAKER):
        loadout.equip(passive)
    assert loadout.flux_multiplier() == 1.25
    assert loadout.score_multiplier() == 1.5
    assert loadout.ice_health() == 1


def test_dict_round_trip() -> None:
    loadout = PassiveLoadout([PassiveAbility.LUCKY_PIECES, PassiveAbility.FLUX_BOOST])
    loadout.equip(PassiveAbility.LUCKY_PIECES)
    restored = PassiveLoadout.from_dict(loadout.to_dict())
    assert restored.unlocked == loadout.unlocked
    assert restored.equipped() == [PassiveAbility.LUCKY_PIECES]
