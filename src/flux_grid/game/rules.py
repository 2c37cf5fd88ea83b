from __future__ import annotations

import math
from dataclasses import dataclass


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ScoringRules:
    block_points: int = 15
    line_points: int = 150
    combo_points: int = 75
    color_bonus_multiplier: float = 1.5
    surge_multiplier: float = 2.0
    flux_per_block: int = 2
    flux_per_line: int = 10
    flux_cap: int = 100
    # Skills (SHATTER / BOMB) score per destroyed block
    skill_block_points: int = 5

    def combo_level(self, prior_combo: int, lines_cleared: int) -> int:
        """Consecutive clearing placements; any non-clearing placement resets to 0"""
        return prior_combo + 1 if lines_cleared > 0 else 0

    def score_delta(
        self,
        blocks_placed: int,
        lines_cleared: int,
        combo_level: int,
        color_bonus: bool,
        surge_active: bool,
        score_multiplier: float = 1.0,
    ) -> int:
        base = (
            blocks_placed * self.block_points
            + lines_cleared * self.line_points
            + combo_level * self.combo_points
        )
        multiplier = score_multiplier
        if color_bonus and lines_cleared > 0:
            multiplier *= self.color_bonus_multiplier
        if surge_active and lines_cleared > 0:
            multiplier *= self.surge_multiplier
        return round_half_up(base * multiplier)

    def skill_score(self, blocks_destroyed: int, lines_cleared: int, combo: int) -> int:
        return blocks_destroyed * self.skill_block_points + lines_cleared * self.line_points * max(combo, 1)

    def flux_gain(self, blocks_placed: int, lines_cleared: int, flux_multiplier: float = 1.0) -> int:
        raw = blocks_placed * self.flux_per_block + lines_cleared * self.flux_per_line
        return round_half_up(raw * flux_multiplier)


@dataclass(frozen=True)
class FluxUpdate:
    flux: int
    surge_active: bool
    surge_triggered: bool = False
    surge_consumed: bool = False


def apply_flux(flux: int, surge_active: bool, gain: int, lines_cleared: int, cap: int = 100) -> FluxUpdate:
    """Advance the flux meter after a placement.

    An active surge is spent by the next clearing placement, which resets the
    meter to 0. Otherwise flux grows up to `cap`, and crossing into the cap
    from below arms a new surge.
    """
    if surge_active and lines_cleared > 0:
        return FluxUpdate(flux=0, surge_active=False, surge_consumed=True)
    new_flux = min(cap, flux + gain)
    if not surge_active and flux < cap and flux + gain >= cap:
        return FluxUpdate(flux=new_flux, surge_active=True, surge_triggered=True)
    return FluxUpdate(flux=new_flux, surge_active=surge_active)
