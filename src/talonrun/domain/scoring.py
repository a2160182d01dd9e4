"""Multi-component run score and coin reward."""
from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Dict, Sequence

from talonrun.config import DEFAULT_RULES, RunRules
from talonrun.domain.boons import calculate_boon_effects, get_active_stacks
from talonrun.domain.defs import BoonDef
from talonrun.domain.run_state import RunState

SCORE_PER_STAGE = 100
SPEED_BONUS_MAX = 600
HP_REMAINING_MULTIPLIER = 2
BOSS_KILL_SCORE_MID = 500
BOSS_KILL_SCORE_FINAL = 1000
ALL_CATS_ALIVE_BONUS = 750
FLAWLESS_STAGE_BONUS = 50
BOON_SCORE_BY_RARITY: Dict[str, int] = {"Common": 10, "Rare": 25, "Legendary": 50}
COINS_PER_STAGE = 15
COINS_PER_BOSS_KILL = 100

_COMPONENT_FIELDS = (
    "stage_score",
    "speed_bonus",
    "hp_remaining_score",
    "boss_kill_score",
    "all_cats_alive_bonus",
    "boon_efficiency_score",
    "flawless_stage_score",
)


@dataclass(frozen=True, slots=True)
class Score:
    """Score breakdown; ``total_score`` is always the sum of the point components."""

    stages_cleared: int
    stage_score: int
    speed_bonus: int
    hp_remaining_score: int
    boss_kill_score: int
    all_cats_alive_bonus: int
    boon_efficiency_score: int
    flawless_stage_score: int
    coins_earned: int
    total_score: int

    def __post_init__(self) -> None:
        assert all(getattr(self, spec.name) >= 0 for spec in fields(self)), "score fields must be non-negative"
        assert self.total_score == sum(self.components().values()), "total_score must equal the sum of components"

    def components(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in _COMPONENT_FIELDS}


def calculate_coins_earned(stages_cleared: int, boss_kills: int, scavenger_multiplier: float) -> int:
    base = stages_cleared * COINS_PER_STAGE + boss_kills * COINS_PER_BOSS_KILL
    return math.floor(base * scavenger_multiplier)


def _boss_stages_defeated(run_state: RunState) -> set[int]:
    return {result.stage_index for result in run_state.stage_results if result.boss_defeated}


def calculate_score(
    run_state: RunState,
    *,
    catalog: Sequence[BoonDef],
    rules: RunRules = DEFAULT_RULES,
) -> Score:
    """Score a finished or aborted run; identical for victory and defeat paths."""
    stages_cleared = len(run_state.stage_results)
    stage_score = stages_cleared * SCORE_PER_STAGE

    speed_bonus = 0
    if run_state.stage_results:
        elapsed_ms = max(0, run_state.stage_results[-1].end_time - run_state.started_at)
        speed_bonus = max(0, SPEED_BONUS_MAX - elapsed_ms // 1000)

    remaining_hp = sum(member.current_hp for member in run_state.squad if member.is_alive)
    hp_remaining_score = remaining_hp * HP_REMAINING_MULTIPLIER

    boss_stages = _boss_stages_defeated(run_state)
    boss_kill_score = sum(
        BOSS_KILL_SCORE_FINAL if stage == rules.final_stage else BOSS_KILL_SCORE_MID for stage in boss_stages
    )

    all_alive = all(member.is_alive for member in run_state.squad)
    all_cats_alive_bonus = ALL_CATS_ALIVE_BONUS if all_alive and run_state.phase == "run_complete" else 0

    boon_efficiency_score = 0
    for boon in catalog:
        stacks = min(boon.max_stacks, get_active_stacks(run_state.active_boons, boon.id))
        boon_efficiency_score += BOON_SCORE_BY_RARITY.get(boon.rarity, 0) * stacks

    flawless_count = sum(1 for result in run_state.stage_results if result.flawless)
    flawless_stage_score = flawless_count * FLAWLESS_STAGE_BONUS

    total_score = (
        stage_score
        + speed_bonus
        + hp_remaining_score
        + boss_kill_score
        + all_cats_alive_bonus
        + boon_efficiency_score
        + flawless_stage_score
    )

    effects = calculate_boon_effects(run_state.active_boons, catalog)
    coins_earned = calculate_coins_earned(stages_cleared, len(boss_stages), 1 + effects.coin_multiplier)

    return Score(
        stages_cleared=stages_cleared,
        stage_score=stage_score,
        speed_bonus=speed_bonus,
        hp_remaining_score=hp_remaining_score,
        boss_kill_score=boss_kill_score,
        all_cats_alive_bonus=all_cats_alive_bonus,
        boon_efficiency_score=boon_efficiency_score,
        flawless_stage_score=flawless_stage_score,
        coins_earned=coins_earned,
        total_score=total_score,
    )
