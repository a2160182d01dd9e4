"""Deterministic enemy stat scaling and stage enemy selection."""
from __future__ import annotations

import math
from typing import Callable, Sequence

from talonrun.config import RunRules
from talonrun.domain.defs import EnemyDef
from talonrun.domain.entities import ScaledEnemy


def stage_multiplier(stage: int, factor: float) -> float:
    # Linear growth keeps early stages at base stats.
    return 1.0 + (max(1, stage) - 1) * factor


def scale_enemy_for_stage(enemy: EnemyDef, stage: int, *, factor: float) -> ScaledEnemy:
    multiplier = stage_multiplier(stage, factor)
    return ScaledEnemy(
        definition=enemy,
        stage=stage,
        max_hp=math.floor(enemy.base_hp * multiplier),
        attack=math.floor(enemy.base_attack * multiplier),
    )


def is_boss_stage(stage: int, rules: RunRules) -> bool:
    return stage in rules.boss_stages


def is_final_stage(stage: int, rules: RunRules) -> bool:
    return stage == rules.total_stages


def is_healing_spring_stage(stage: int, rules: RunRules) -> bool:
    return stage in rules.healing_spring_stages


def boss_for_stage(stage: int, enemies: Sequence[EnemyDef], rules: RunRules) -> EnemyDef | None:
    if not is_boss_stage(stage, rules):
        return None
    for enemy in enemies:
        low, high = enemy.stage_range
        if enemy.is_boss and low <= stage <= high:
            return enemy
    return None


def select_enemy_for_stage(
    stage: int,
    enemies: Sequence[EnemyDef],
    draw: Callable[[], float],
    rules: RunRules,
) -> EnemyDef:
    """
    Boss stages return their boss without drawing; other stages draw once among
    the non-boss enemies whose stage range covers ``stage``.
    """
    boss = boss_for_stage(stage, enemies, rules)
    if boss is not None:
        return boss

    regulars = [enemy for enemy in enemies if not enemy.is_boss]
    if not regulars:
        raise ValueError("Enemy roster has no regular enemies.")
    eligible = [enemy for enemy in regulars if enemy.stage_range[0] <= stage <= enemy.stage_range[1]]
    if not eligible:
        return max(regulars, key=lambda enemy: (enemy.tier, enemy.stage_range[1]))
    return eligible[int(draw() * len(eligible))]
