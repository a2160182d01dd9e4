"""Enemy definition structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, get_args

EnemyAbilityEffect = Literal[
    "aoe",
    "dot_poison",
    "dot_burn",
    "reflect",
    "debuff_atk",
    "silence",
    "heal_self",
    "dodge",
    "revive",
    "enrage",
]

ENEMY_ABILITY_EFFECTS: tuple[str, ...] = get_args(EnemyAbilityEffect)


@dataclass(frozen=True, slots=True)
class EnemyAbilityParams:
    aoe_fraction: float = 0.0
    dot_damage: int = 0
    dot_turns: int = 0
    reflect_fraction: float = 0.0
    debuff_multiplier: float = 1.0
    debuff_turns: int = 0
    heal_fraction: float = 0.0
    dodge_chance: float = 0.0
    revive_hp_fraction: float = 0.0
    enrage_threshold: float = 0.0
    enrage_multiplier: float = 1.0
    silences: bool = False
    cooldown: int = 0


@dataclass(frozen=True, slots=True)
class EnemyAbilityDef:
    name: str
    description: str
    effect: EnemyAbilityEffect
    params: EnemyAbilityParams = field(default_factory=EnemyAbilityParams)


@dataclass(frozen=True, slots=True)
class EnemyDef:
    """Catalog entry for an expedition enemy."""

    id: str
    name: str
    base_hp: int
    base_attack: int
    defense: int
    speed: int
    tier: int
    stage_range: tuple[int, int]
    is_boss: bool
    ability: EnemyAbilityDef
