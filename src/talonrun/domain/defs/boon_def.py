"""Boon definition structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, get_args

from talonrun.core.types import BoonRarity

BoonEffectKind = Literal[
    "atk_boost",
    "hp_boost",
    "crit_chance",
    "lifesteal",
    "thorns",
    "scavenger",
    "swift_paws",
    "iron_fur",
    "poison_claws",
    "rally_cry",
    "executioner",
    "fortune_favor",
]

BOON_EFFECT_KINDS: tuple[str, ...] = get_args(BoonEffectKind)
BOON_RARITIES: tuple[str, ...] = ("Common", "Rare", "Legendary")


@dataclass(frozen=True, slots=True)
class BoonParams:
    """Per-stack magnitudes; only the fields relevant to a boon's effect are set."""

    atk_boost: int = 0
    hp_boost: int = 0
    crit_threshold_reduction: int = 0
    lifesteal_fraction: float = 0.0
    thorns_fraction: float = 0.0
    coin_multiplier: float = 0.0
    bonus_attack_chance: float = 0.0
    damage_reduction: int = 0
    dot_damage: int = 0
    dot_turns: int = 0
    heal_amount: int = 0
    execute_threshold: float = 0.0
    execute_bonus_damage: int = 0
    rarity_boost: float = 0.0


@dataclass(frozen=True, slots=True)
class BoonDef:
    """Immutable catalog entry for a stackable power-up."""

    id: str
    name: str
    description: str
    rarity: BoonRarity
    effect: BoonEffectKind
    max_stacks: int
    params: BoonParams = field(default_factory=BoonParams)
