"""Domain definition exports."""

from .ability_def import AbilityDef, AbilityEffect
from .boon_def import BoonDef, BoonEffectKind, BoonParams
from .creature_def import CreatureDef
from .enemy_def import EnemyAbilityDef, EnemyAbilityParams, EnemyDef
from .medal_def import MedalDef

__all__ = [
    "AbilityDef",
    "AbilityEffect",
    "BoonDef",
    "BoonEffectKind",
    "BoonParams",
    "CreatureDef",
    "EnemyAbilityDef",
    "EnemyAbilityParams",
    "EnemyDef",
    "MedalDef",
]
