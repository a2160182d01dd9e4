"""Creature roster definitions."""
from __future__ import annotations

from dataclasses import dataclass

from talonrun.core.types import CreatureRarity

from .ability_def import AbilityDef


@dataclass(frozen=True, slots=True)
class CreatureDef:
    """Read-only roster entry a squad member is snapshotted from."""

    id: str
    name: str
    rarity: CreatureRarity
    base_hp: int
    base_attack: int
    ability: AbilityDef
