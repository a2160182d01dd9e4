"""Creature ability definitions."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AbilityEffect(str, Enum):
    """Closed set of creature ability effect kinds."""

    CRIT = "crit"
    BLEED = "bleed"
    HEAL = "heal"
    LIFESTEAL = "lifesteal"
    STUN = "stun"
    SPEED = "speed"
    SHIELD = "shield"
    ARMOR = "armor"


@dataclass(frozen=True, slots=True)
class AbilityDef:
    """Ability descriptor carried by every creature."""

    name: str
    effect: AbilityEffect
    description: str = ""
