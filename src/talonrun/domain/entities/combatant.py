"""Squad member runtime model."""
from __future__ import annotations

from dataclasses import dataclass, field

from talonrun.core.types import CreatureRarity
from talonrun.domain.defs import AbilityDef


@dataclass(frozen=True, slots=True)
class EliteStatus:
    """Permanent elite upgrade of a creature."""

    is_elite: bool = False
    elite_tier: int = 0

    @property
    def effective_tier(self) -> int:
        """0 for regular creatures, otherwise 1 or 2 (an elite without a tier counts as tier 1)."""
        if not self.is_elite:
            return 0
        return 2 if self.elite_tier >= 2 else 1


@dataclass(slots=True)
class Combatant:
    """
    Run-scoped snapshot of an owned creature.

    ``base_max_hp``/``base_attack`` are the values captured when the squad was
    assembled; ``max_hp``/``current_attack`` are derived from them plus boon effects.
    """

    instance_id: str
    name: str
    creature_id: str
    rarity: CreatureRarity
    ability: AbilityDef
    base_max_hp: int
    base_attack: int
    current_hp: int
    max_hp: int
    current_attack: int
    elite: EliteStatus = field(default_factory=EliteStatus)
    knocked_out: bool = False

    @property
    def is_alive(self) -> bool:
        return not self.knocked_out and self.current_hp > 0
