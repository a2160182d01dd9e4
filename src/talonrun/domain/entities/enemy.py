"""Enemy runtime models."""
from __future__ import annotations

from dataclasses import dataclass

from talonrun.domain.defs import EnemyDef


@dataclass(frozen=True, slots=True)
class ScaledEnemy:
    """An enemy definition with HP/ATK scaled for a specific stage."""

    definition: EnemyDef
    stage: int
    max_hp: int
    attack: int

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def defense(self) -> int:
        return self.definition.defense

    @property
    def is_boss(self) -> bool:
        return self.definition.is_boss
