"""Runtime entity exports."""

from .combatant import Combatant, EliteStatus
from .enemy import ScaledEnemy

__all__ = [
    "Combatant",
    "EliteStatus",
    "ScaledEnemy",
]
