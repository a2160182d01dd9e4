"""Repository exports."""

from .boons_repo import BoonsRepository
from .creatures_repo import CreaturesRepository
from .enemies_repo import EnemiesRepository
from .medals_repo import MedalsRepository

__all__ = [
    "BoonsRepository",
    "CreaturesRepository",
    "EnemiesRepository",
    "MedalsRepository",
]
