"""Service layer exports."""

from .errors import FactoryError, SaveLoadError
from .expedition_service import (
    ActionResult,
    BoonChosenEvent,
    BoonOfferedEvent,
    ExpeditionService,
    PhaseChangedEvent,
    RunEndedEvent,
    RunEvent,
    RunStartedEvent,
    RunSummary,
    StageCompletedEvent,
)
from .save_service import RunSaveService
from .stage_battle_service import StageBattleReport, StageBattleService

__all__ = [
    "ActionResult",
    "BoonChosenEvent",
    "BoonOfferedEvent",
    "ExpeditionService",
    "FactoryError",
    "PhaseChangedEvent",
    "RunEndedEvent",
    "RunEvent",
    "RunSaveService",
    "RunStartedEvent",
    "RunSummary",
    "SaveLoadError",
    "StageBattleReport",
    "StageBattleService",
    "StageCompletedEvent",
]
