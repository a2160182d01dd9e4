"""Shared type aliases for the core and domain layers."""
from typing import Literal

CreatureRarity = Literal["Common", "Uncommon", "Rare", "Epic", "Legendary", "Mythical"]
BoonRarity = Literal["Common", "Rare", "Legendary"]
LogKind = Literal["damage", "heal", "crit", "info"]

RunPhase = Literal[
    "squad_select",
    "pre_battle",
    "in_battle",
    "stage_cleared",
    "boon_select",
    "healing_spring",
    "run_complete",
    "run_failed",
]
RunAction = Literal[
    "select_squad",
    "begin_battle",
    "complete_stage",
    "offer_boons",
    "choose_boon",
    "advance_stage",
    "abandon",
]
RunOutcome = Literal["victory", "defeat"]

TERMINAL_PHASES: tuple[RunPhase, ...] = ("run_complete", "run_failed")

__all__ = [
    "BoonRarity",
    "CreatureRarity",
    "LogKind",
    "RunAction",
    "RunOutcome",
    "RunPhase",
    "TERMINAL_PHASES",
]
