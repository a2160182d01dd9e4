"""Expedition run state, stage results and the phase transition table."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Sequence, Tuple

from talonrun.core.types import RunAction, RunPhase
from talonrun.domain.boons import ActiveBoon, BoonOffering
from talonrun.domain.entities import Combatant

SQUAD_SIZE = 3

# Every legal (phase, action) pair and the phases it may lead to.
PHASE_TRANSITIONS: Dict[RunPhase, Dict[RunAction, Tuple[RunPhase, ...]]] = {
    "squad_select": {"select_squad": ("pre_battle",), "abandon": ("run_failed",)},
    "pre_battle": {"begin_battle": ("in_battle",), "abandon": ("run_failed",)},
    "in_battle": {
        "complete_stage": ("stage_cleared", "run_complete", "run_failed"),
        "abandon": ("run_failed",),
    },
    "stage_cleared": {
        "offer_boons": ("boon_select",),
        "advance_stage": ("pre_battle", "healing_spring"),
        "abandon": ("run_failed",),
    },
    "boon_select": {"choose_boon": ("stage_cleared",), "abandon": ("run_failed",)},
    "healing_spring": {"advance_stage": ("pre_battle",), "abandon": ("run_failed",)},
    "run_complete": {},
    "run_failed": {},
}


def is_valid_transition(current_phase: RunPhase, action: RunAction) -> bool:
    """Return True when ``action`` may be attempted from ``current_phase``."""
    return action in PHASE_TRANSITIONS.get(current_phase, {})


@dataclass(frozen=True, slots=True)
class StageResult:
    """Immutable record of one cleared stage, reported by the battle caller."""

    stage_index: int
    hp_remaining: Mapping[str, int]
    start_time: int
    end_time: int
    flawless: bool = False
    boss_defeated: bool = False
    enemy_id: str = ""
    enemy_name: str = ""
    turns_elapsed: int = 0
    knocked_out_ids: Tuple[str, ...] = ()


@dataclass(slots=True)
class RunState:
    """Plain, serializable state of one expedition run."""

    run_id: str
    seed: int
    phase: RunPhase
    current_stage: int
    squad: List[Combatant]
    started_at: int
    active_boons: List[ActiveBoon] = field(default_factory=list)
    stage_results: List[StageResult] = field(default_factory=list)
    current_boon_offering: BoonOffering | None = None
    consecutive_all_common_offerings: int = 0
    prng_call_count: int = 0
    boss_revived: Dict[str, bool] = field(default_factory=dict)
    last_boon_stage: int = 0


def is_squad_wiped(squad: Sequence[Combatant]) -> bool:
    return all(not member.is_alive for member in squad)


def count_knocked_out(squad: Sequence[Combatant]) -> int:
    return sum(1 for member in squad if not member.is_alive)


def apply_stage_result_hp(squad: Sequence[Combatant], result: StageResult) -> List[Combatant]:
    """Copy reported HP onto the squad; members at 0 HP or listed as knocked out are knocked out."""
    updated: List[Combatant] = []
    knocked_out_ids = set(result.knocked_out_ids)
    for member in squad:
        hp = result.hp_remaining.get(member.instance_id, member.current_hp)
        hp = max(0, min(member.max_hp, hp))
        knocked_out = member.knocked_out or hp <= 0 or member.instance_id in knocked_out_ids
        updated.append(replace(member, current_hp=0 if knocked_out else hp, knocked_out=knocked_out))
    return updated


def apply_stage_start_healing(squad: Sequence[Combatant], heal_amount: int) -> List[Combatant]:
    if heal_amount <= 0:
        return [replace(member) for member in squad]
    return [
        replace(member, current_hp=min(member.max_hp, member.current_hp + heal_amount))
        if member.is_alive
        else replace(member)
        for member in squad
    ]


def apply_healing_spring(squad: Sequence[Combatant], fraction: float) -> List[Combatant]:
    """Restore ``fraction`` of max HP (floored, never negative) to every living member."""
    healed: List[Combatant] = []
    for member in squad:
        if not member.is_alive:
            healed.append(replace(member))
            continue
        amount = max(0, math.floor(member.max_hp * fraction))
        healed.append(replace(member, current_hp=min(member.max_hp, member.current_hp + amount)))
    return healed


def clone_run_state(state: RunState) -> RunState:
    """Copy with independent squad, boon and result containers."""
    return replace(
        state,
        squad=[replace(member) for member in state.squad],
        active_boons=list(state.active_boons),
        stage_results=list(state.stage_results),
        boss_revived=dict(state.boss_revived),
    )
