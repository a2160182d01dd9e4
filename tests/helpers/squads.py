"""Builders for squads and run states used across tests."""
from __future__ import annotations

from typing import Sequence

from talonrun.core.types import CreatureRarity, RunPhase
from talonrun.domain.defs import AbilityDef, AbilityEffect
from talonrun.domain.entities import Combatant, EliteStatus
from talonrun.domain.run_state import RunState, StageResult


def make_member(
    instance_id: str = "cat-1",
    effect: AbilityEffect = AbilityEffect.CRIT,
    *,
    hp: int = 50,
    attack: int = 10,
    rarity: CreatureRarity = "Rare",
    elite: EliteStatus | None = None,
    current_hp: int | None = None,
) -> Combatant:
    current = hp if current_hp is None else current_hp
    return Combatant(
        instance_id=instance_id,
        name=f"Cat {instance_id}",
        creature_id=f"creature-{instance_id}",
        rarity=rarity,
        ability=AbilityDef(name=f"{effect.value} ability", effect=effect),
        base_max_hp=hp,
        base_attack=attack,
        current_hp=current,
        max_hp=hp,
        current_attack=attack,
        elite=elite or EliteStatus(),
        knocked_out=current <= 0,
    )


def make_squad(*, hp: int = 50, attack: int = 10) -> list[Combatant]:
    return [
        make_member("cat-1", AbilityEffect.CRIT, hp=hp, attack=attack),
        make_member("cat-2", AbilityEffect.SHIELD, hp=hp, attack=attack),
        make_member("cat-3", AbilityEffect.HEAL, hp=hp, attack=attack),
    ]


def make_state(
    *,
    phase: RunPhase = "pre_battle",
    stage: int = 1,
    squad: Sequence[Combatant] | None = None,
    seed: int = 42,
) -> RunState:
    return RunState(
        run_id="run_test",
        seed=seed,
        phase=phase,
        current_stage=stage,
        squad=list(squad) if squad is not None else make_squad(),
        started_at=0,
    )


def full_hp_result(state: RunState, *, end_time: int | None = None) -> StageResult:
    """A cleared stage in which nobody lost HP."""
    return StageResult(
        stage_index=state.current_stage,
        hp_remaining={member.instance_id: member.current_hp for member in state.squad},
        start_time=0,
        end_time=end_time if end_time is not None else state.current_stage * 60_000,
        flawless=True,
    )
