"""Automatic resolution of one expedition stage battle."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Dict, List

from talonrun.config import DEFAULT_RULES, RunRules
from talonrun.core.rng import RNG
from talonrun.core.types import LogKind
from talonrun.data.errors import DataReferenceError
from talonrun.data.repositories import BoonsRepository, EnemiesRepository
from talonrun.domain.abilities import LogMessage, resolve_ability, resolve_defense
from talonrun.domain.boons import BoonEffects, calculate_boon_effects
from talonrun.domain.defs import EnemyAbilityParams
from talonrun.domain.enemy_scaling import (
    boss_for_stage,
    is_boss_stage,
    scale_enemy_for_stage,
    select_enemy_for_stage,
)
from talonrun.domain.entities import Combatant, ScaledEnemy
from talonrun.domain.run_state import RunState, StageResult, clone_run_state

logger = logging.getLogger(__name__)

_COOLDOWN_EFFECTS = frozenset({"aoe", "dot_poison", "dot_burn", "debuff_atk", "silence", "heal_self"})


@dataclass(slots=True)
class BattleEvent:
    """Base battle event."""


@dataclass(slots=True)
class BattleStartedEvent(BattleEvent):
    stage: int
    enemy_id: str
    enemy_name: str
    enemy_hp: int
    is_boss: bool


@dataclass(slots=True)
class AttackResolvedEvent(BattleEvent):
    attacker_id: str
    attacker_name: str
    target_id: str
    target_name: str
    damage: int
    target_hp: int


@dataclass(slots=True)
class BattleLogEvent(BattleEvent):
    text: str
    kind: LogKind


@dataclass(slots=True)
class CombatantDefeatedEvent(BattleEvent):
    combatant_id: str
    combatant_name: str


@dataclass(slots=True)
class BattleResolvedEvent(BattleEvent):
    victor: str
    turns: int


@dataclass(slots=True)
class StageBattleReport:
    """Battle outcome; ``result`` is ready for ``ExpeditionService.complete_stage``."""

    state: RunState
    result: StageResult
    events: List[BattleEvent]
    victory: bool


@dataclass(slots=True)
class _DamageOverTime:
    damage: int
    turns: int


@dataclass(slots=True)
class _Battle:
    rng: RNG
    effects: BoonEffects
    enemy: ScaledEnemy
    squad: List[Combatant]
    boss_revived: Dict[str, bool]
    enemy_hp: int
    cooldown_remaining: int
    events: List[BattleEvent] = field(default_factory=list)
    enemy_stunned: bool = False
    enemy_poison: _DamageOverTime | None = None
    squad_dots: Dict[str, _DamageOverTime] = field(default_factory=dict)
    silence_turns: int = 0
    debuff_turns: int = 0
    debuff_multiplier: float = 1.0
    damage_taken: bool = False

    @property
    def params(self) -> EnemyAbilityParams:
        return self.enemy.definition.ability.params

    @property
    def effect(self) -> str:
        return self.enemy.definition.ability.effect

    @property
    def enemy_alive(self) -> bool:
        return self.enemy_hp > 0

    def living(self) -> List[Combatant]:
        return [member for member in self.squad if member.is_alive]

    def log(self, text: str, kind: LogKind = "info") -> None:
        self.events.append(BattleLogEvent(text=text, kind=kind))

    def relay(self, messages: tuple[LogMessage, ...]) -> None:
        for message in messages:
            self.log(message.text, message.kind)


class StageBattleService:
    """Plays a stage to completion with every random draw taken from the run RNG."""

    def __init__(
        self,
        enemies_repo: EnemiesRepository,
        boons_repo: BoonsRepository,
        rules: RunRules | None = None,
    ) -> None:
        self._enemies_repo = enemies_repo
        self._boons_repo = boons_repo
        self._rules = rules or DEFAULT_RULES

    def preview_enemy(self, state: RunState) -> ScaledEnemy:
        """The enemy ``run_stage`` would face, without consuming the run RNG."""
        rng = RNG(state.seed, state.prng_call_count)
        return self._pick_enemy(state.current_stage, rng)

    def run_stage(self, state: RunState, *, started_at: int) -> StageBattleReport:
        if state.phase != "in_battle":
            raise ValueError(f"Stage battles require phase 'in_battle', not '{state.phase}'.")

        rng = RNG(state.seed, state.prng_call_count)
        enemy = self._pick_enemy(state.current_stage, rng)
        battle = _Battle(
            rng=rng,
            effects=calculate_boon_effects(state.active_boons, self._boons_repo.all()),
            enemy=enemy,
            squad=[replace(member) for member in state.squad],
            boss_revived=dict(state.boss_revived),
            enemy_hp=enemy.max_hp,
            cooldown_remaining=enemy.definition.ability.params.cooldown,
        )
        battle.events.append(
            BattleStartedEvent(
                stage=state.current_stage,
                enemy_id=enemy.id,
                enemy_name=enemy.name,
                enemy_hp=enemy.max_hp,
                is_boss=enemy.is_boss,
            )
        )

        turns = 0
        while turns < self._rules.max_battle_turns and battle.enemy_alive and battle.living():
            turns += 1
            self._squad_phase(battle)
            if battle.enemy_alive:
                self._enemy_phase(battle)

        victory = not battle.enemy_alive and bool(battle.living())
        battle.events.append(BattleResolvedEvent(victor="squad" if victory else "enemy", turns=turns))
        logger.info(
            "Stage %d vs %s: %s in %d turns",
            state.current_stage,
            enemy.id,
            "victory" if victory else "defeat",
            turns,
        )

        assert rng.calls >= state.prng_call_count, "prng_call_count must never move backwards"
        updated = clone_run_state(state)
        updated.prng_call_count = rng.calls
        updated.boss_revived = battle.boss_revived

        knocked_out = [member.instance_id for member in battle.squad if not member.is_alive]
        if not victory:
            # A timeout counts as a wipe.
            knocked_out = [member.instance_id for member in battle.squad]
        result = StageResult(
            stage_index=state.current_stage,
            hp_remaining={member.instance_id: member.current_hp for member in battle.squad},
            start_time=started_at,
            end_time=started_at + turns * self._rules.turn_duration_ms,
            flawless=victory and not battle.damage_taken,
            boss_defeated=victory and enemy.is_boss,
            enemy_id=enemy.id,
            enemy_name=enemy.name,
            turns_elapsed=turns,
            knocked_out_ids=tuple(knocked_out),
        )
        return StageBattleReport(state=updated, result=result, events=battle.events, victory=victory)

    def _pick_enemy(self, stage: int, rng: RNG) -> ScaledEnemy:
        enemies = self._enemies_repo.all()
        if is_boss_stage(stage, self._rules) and boss_for_stage(stage, enemies, self._rules) is None:
            raise DataReferenceError(f"No boss enemy covers boss stage {stage}.")
        enemy_def = select_enemy_for_stage(stage, enemies, rng.random, self._rules)
        return scale_enemy_for_stage(enemy_def, stage, factor=self._rules.stage_scaling_factor)

    # Squad side

    def _squad_phase(self, battle: _Battle) -> None:
        silenced = battle.silence_turns > 0
        for member in battle.squad:
            if not battle.enemy_alive:
                break
            if member.is_alive:
                self._squad_attack(battle, member, silenced, follow_up=False)

        if battle.enemy_poison is not None and battle.enemy_alive:
            poison = battle.enemy_poison
            self._damage_enemy(battle, poison.damage)
            battle.log(f"{battle.enemy.name} takes {poison.damage} poison damage.", "damage")
            poison.turns -= 1
            if poison.turns <= 0:
                battle.enemy_poison = None

        battle.silence_turns = max(0, battle.silence_turns - 1)
        battle.debuff_turns = max(0, battle.debuff_turns - 1)
        if battle.debuff_turns == 0:
            battle.debuff_multiplier = 1.0

    def _squad_attack(self, battle: _Battle, member: Combatant, silenced: bool, *, follow_up: bool) -> None:
        effects = battle.effects
        roll = battle.rng.roll_d20()
        attack = math.floor(member.current_attack * battle.debuff_multiplier)
        base_damage = max(1, attack - battle.enemy.defense)
        outcome = resolve_ability(
            member,
            roll,
            base_damage,
            silenced,
            crit_threshold_reduction=effects.crit_threshold_reduction,
        )
        battle.relay(outcome.log_messages)

        damage = outcome.damage
        if effects.execute_bonus_damage and battle.enemy_hp <= battle.enemy.max_hp * effects.execute_threshold:
            damage += effects.execute_bonus_damage
            battle.log(f"{member.name} executes for +{effects.execute_bonus_damage} damage!", "crit")

        if battle.effect == "dodge" and battle.rng.random() < battle.params.dodge_chance:
            battle.log(f"{battle.enemy.name} dodges {member.name}'s attack!")
            return

        self._damage_enemy(battle, damage)
        battle.events.append(
            AttackResolvedEvent(
                attacker_id=member.instance_id,
                attacker_name=member.name,
                target_id=battle.enemy.id,
                target_name=battle.enemy.name,
                damage=damage,
                target_hp=max(0, battle.enemy_hp),
            )
        )

        if battle.effect == "reflect":
            reflected = math.floor(damage * battle.params.reflect_fraction)
            if reflected > 0:
                battle.log(f"{battle.enemy.name} reflects {reflected} damage!", "damage")
                self._damage_member(battle, member, reflected)

        heal = outcome.heal_amount if outcome.heal_target_id == member.instance_id else 0
        if effects.lifesteal_fraction > 0:
            heal += math.floor(damage * effects.lifesteal_fraction)
        if heal > 0 and member.is_alive:
            member.current_hp = min(member.max_hp, member.current_hp + heal)

        if effects.poison_dot is not None:
            battle.enemy_poison = _DamageOverTime(damage=effects.poison_dot.damage, turns=effects.poison_dot.turns)
        if outcome.is_stun:
            battle.enemy_stunned = True

        if follow_up or not battle.enemy_alive or not member.is_alive:
            return
        if outcome.is_speed:
            self._squad_attack(battle, member, silenced, follow_up=True)
        elif effects.bonus_attack_chance > 0 and battle.rng.random() < effects.bonus_attack_chance:
            battle.log(f"{member.name} strikes again!", "crit")
            self._squad_attack(battle, member, silenced, follow_up=True)

    # Enemy side

    def _enemy_phase(self, battle: _Battle) -> None:
        if battle.enemy_stunned:
            battle.enemy_stunned = False
            battle.log(f"{battle.enemy.name} is stunned and loses its turn.")
        else:
            self._enemy_action(battle)
        self._tick_squad_dots(battle)

    def _enemy_action(self, battle: _Battle) -> None:
        if not battle.living():
            return
        params = battle.params
        attack = battle.enemy.attack
        attacks = 1
        if battle.effect == "enrage" and battle.enemy_hp <= battle.enemy.max_hp * params.enrage_threshold:
            attack = math.floor(attack * params.enrage_multiplier)
            attacks = 2
            battle.log(f"{battle.enemy.name} is enraged!", "crit")
        elif battle.effect in _COOLDOWN_EFFECTS and params.cooldown > 0:
            if battle.cooldown_remaining <= 0 and self._use_enemy_ability(battle):
                battle.cooldown_remaining = params.cooldown
                return
            battle.cooldown_remaining -= 1

        for _ in range(attacks):
            living = battle.living()
            if not living:
                return
            self._enemy_attack(battle, self._pick_target(battle, living), attack)

    def _use_enemy_ability(self, battle: _Battle) -> bool:
        """Return False when the ability has nothing to do this turn."""
        params = battle.params
        ability = battle.enemy.definition.ability
        if battle.effect == "aoe":
            damage = max(1, math.floor(battle.enemy.attack * params.aoe_fraction))
            battle.log(f"{battle.enemy.name} uses {ability.name}!", "damage")
            for member in battle.living():
                self._defend(battle, member, damage)
            if params.silences:
                battle.silence_turns = 1
            return True
        if battle.effect in ("dot_poison", "dot_burn"):
            target = self._pick_target(battle, battle.living())
            battle.squad_dots[target.instance_id] = _DamageOverTime(damage=params.dot_damage, turns=params.dot_turns)
            battle.log(f"{battle.enemy.name} uses {ability.name} on {target.name}!", "damage")
            return True
        if battle.effect == "debuff_atk":
            battle.debuff_multiplier = params.debuff_multiplier
            battle.debuff_turns = params.debuff_turns
            battle.log(f"{battle.enemy.name} uses {ability.name}! The squad's attack drops.")
            return True
        if battle.effect == "silence":
            battle.silence_turns = 1
            battle.log(f"{battle.enemy.name} uses {ability.name}! Abilities are silenced.")
            return True
        if battle.effect == "heal_self":
            if battle.enemy_hp >= battle.enemy.max_hp:
                return False
            amount = math.floor(battle.enemy.max_hp * params.heal_fraction)
            battle.enemy_hp = min(battle.enemy.max_hp, battle.enemy_hp + amount)
            battle.log(f"{battle.enemy.name} heals {amount} HP!", "heal")
            return True
        return False

    def _pick_target(self, battle: _Battle, living: List[Combatant]) -> Combatant:
        if battle.enemy.is_boss:
            return min(living, key=lambda member: member.current_hp)
        return battle.rng.choice(living)

    def _enemy_attack(self, battle: _Battle, target: Combatant, attack: int) -> None:
        dealt = self._defend(battle, target, attack)
        battle.events.append(
            AttackResolvedEvent(
                attacker_id=battle.enemy.id,
                attacker_name=battle.enemy.name,
                target_id=target.instance_id,
                target_name=target.name,
                damage=dealt,
                target_hp=target.current_hp,
            )
        )

    def _defend(self, battle: _Battle, member: Combatant, incoming: int) -> int:
        """Iron Fur, then the member's own defense, then Thorn Coat."""
        damage = incoming
        if battle.effects.damage_reduction > 0:
            damage = max(1, damage - battle.effects.damage_reduction)
        defense = resolve_defense(member, damage, battle.silence_turns > 0, draw=battle.rng.random)
        battle.relay(defense.log_messages)
        dealt = defense.actual_damage
        self._damage_member(battle, member, dealt)

        if battle.effects.thorns_fraction > 0 and battle.enemy_alive:
            thorns = math.floor(dealt * battle.effects.thorns_fraction)
            if thorns > 0:
                self._damage_enemy(battle, thorns)
                battle.log(f"{member.name}'s thorns deal {thorns} damage!", "damage")
        return dealt

    def _tick_squad_dots(self, battle: _Battle) -> None:
        for member in battle.squad:
            dot = battle.squad_dots.get(member.instance_id)
            if dot is None:
                continue
            if member.is_alive:
                self._damage_member(battle, member, dot.damage)
                battle.log(f"{member.name} takes {dot.damage} damage over time.", "damage")
            dot.turns -= 1
            if dot.turns <= 0 or not member.is_alive:
                del battle.squad_dots[member.instance_id]

    # Shared

    def _damage_member(self, battle: _Battle, member: Combatant, amount: int) -> None:
        if amount <= 0 or not member.is_alive:
            return
        battle.damage_taken = True
        member.current_hp = max(0, member.current_hp - amount)
        if member.current_hp == 0:
            member.knocked_out = True
            battle.events.append(CombatantDefeatedEvent(combatant_id=member.instance_id, combatant_name=member.name))

    def _damage_enemy(self, battle: _Battle, amount: int) -> None:
        if amount <= 0 or not battle.enemy_alive:
            return
        battle.enemy_hp = max(0, battle.enemy_hp - amount)
        if battle.enemy_hp > 0:
            return
        stage_key = str(battle.enemy.stage)
        if battle.effect == "revive" and not battle.boss_revived.get(stage_key, False):
            battle.boss_revived[stage_key] = True
            battle.enemy_hp = max(1, math.floor(battle.enemy.max_hp * battle.params.revive_hp_fraction))
            battle.log(f"{battle.enemy.name} rises again with {battle.enemy_hp} HP!", "heal")
            return
        battle.events.append(CombatantDefeatedEvent(combatant_id=battle.enemy.id, combatant_name=battle.enemy.name))


__all__ = [
    "AttackResolvedEvent",
    "BattleEvent",
    "BattleLogEvent",
    "BattleResolvedEvent",
    "BattleStartedEvent",
    "CombatantDefeatedEvent",
    "StageBattleService",
    "StageBattleReport",
]
