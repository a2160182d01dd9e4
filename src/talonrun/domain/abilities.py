"""Pure resolution of creature abilities for a single attack or hit taken."""
from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple

from talonrun.core.types import LogKind
from talonrun.domain.defs import AbilityEffect
from talonrun.domain.entities import Combatant

# Tables are indexed by EliteStatus.effective_tier (0 = regular, 1, 2).
CRIT_THRESHOLD = (15, 13, 13)
CRIT_MULTIPLIER = (1.5, 1.75, 2.0)
BLEED_BONUS = (3, 5, 7)
HEAL_MULTIPLIER = (1.0, 1.5, 1.75)
LIFESTEAL_FRACTION = (0.50, 0.65, 0.75)
STUN_THRESHOLD = (17, 15, 13)
SPEED_THRESHOLD = (14, 12, 10)
SHIELD_CHANCE = (0.35, 0.50, 0.60)
ARMOR_REDUCTION = (3, 5, 7)

HEAL_BY_RARITY: Dict[str, int] = {
    "Uncommon": 2,
    "Rare": 3,
    "Epic": 4,
    "Legendary": 5,
    "Mythical": 6,
}
DEFAULT_HEAL = 3

Draw = Callable[[], float]


@dataclass(frozen=True, slots=True)
class LogMessage:
    text: str
    kind: LogKind


@dataclass(frozen=True, slots=True)
class TriggeredAbility:
    ability_name: str
    effect: AbilityEffect


@dataclass(frozen=True, slots=True)
class AbilityOutcome:
    """Result of resolving one attack; never stored."""

    damage: int
    is_crit: bool = False
    heal_amount: int = 0
    heal_target_id: str | None = None
    is_stun: bool = False
    is_speed: bool = False
    log_messages: Tuple[LogMessage, ...] = ()
    ability_triggered: TriggeredAbility | None = None


@dataclass(frozen=True, slots=True)
class DefenseOutcome:
    actual_damage: int
    log_messages: Tuple[LogMessage, ...] = ()


@dataclass(slots=True)
class _AttackDraft:
    attacker: Combatant
    roll: int
    tier: int
    crit_threshold_reduction: int
    damage: int
    is_crit: bool = False
    heal_amount: int = 0
    heal_target_id: str | None = None
    is_stun: bool = False
    is_speed: bool = False
    logs: List[LogMessage] = field(default_factory=list)
    triggered: TriggeredAbility | None = None

    def trigger(self) -> None:
        ability = self.attacker.ability
        self.triggered = TriggeredAbility(ability_name=ability.name, effect=ability.effect)

    def log(self, text: str, kind: LogKind) -> None:
        self.logs.append(LogMessage(text=text, kind=kind))

    def freeze(self) -> AbilityOutcome:
        return AbilityOutcome(
            damage=self.damage,
            is_crit=self.is_crit,
            heal_amount=self.heal_amount,
            heal_target_id=self.heal_target_id,
            is_stun=self.is_stun,
            is_speed=self.is_speed,
            log_messages=tuple(self.logs),
            ability_triggered=self.triggered,
        )


def _offense_crit(draft: _AttackDraft) -> None:
    threshold = CRIT_THRESHOLD[draft.tier] - draft.crit_threshold_reduction
    if draft.roll >= threshold:
        draft.damage = math.floor(draft.damage * CRIT_MULTIPLIER[draft.tier])
        draft.is_crit = True
        draft.log(f"{draft.attacker.name} lands a critical hit for {draft.damage} damage!", "crit")
        draft.trigger()


def _offense_bleed(draft: _AttackDraft) -> None:
    if draft.roll >= CRIT_THRESHOLD[draft.tier]:
        bonus = BLEED_BONUS[draft.tier]
        draft.damage += bonus
        draft.log(f"{draft.attacker.name}'s attack bleeds for +{bonus} damage!", "crit")
        draft.trigger()


def _offense_heal(draft: _AttackDraft) -> None:
    if draft.roll >= CRIT_THRESHOLD[draft.tier]:
        base_heal = HEAL_BY_RARITY.get(draft.attacker.rarity, DEFAULT_HEAL)
        draft.heal_amount = math.floor(base_heal * HEAL_MULTIPLIER[draft.tier])
        draft.heal_target_id = draft.attacker.instance_id
        draft.log(f"{draft.attacker.name} heals {draft.heal_amount} HP!", "heal")
        draft.trigger()


def _offense_lifesteal(draft: _AttackDraft) -> None:
    draft.heal_amount = math.floor(draft.damage * LIFESTEAL_FRACTION[draft.tier])
    draft.heal_target_id = draft.attacker.instance_id
    draft.log(f"{draft.attacker.name} steals {draft.heal_amount} HP!", "heal")
    draft.trigger()


def _offense_stun(draft: _AttackDraft) -> None:
    if draft.roll >= STUN_THRESHOLD[draft.tier]:
        draft.is_stun = True
        draft.log(f"{draft.attacker.name} stuns the enemy!", "info")
        draft.trigger()


def _offense_speed(draft: _AttackDraft) -> None:
    if draft.roll >= SPEED_THRESHOLD[draft.tier]:
        draft.is_speed = True
        draft.log(f"{draft.attacker.name} attacks with lightning speed!", "crit")
        draft.trigger()


def _offense_none(draft: _AttackDraft) -> None:
    return None


_OFFENSE_HANDLERS: Dict[AbilityEffect, Callable[[_AttackDraft], None]] = {
    AbilityEffect.CRIT: _offense_crit,
    AbilityEffect.BLEED: _offense_bleed,
    AbilityEffect.HEAL: _offense_heal,
    AbilityEffect.LIFESTEAL: _offense_lifesteal,
    AbilityEffect.STUN: _offense_stun,
    AbilityEffect.SPEED: _offense_speed,
    AbilityEffect.SHIELD: _offense_none,
    AbilityEffect.ARMOR: _offense_none,
}


def resolve_ability(
    attacker: Combatant,
    roll: int,
    base_damage: int,
    silenced: bool,
    *,
    crit_threshold_reduction: int = 0,
) -> AbilityOutcome:
    """
    Resolve the attacker's offensive ability for a d20 ``roll``.

    Exactly one branch runs, selected by the attacker's ability effect. Safe to call
    speculatively: nothing outside the returned outcome is touched.
    """
    if silenced:
        return AbilityOutcome(
            damage=base_damage,
            log_messages=(LogMessage(text=f"{attacker.name}'s ability is silenced!", kind="info"),),
        )

    draft = _AttackDraft(
        attacker=attacker,
        roll=roll,
        tier=attacker.elite.effective_tier,
        crit_threshold_reduction=max(0, crit_threshold_reduction),
        damage=base_damage,
    )
    _OFFENSE_HANDLERS[attacker.ability.effect](draft)
    return draft.freeze()


def _defense_shield(defender: Combatant, damage: int, tier: int, draw: Draw) -> DefenseOutcome:
    if draw() < SHIELD_CHANCE[tier]:
        blocked = math.floor(damage * 0.5)
        return DefenseOutcome(
            actual_damage=blocked,
            log_messages=(LogMessage(text=f"{defender.name}'s shield blocks half the damage!", kind="info"),),
        )
    return DefenseOutcome(actual_damage=damage)


def _defense_armor(defender: Combatant, damage: int, tier: int, draw: Draw) -> DefenseOutcome:
    reduction = ARMOR_REDUCTION[tier]
    return DefenseOutcome(
        actual_damage=max(1, damage - reduction),
        log_messages=(LogMessage(text=f"{defender.name}'s armor absorbs {reduction} damage!", kind="info"),),
    )


_DEFENSE_HANDLERS: Dict[AbilityEffect, Callable[[Combatant, int, int, Draw], DefenseOutcome]] = {
    AbilityEffect.SHIELD: _defense_shield,
    AbilityEffect.ARMOR: _defense_armor,
}


def resolve_defense(
    defender: Combatant,
    incoming_damage: int,
    silenced: bool,
    *,
    draw: Draw | None = None,
) -> DefenseOutcome:
    """
    Apply the defender's shield or armor to ``incoming_damage``.

    ``draw`` must be the run RNG inside a seeded run; ``None`` uses the unseeded
    module generator and is meant for ad hoc battles only. Only the shield branch
    consumes a draw.
    """
    if silenced:
        return DefenseOutcome(actual_damage=incoming_damage)
    handler = _DEFENSE_HANDLERS.get(defender.ability.effect)
    if handler is None:
        return DefenseOutcome(actual_damage=incoming_damage)
    return handler(defender, incoming_damage, defender.elite.effective_tier, draw or random.random)
