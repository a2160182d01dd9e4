"""Factory for creating run-scoped squad members."""
from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence

from talonrun.data.repositories import CreaturesRepository
from talonrun.domain.defs import CreatureDef
from talonrun.domain.entities import Combatant, EliteStatus
from talonrun.services.errors import FactoryError

from .id_factory import make_member_id


def create_squad_member(
    creature: CreatureDef,
    instance_id: str,
    *,
    elite: EliteStatus | None = None,
    current_hp: int | None = None,
) -> Combatant:
    """Build a combatant from a creature definition at full (or the given) HP."""
    hp = creature.base_hp if current_hp is None else max(0, min(creature.base_hp, current_hp))
    return Combatant(
        instance_id=instance_id,
        name=creature.name,
        creature_id=creature.id,
        rarity=creature.rarity,
        ability=creature.ability,
        base_max_hp=creature.base_hp,
        base_attack=creature.base_attack,
        current_hp=hp,
        max_hp=creature.base_hp,
        current_attack=creature.base_attack,
        elite=elite or EliteStatus(),
        knocked_out=hp <= 0,
    )


def create_squad_from_ids(
    creature_ids: Sequence[str],
    creatures_repo: CreaturesRepository,
) -> List[Combatant]:
    """Instantiate one fresh combatant per creature id, in order."""
    squad: List[Combatant] = []
    for slot, creature_id in enumerate(creature_ids):
        try:
            creature = creatures_repo.get(creature_id)
        except KeyError as exc:
            raise FactoryError(f"Creature '{creature_id}' not found.") from exc
        squad.append(create_squad_member(creature, make_member_id(creature_id, slot)))
    return squad


def snapshot_squad(squad: Sequence[Combatant]) -> List[Combatant]:
    """
    Independent copies of roster combatants for a new run.

    The snapshot's base stats are the roster's current max HP and attack, so
    run-scoped boon bonuses never leak back into the roster.
    """
    return [
        replace(
            member,
            base_max_hp=member.max_hp,
            base_attack=member.current_attack,
            knocked_out=member.knocked_out or member.current_hp <= 0,
        )
        for member in squad
    ]
