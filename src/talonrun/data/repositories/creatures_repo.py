"""Creature roster repository."""
from __future__ import annotations

from typing import Dict

from talonrun.data.errors import DataValidationError
from talonrun.data.repositories.base import RepositoryBase
from talonrun.domain.defs import AbilityDef, AbilityEffect, CreatureDef

_CREATURE_RARITIES = ("Common", "Uncommon", "Rare", "Epic", "Legendary", "Mythical")
_ABILITY_EFFECTS = tuple(effect.value for effect in AbilityEffect)


class CreaturesRepository(RepositoryBase[CreatureDef]):
    """Loads and validates creature definitions."""

    def __init__(self, base_path=None) -> None:
        super().__init__("creatures.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, CreatureDef]:
        creatures: Dict[str, CreatureDef] = {}
        for raw_id, payload in raw.items():
            context = f"creature '{raw_id}'"
            data = self._require_mapping(payload, context)
            self._assert_required(data, {"name", "rarity", "hp", "attack", "ability"}, context)
            hp = self._require_int(data["hp"], f"{context} hp")
            if hp <= 0:
                raise DataValidationError(f"{context} hp must be positive.")
            ability_data = self._require_mapping(data["ability"], f"{context} ability")
            self._assert_required(ability_data, {"name", "effect"}, f"{context} ability")
            effect = self._require_choice(ability_data["effect"], _ABILITY_EFFECTS, f"{context} ability effect")
            creatures[raw_id] = CreatureDef(
                id=raw_id,
                name=self._require_str(data["name"], f"{context} name"),
                rarity=self._require_choice(data["rarity"], _CREATURE_RARITIES, f"{context} rarity"),  # type: ignore[arg-type]
                base_hp=hp,
                base_attack=self._require_int(data["attack"], f"{context} attack"),
                ability=AbilityDef(
                    name=self._require_str(ability_data["name"], f"{context} ability name"),
                    effect=AbilityEffect(effect),
                    description=self._require_str(ability_data.get("description", ""), f"{context} ability description"),
                ),
            )
        return creatures
