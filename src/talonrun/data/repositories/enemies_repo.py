"""Enemies repository."""
from __future__ import annotations

from typing import Dict

from talonrun.data.errors import DataValidationError
from talonrun.data.repositories.base import RepositoryBase
from talonrun.domain.defs import EnemyAbilityDef, EnemyAbilityParams, EnemyDef
from talonrun.domain.defs.enemy_def import ENEMY_ABILITY_EFFECTS


class EnemiesRepository(RepositoryBase[EnemyDef]):
    """Loads and validates the expedition enemy roster."""

    def __init__(self, base_path=None) -> None:
        super().__init__("enemies.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, EnemyDef]:
        enemies: Dict[str, EnemyDef] = {}
        for raw_id, payload in raw.items():
            context = f"enemy '{raw_id}'"
            enemy_data = self._require_mapping(payload, context)
            required_fields = {"name", "hp", "attack", "defense", "speed", "tier", "stage_range", "is_boss", "ability"}
            self._assert_required(enemy_data, required_fields, context)

            enemies[raw_id] = EnemyDef(
                id=raw_id,
                name=self._require_str(enemy_data["name"], f"{context} name"),
                base_hp=self._require_int(enemy_data["hp"], f"{context} hp"),
                base_attack=self._require_int(enemy_data["attack"], f"{context} attack"),
                defense=self._require_int(enemy_data["defense"], f"{context} defense"),
                speed=self._require_int(enemy_data["speed"], f"{context} speed"),
                tier=self._require_int(enemy_data["tier"], f"{context} tier"),
                stage_range=self._parse_stage_range(enemy_data["stage_range"], context),
                is_boss=self._require_bool(enemy_data["is_boss"], f"{context} is_boss"),
                ability=self._parse_ability(enemy_data["ability"], context),
            )
        return enemies

    def bosses(self) -> list[EnemyDef]:
        return [enemy for enemy in self.all() if enemy.is_boss]

    def _parse_stage_range(self, value: object, context: str) -> tuple[int, int]:
        if not isinstance(value, list) or len(value) != 2:
            raise DataValidationError(f"{context} stage_range must be a [low, high] list.")
        low = self._require_int(value[0], f"{context} stage_range[0]")
        high = self._require_int(value[1], f"{context} stage_range[1]")
        if low > high:
            raise DataValidationError(f"{context} stage_range low must not exceed high.")
        return (low, high)

    def _parse_ability(self, value: object, context: str) -> EnemyAbilityDef:
        ability_context = f"{context} ability"
        ability_data = self._require_mapping(value, ability_context)
        self._assert_required(ability_data, {"name", "description", "effect"}, ability_context)
        return EnemyAbilityDef(
            name=self._require_str(ability_data["name"], f"{ability_context} name"),
            description=self._require_str(ability_data["description"], f"{ability_context} description"),
            effect=self._require_choice(ability_data["effect"], ENEMY_ABILITY_EFFECTS, f"{ability_context} effect"),  # type: ignore[arg-type]
            params=self._parse_params(ability_data.get("params"), EnemyAbilityParams, f"{ability_context} params"),
        )
