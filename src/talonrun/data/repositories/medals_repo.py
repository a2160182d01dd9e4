"""Medals repository."""
from __future__ import annotations

from typing import Dict

from talonrun.data.repositories.base import RepositoryBase
from talonrun.domain.defs import MedalDef

_MEDAL_TYPES = ("badge", "border", "title")
_REQUIREMENT_KINDS = ("complete_run", "reach_stage", "score", "boss_kill", "flawless")


class MedalsRepository(RepositoryBase[MedalDef]):
    """Loads cosmetic medal definitions."""

    def __init__(self, base_path=None) -> None:
        super().__init__("medals.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, MedalDef]:
        medals: Dict[str, MedalDef] = {}
        for raw_id, payload in raw.items():
            context = f"medal '{raw_id}'"
            data = self._require_mapping(payload, context)
            self._assert_required(data, {"name", "description", "type", "requirement"}, context)
            requirement = self._require_mapping(data["requirement"], f"{context} requirement")
            self._assert_required(requirement, {"kind", "value"}, f"{context} requirement")
            medals[raw_id] = MedalDef(
                id=raw_id,
                name=self._require_str(data["name"], f"{context} name"),
                description=self._require_str(data["description"], f"{context} description"),
                type=self._require_choice(data["type"], _MEDAL_TYPES, f"{context} type"),  # type: ignore[arg-type]
                requirement_kind=self._require_choice(  # type: ignore[arg-type]
                    requirement["kind"], _REQUIREMENT_KINDS, f"{context} requirement kind"
                ),
                requirement_value=self._require_int(requirement["value"], f"{context} requirement value"),
            )
        return medals

    def all(self) -> list[MedalDef]:
        return self.in_file_order()
