"""Boons repository."""
from __future__ import annotations

from typing import Dict

from talonrun.data.errors import DataValidationError
from talonrun.data.repositories.base import RepositoryBase
from talonrun.domain.defs import BoonDef, BoonParams
from talonrun.domain.defs.boon_def import BOON_EFFECT_KINDS, BOON_RARITIES


class BoonsRepository(RepositoryBase[BoonDef]):
    """Loads and validates the boon catalog, preserving declaration order."""

    def __init__(self, base_path=None) -> None:
        super().__init__("boons.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, BoonDef]:
        boons: Dict[str, BoonDef] = {}
        for raw_id, payload in raw.items():
            context = f"boon '{raw_id}'"
            boon_data = self._require_mapping(payload, context)
            self._assert_required(boon_data, {"name", "description", "rarity", "effect", "max_stacks"}, context)
            max_stacks = self._require_int(boon_data["max_stacks"], f"{context} max_stacks")
            if max_stacks < 1:
                raise DataValidationError(f"{context} max_stacks must be at least 1.")
            boons[raw_id] = BoonDef(
                id=raw_id,
                name=self._require_str(boon_data["name"], f"{context} name"),
                description=self._require_str(boon_data["description"], f"{context} description"),
                rarity=self._require_choice(boon_data["rarity"], BOON_RARITIES, f"{context} rarity"),  # type: ignore[arg-type]
                effect=self._require_choice(boon_data["effect"], BOON_EFFECT_KINDS, f"{context} effect"),  # type: ignore[arg-type]
                max_stacks=max_stacks,
                params=self._parse_params(boon_data.get("params"), BoonParams, f"{context} params"),
            )
        return boons

    def all(self) -> list[BoonDef]:
        """Return boons in catalog declaration order (the aggregation order)."""
        return self.in_file_order()
