"""Serialization helpers for persisting and resuming runs."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping

from talonrun.core.rng import RNG
from talonrun.core.types import RunPhase
from talonrun.data.repositories import BoonsRepository
from talonrun.domain.boons import OFFERING_SIZE, ActiveBoon, BoonOffering
from talonrun.domain.defs import AbilityDef, AbilityEffect
from talonrun.domain.entities import Combatant, EliteStatus
from talonrun.domain.run_state import PHASE_TRANSITIONS, RunState, StageResult
from talonrun.services.errors import SaveLoadError

SavePayload = Dict[str, Any]
_VALID_PHASES: tuple[RunPhase, ...] = tuple(PHASE_TRANSITIONS)
_CREATURE_RARITIES = ("Common", "Uncommon", "Rare", "Epic", "Legendary", "Mythical")


class RunSaveService:
    """Converts a run to/from a validated, versioned, JSON-safe payload."""

    SAVE_VERSION = 1

    def __init__(self, boons_repo: BoonsRepository) -> None:
        self._boons_repo = boons_repo

    def serialize(self, state: RunState) -> SavePayload:
        """Return a JSON-serializable payload; the RNG is stored as (seed, calls) only."""
        offering = state.current_boon_offering
        return {
            "save_version": self.SAVE_VERSION,
            "rng": {"seed": state.seed, "calls": state.prng_call_count},
            "run": {
                "run_id": state.run_id,
                "phase": state.phase,
                "current_stage": state.current_stage,
                "started_at": state.started_at,
                "squad": [self._serialize_member(member) for member in state.squad],
                "active_boons": [{"boon_id": boon.boon_id, "stacks": boon.stacks} for boon in state.active_boons],
                "stage_results": [self._serialize_result(result) for result in state.stage_results],
                "current_boon_offering": None
                if offering is None
                else {
                    "boon_ids": [boon.id for boon in offering.boons],
                    "was_guaranteed_rare": offering.was_guaranteed_rare,
                },
                "consecutive_all_common_offerings": state.consecutive_all_common_offerings,
                "boss_revived": dict(state.boss_revived),
                "last_boon_stage": state.last_boon_stage,
            },
        }

    def deserialize(self, payload: Mapping[str, Any]) -> RunState:
        """Rebuild a RunState from a persisted payload."""
        if not isinstance(payload, Mapping):
            raise SaveLoadError("Save data must be a JSON object.")
        if payload.get("save_version") != self.SAVE_VERSION:
            raise SaveLoadError("Unsupported run save version.")
        rng_payload = payload.get("rng")
        run_payload = payload.get("run")
        if not isinstance(rng_payload, Mapping) or not isinstance(run_payload, Mapping):
            raise SaveLoadError("Save data is missing required sections.")

        seed = self._require_int(rng_payload.get("seed"), "rng.seed")
        calls = self._require_non_negative_int(rng_payload.get("calls"), "rng.calls")
        phase = run_payload.get("phase")
        if phase not in _VALID_PHASES:
            raise SaveLoadError(f"Invalid phase value: {phase}")

        squad_payload = run_payload.get("squad")
        if not isinstance(squad_payload, list):
            raise SaveLoadError("run.squad must be a list.")

        return RunState(
            run_id=self._require_str(run_payload.get("run_id"), "run.run_id"),
            seed=seed,
            phase=phase,
            current_stage=self._require_non_negative_int(run_payload.get("current_stage"), "run.current_stage"),
            squad=[self._coerce_member(entry, f"run.squad[{index}]") for index, entry in enumerate(squad_payload)],
            started_at=self._require_int(run_payload.get("started_at"), "run.started_at"),
            active_boons=self._coerce_active_boons(run_payload.get("active_boons")),
            stage_results=self._coerce_results(run_payload.get("stage_results")),
            current_boon_offering=self._coerce_offering(run_payload.get("current_boon_offering")),
            consecutive_all_common_offerings=self._require_non_negative_int(
                run_payload.get("consecutive_all_common_offerings"), "run.consecutive_all_common_offerings"
            ),
            prng_call_count=calls,
            boss_revived=self._coerce_bool_dict(run_payload.get("boss_revived"), "run.boss_revived"),
            last_boon_stage=self._require_non_negative_int(run_payload.get("last_boon_stage"), "run.last_boon_stage"),
        )

    @staticmethod
    def restore_rng(state: RunState) -> RNG:
        """Replay the run generator to the stored position."""
        return RNG.from_state({"seed": state.seed, "calls": state.prng_call_count})

    @staticmethod
    def _serialize_member(member: Combatant) -> Dict[str, Any]:
        return {
            "instance_id": member.instance_id,
            "name": member.name,
            "creature_id": member.creature_id,
            "rarity": member.rarity,
            "ability": {
                "name": member.ability.name,
                "effect": member.ability.effect.value,
                "description": member.ability.description,
            },
            "base_max_hp": member.base_max_hp,
            "base_attack": member.base_attack,
            "current_hp": member.current_hp,
            "max_hp": member.max_hp,
            "current_attack": member.current_attack,
            "elite": {"is_elite": member.elite.is_elite, "elite_tier": member.elite.elite_tier},
            "knocked_out": member.knocked_out,
        }

    @staticmethod
    def _serialize_result(result: StageResult) -> Dict[str, Any]:
        return {
            "stage_index": result.stage_index,
            "hp_remaining": dict(result.hp_remaining),
            "start_time": result.start_time,
            "end_time": result.end_time,
            "flawless": result.flawless,
            "boss_defeated": result.boss_defeated,
            "enemy_id": result.enemy_id,
            "enemy_name": result.enemy_name,
            "turns_elapsed": result.turns_elapsed,
            "knocked_out_ids": list(result.knocked_out_ids),
        }

    def _coerce_member(self, value: Any, context: str) -> Combatant:
        data = self._require_dict(value, context)
        ability = self._require_dict(data.get("ability"), f"{context}.ability")
        effect = ability.get("effect")
        if effect not in tuple(item.value for item in AbilityEffect):
            raise SaveLoadError(f"{context}.ability.effect is invalid: {effect}")
        rarity = data.get("rarity")
        if rarity not in _CREATURE_RARITIES:
            raise SaveLoadError(f"{context}.rarity is invalid: {rarity}")
        elite = self._require_dict(data.get("elite"), f"{context}.elite")
        return Combatant(
            instance_id=self._require_str(data.get("instance_id"), f"{context}.instance_id"),
            name=self._require_str(data.get("name"), f"{context}.name"),
            creature_id=self._require_str(data.get("creature_id"), f"{context}.creature_id"),
            rarity=rarity,
            ability=AbilityDef(
                name=self._require_str(ability.get("name"), f"{context}.ability.name"),
                effect=AbilityEffect(effect),
                description=self._require_str(ability.get("description", ""), f"{context}.ability.description"),
            ),
            base_max_hp=self._require_int(data.get("base_max_hp"), f"{context}.base_max_hp"),
            base_attack=self._require_int(data.get("base_attack"), f"{context}.base_attack"),
            current_hp=self._require_non_negative_int(data.get("current_hp"), f"{context}.current_hp"),
            max_hp=self._require_int(data.get("max_hp"), f"{context}.max_hp"),
            current_attack=self._require_int(data.get("current_attack"), f"{context}.current_attack"),
            elite=EliteStatus(
                is_elite=self._require_bool(elite.get("is_elite"), f"{context}.elite.is_elite"),
                elite_tier=self._require_non_negative_int(elite.get("elite_tier"), f"{context}.elite.elite_tier"),
            ),
            knocked_out=self._require_bool(data.get("knocked_out"), f"{context}.knocked_out"),
        )

    def _coerce_active_boons(self, value: Any) -> List[ActiveBoon]:
        if not isinstance(value, list):
            raise SaveLoadError("run.active_boons must be a list.")
        boons: List[ActiveBoon] = []
        for index, entry in enumerate(value):
            context = f"run.active_boons[{index}]"
            data = self._require_dict(entry, context)
            boons.append(
                ActiveBoon(
                    boon_id=self._require_str(data.get("boon_id"), f"{context}.boon_id"),
                    stacks=self._require_non_negative_int(data.get("stacks"), f"{context}.stacks"),
                )
            )
        return boons

    def _coerce_results(self, value: Any) -> List[StageResult]:
        if not isinstance(value, list):
            raise SaveLoadError("run.stage_results must be a list.")
        results: List[StageResult] = []
        for index, entry in enumerate(value):
            context = f"run.stage_results[{index}]"
            data = self._require_dict(entry, context)
            knocked_out = data.get("knocked_out_ids", [])
            if not isinstance(knocked_out, list) or not all(isinstance(item, str) for item in knocked_out):
                raise SaveLoadError(f"{context}.knocked_out_ids must be a list of strings.")
            results.append(
                StageResult(
                    stage_index=self._require_int(data.get("stage_index"), f"{context}.stage_index"),
                    hp_remaining=self._coerce_int_dict(data.get("hp_remaining"), f"{context}.hp_remaining"),
                    start_time=self._require_int(data.get("start_time"), f"{context}.start_time"),
                    end_time=self._require_int(data.get("end_time"), f"{context}.end_time"),
                    flawless=self._require_bool(data.get("flawless"), f"{context}.flawless"),
                    boss_defeated=self._require_bool(data.get("boss_defeated"), f"{context}.boss_defeated"),
                    enemy_id=self._require_str(data.get("enemy_id", ""), f"{context}.enemy_id"),
                    enemy_name=self._require_str(data.get("enemy_name", ""), f"{context}.enemy_name"),
                    turns_elapsed=self._require_non_negative_int(data.get("turns_elapsed", 0), f"{context}.turns_elapsed"),
                    knocked_out_ids=tuple(knocked_out),
                )
            )
        return results

    def _coerce_offering(self, value: Any) -> BoonOffering | None:
        if value is None:
            return None
        data = self._require_dict(value, "run.current_boon_offering")
        boon_ids = data.get("boon_ids")
        if not isinstance(boon_ids, list) or len(boon_ids) != OFFERING_SIZE:
            raise SaveLoadError(f"run.current_boon_offering.boon_ids must list {OFFERING_SIZE} boons.")
        boons = []
        for boon_id in boon_ids:
            try:
                boons.append(self._boons_repo.get(self._require_str(boon_id, "run.current_boon_offering.boon_ids")))
            except KeyError as exc:
                raise SaveLoadError(f"Unknown boon in saved offering: {boon_id}") from exc
        return BoonOffering(
            boons=(boons[0], boons[1], boons[2]),
            was_guaranteed_rare=self._require_bool(
                data.get("was_guaranteed_rare"), "run.current_boon_offering.was_guaranteed_rare"
            ),
        )

    @staticmethod
    def _require_dict(value: Any, context: str) -> Mapping[str, Any]:
        if not isinstance(value, Mapping):
            raise SaveLoadError(f"{context} must be an object.")
        return value

    @staticmethod
    def _require_str(value: Any, context: str) -> str:
        if not isinstance(value, str):
            raise SaveLoadError(f"{context} must be a string.")
        return value

    @staticmethod
    def _require_int(value: Any, context: str) -> int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise SaveLoadError(f"{context} must be an integer.")
        return value

    @staticmethod
    def _require_bool(value: Any, context: str) -> bool:
        if not isinstance(value, bool):
            raise SaveLoadError(f"{context} must be a boolean.")
        return value

    def _require_non_negative_int(self, value: Any, context: str) -> int:
        value_int = self._require_int(value, context)
        if value_int < 0:
            raise SaveLoadError(f"{context} must be a non-negative integer.")
        return value_int

    def _coerce_bool_dict(self, value: Any, context: str) -> Dict[str, bool]:
        mapping = self._require_dict(value, context)
        result: Dict[str, bool] = {}
        for key, entry in mapping.items():
            if not isinstance(key, str):
                raise SaveLoadError(f"{context} keys must be strings.")
            result[key] = self._require_bool(entry, f"{context}.{key}")
        return result

    def _coerce_int_dict(self, value: Any, context: str) -> Dict[str, int]:
        mapping = self._require_dict(value, context)
        result: Dict[str, int] = {}
        for key, entry in mapping.items():
            if not isinstance(key, str):
                raise SaveLoadError(f"{context} keys must be strings.")
            result[key] = self._require_int(entry, f"{context}.{key}")
        return result
