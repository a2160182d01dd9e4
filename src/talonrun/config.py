"""Run rules configuration with JSON overrides."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

RULES_ENV_VAR = "TALONRUN_RULES"


@dataclass(frozen=True, slots=True)
class RunRules:
    """Structural constants of an expedition."""

    total_stages: int = 20
    boss_stages: tuple[int, ...] = (10, 20)
    healing_spring_stages: tuple[int, ...] = (5, 15)
    healing_spring_fraction: float = 0.15
    stage_scaling_factor: float = 0.08
    max_battle_turns: int = 60
    turn_duration_ms: int = 1500

    @property
    def final_stage(self) -> int:
        return self.total_stages


DEFAULT_RULES = RunRules()


def _coerce_field(value: object, default: Any) -> Any:
    if isinstance(default, tuple):
        if isinstance(value, list) and all(isinstance(v, int) and not isinstance(v, bool) for v in value):
            return tuple(value)
        return default
    if isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return default
    if isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
        return default
    return default


def _within_bounds(name: str, value: Any, total_stages: int) -> bool:
    if name == "healing_spring_fraction":
        return 0.0 <= value <= 1.0
    if name == "stage_scaling_factor":
        return value >= 0.0
    if name in ("boss_stages", "healing_spring_stages"):
        return all(1 <= stage <= total_stages for stage in value)
    return True


def rules_from_mapping(raw: Dict[str, object]) -> RunRules:
    """Build rules from a mapping, keeping defaults for missing, malformed or out-of-range keys."""
    values: Dict[str, Any] = {}
    unknown = sorted(set(raw) - {spec.name for spec in fields(RunRules)})
    if unknown:
        logger.warning("Ignoring unknown rules keys: %s", ", ".join(unknown))
    for spec in fields(RunRules):
        default = getattr(DEFAULT_RULES, spec.name)
        if spec.name in raw:
            value = _coerce_field(raw[spec.name], default)
            total_stages = values.get("total_stages", DEFAULT_RULES.total_stages)
            if value is not default and not _within_bounds(spec.name, value, total_stages):
                value = default
            values[spec.name] = value
            if values[spec.name] is default and raw[spec.name] != default:
                logger.warning("Ignoring invalid rules value for %s: %r", spec.name, raw[spec.name])
        else:
            values[spec.name] = default
    total_stages = values["total_stages"]
    for name in ("boss_stages", "healing_spring_stages"):
        values[name] = tuple(stage for stage in values[name] if stage <= total_stages)
    return RunRules(**values)


def get_default_rules_path() -> Path | None:
    raw_path = os.environ.get(RULES_ENV_VAR)
    return Path(raw_path) if raw_path else None


def load_rules(path: Path | None = None) -> RunRules:
    """Load rules from disk or return defaults."""
    rules_path = path or get_default_rules_path()
    if rules_path is None:
        return DEFAULT_RULES
    try:
        raw = json.loads(rules_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return DEFAULT_RULES
    except (OSError, ValueError):
        logger.warning("Unreadable rules file %s; using defaults.", rules_path)
        return DEFAULT_RULES
    if not isinstance(raw, dict):
        return DEFAULT_RULES
    return rules_from_mapping(raw)


def save_rules(rules: RunRules, path: Path) -> None:
    """Persist rules to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {key: list(value) if isinstance(value, tuple) else value for key, value in asdict(rules).items()}
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
