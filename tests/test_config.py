import json
from pathlib import Path

from talonrun.config import DEFAULT_RULES, RULES_ENV_VAR, RunRules, load_rules, rules_from_mapping, save_rules


def test_load_rules_defaults_when_no_file(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv(RULES_ENV_VAR, raising=False)
    assert load_rules() == DEFAULT_RULES
    assert load_rules(tmp_path / "missing.json") == DEFAULT_RULES


def test_default_rules_shape() -> None:
    assert DEFAULT_RULES.total_stages == 20
    assert DEFAULT_RULES.final_stage == 20
    assert DEFAULT_RULES.boss_stages == (10, 20)
    assert DEFAULT_RULES.healing_spring_stages == (5, 15)


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    rules = RunRules(total_stages=12, boss_stages=(6, 12), healing_spring_stages=(5,), healing_spring_fraction=0.25)
    path = tmp_path / "nested" / "rules.json"
    save_rules(rules, path)
    assert load_rules(path) == rules


def test_env_var_selects_rules_file(monkeypatch, tmp_path: Path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"total_stages": 8}), encoding="utf-8")
    monkeypatch.setenv(RULES_ENV_VAR, str(path))
    assert load_rules().total_stages == 8


def test_invalid_values_fall_back_to_defaults() -> None:
    rules = rules_from_mapping(
        {"total_stages": -4, "max_battle_turns": True, "boss_stages": ["ten"], "stage_scaling_factor": 0.1}
    )
    assert rules.total_stages == 20
    assert rules.max_battle_turns == 60
    assert rules.boss_stages == (10, 20)
    assert rules.stage_scaling_factor == 0.1


def test_unreadable_file_returns_defaults(tmp_path: Path) -> None:
    path = tmp_path / "rules.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_rules(path) == DEFAULT_RULES
    path.write_text("[1, 2]", encoding="utf-8")
    assert load_rules(path) == DEFAULT_RULES


def test_out_of_range_values_fall_back_to_defaults() -> None:
    rules = rules_from_mapping(
        {
            "healing_spring_fraction": -3.0,
            "stage_scaling_factor": -0.5,
            "boss_stages": [0, 20],
            "healing_spring_stages": [5, 21],
        }
    )
    assert rules.healing_spring_fraction == 0.15
    assert rules.stage_scaling_factor == 0.08
    assert rules.boss_stages == (10, 20)
    assert rules.healing_spring_stages == (5, 15)
    assert rules_from_mapping({"healing_spring_fraction": 1.5}).healing_spring_fraction == 0.15


def test_stage_lists_are_checked_against_overridden_length() -> None:
    rules = rules_from_mapping({"total_stages": 12, "boss_stages": [6, 12], "healing_spring_stages": [3, 13]})
    assert rules.boss_stages == (6, 12)
    assert rules.healing_spring_stages == (5,)


def test_default_stage_lists_are_clipped_to_total_stages() -> None:
    rules = rules_from_mapping({"total_stages": 8})
    assert rules.boss_stages == ()
    assert rules.healing_spring_stages == (5,)


def test_in_range_fraction_edges_are_kept() -> None:
    assert rules_from_mapping({"healing_spring_fraction": 0}).healing_spring_fraction == 0.0
    assert rules_from_mapping({"healing_spring_fraction": 1}).healing_spring_fraction == 1.0
    assert rules_from_mapping({"stage_scaling_factor": 0}).stage_scaling_factor == 0.0


def test_squad_size_is_not_configurable() -> None:
    rules = rules_from_mapping({"squad_size": 2})
    assert rules == DEFAULT_RULES
    assert not hasattr(rules, "squad_size")
