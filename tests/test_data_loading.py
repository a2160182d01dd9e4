import json
from pathlib import Path

import pytest

from talonrun.data.errors import DataLoadError, DataValidationError
from talonrun.data.repositories import (
    BoonsRepository,
    CreaturesRepository,
    EnemiesRepository,
    MedalsRepository,
)
from talonrun.domain.defs import AbilityEffect


def test_default_boon_catalog_in_declaration_order() -> None:
    boons = BoonsRepository().all()
    assert len(boons) == 12
    assert [boon.id for boon in boons[:3]] == ["sharpened-claws", "thick-hide", "iron-fur"]
    assert boons[-1].id == "fortune-favor"
    assert {boon.rarity for boon in boons} == {"Common", "Rare", "Legendary"}
    assert BoonsRepository().get("keen-eye").params.crit_threshold_reduction == 2


def test_default_enemy_roster() -> None:
    repo = EnemiesRepository()
    bosses = {enemy.id: enemy for enemy in repo.bosses()}
    assert set(bosses) == {"talon-queen", "apex-raptor"}
    assert bosses["talon-queen"].stage_range == (10, 10)
    assert bosses["talon-queen"].ability.params.revive_hp_fraction == pytest.approx(0.4)
    condor = repo.get("storm-condor")
    assert condor.ability.params.silences is True
    assert condor.ability.params.cooldown == 3


def test_default_creatures_cover_every_ability() -> None:
    creatures = CreaturesRepository().all()
    assert {creature.ability.effect for creature in creatures} == set(AbilityEffect)


def test_default_medals() -> None:
    medals = MedalsRepository().all()
    assert len(medals) == 6
    assert medals[0].id == "jungle-survivor"
    assert medals[0].requirement_kind == "complete_run"


def test_boons_repo_loads_custom_catalog(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(
        definitions_dir / "boons.json",
        {
            "b-two": _boon("Common", "atk_boost", {"atk_boost": 1}),
            "a-one": _boon("Rare", "lifesteal", {"lifesteal_fraction": 1}),
        },
    )
    repo = BoonsRepository(base_path=definitions_dir)
    boons = repo.all()
    assert [boon.id for boon in boons] == ["b-two", "a-one"]
    assert boons[1].params.lifesteal_fraction == 1.0
    assert isinstance(boons[1].params.lifesteal_fraction, float)


@pytest.mark.parametrize(
    "boon",
    [
        {"name": "X", "description": "d", "rarity": "Epic", "effect": "atk_boost", "max_stacks": 1},
        {"name": "X", "description": "d", "rarity": "Common", "effect": "fly", "max_stacks": 1},
        {"name": "X", "description": "d", "rarity": "Common", "effect": "atk_boost", "max_stacks": 0},
        {"name": "X", "description": "d", "rarity": "Common", "effect": "atk_boost", "max_stacks": 1, "params": {"speed": 2}},
        {"name": "X", "description": "d", "rarity": "Common", "effect": "atk_boost", "max_stacks": 1, "params": {"atk_boost": 1.5}},
        {"name": "X", "rarity": "Common", "effect": "atk_boost", "max_stacks": 1},
    ],
)
def test_boons_repo_rejects_invalid_entries(tmp_path: Path, boon: dict) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(definitions_dir / "boons.json", {"bad": boon})
    with pytest.raises(DataValidationError):
        BoonsRepository(base_path=definitions_dir).all()


def test_enemies_repo_rejects_reversed_stage_range(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(
        definitions_dir / "enemies.json",
        {
            "bird": {
                "name": "Bird",
                "hp": 10,
                "attack": 2,
                "defense": 0,
                "speed": 1,
                "tier": 1,
                "stage_range": [5, 2],
                "is_boss": False,
                "ability": {"name": "Peck", "description": "", "effect": "dodge"},
            }
        },
    )
    with pytest.raises(DataValidationError):
        EnemiesRepository(base_path=definitions_dir).all()


def test_creatures_repo_get_missing_raises(tmp_path: Path) -> None:
    definitions_dir = _make_definitions_dir(tmp_path)
    _write_json(
        definitions_dir / "creatures.json",
        {"tom": {"name": "Tom", "rarity": "Rare", "hp": 40, "attack": 8, "ability": {"name": "Pounce", "effect": "crit"}}},
    )
    repo = CreaturesRepository(base_path=definitions_dir)
    assert repo.get("tom").ability.effect is AbilityEffect.CRIT
    with pytest.raises(KeyError):
        repo.get("missing")


def test_missing_file_raises_load_error(tmp_path: Path) -> None:
    with pytest.raises(DataLoadError):
        MedalsRepository(base_path=tmp_path).all()


def test_invalid_json_raises_load_error(tmp_path: Path) -> None:
    (tmp_path / "boons.json").write_text("{oops", encoding="utf-8")
    with pytest.raises(DataLoadError):
        BoonsRepository(base_path=tmp_path).all()


def _boon(rarity: str, effect: str, params: dict) -> dict:
    return {"name": "Boon", "description": "d", "rarity": rarity, "effect": effect, "max_stacks": 2, "params": params}


def _make_definitions_dir(tmp_path: Path) -> Path:
    definitions_dir = tmp_path / "definitions"
    definitions_dir.mkdir()
    return definitions_dir


def _write_json(path: Path, payload: dict) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")
