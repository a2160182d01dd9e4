import json
from pathlib import Path

from talonrun.presentation.cli.app import build_parser, main


def test_parser_defaults() -> None:
    args = build_parser().parse_args([])
    assert args.seed is None
    assert args.squad == ["tabby-striker", "guardian-tom", "moon-mender"]
    assert args.greedy is False


def test_main_plays_run_and_saves(tmp_path: Path, capsys) -> None:
    save_path = tmp_path / "runs" / "run.json"
    exit_code = main(["--seed", "42", "--started-at", "0", "--save", str(save_path)])
    assert exit_code == 0
    payload = json.loads(save_path.read_text(encoding="utf-8"))
    assert payload["save_version"] == 1
    assert payload["run"]["phase"] in ("run_complete", "run_failed")
    assert payload["rng"]["seed"] == 42
    output = capsys.readouterr().out
    assert "Expedition run_0000002a started with seed 42." in output


def test_main_is_deterministic_for_seed(tmp_path: Path) -> None:
    first = tmp_path / "first.json"
    second = tmp_path / "second.json"
    assert main(["--seed", "7", "--started-at", "0", "--greedy", "--save", str(first)]) == 0
    assert main(["--seed", "7", "--started-at", "0", "--greedy", "--save", str(second)]) == 0
    assert first.read_text(encoding="utf-8") == second.read_text(encoding="utf-8")


def test_main_rejects_unknown_creature(capsys) -> None:
    assert main(["--squad", "tabby-striker", "ghost-cat", "moon-mender", "--seed", "1"]) == 2
    assert "ghost-cat" in capsys.readouterr().out


def test_main_rejects_wrong_squad_size(capsys) -> None:
    assert main(["--squad", "tabby-striker", "--seed", "1", "--started-at", "0"]) == 2
    assert "invalid_squad_size" in capsys.readouterr().out
