"""Console entry point that auto-plays a full expedition."""
from __future__ import annotations

import argparse
import json
import logging
import time
from pathlib import Path
from typing import Sequence

from talonrun.config import load_rules
from talonrun.core.rng import derive_run_seed
from talonrun.core.types import TERMINAL_PHASES
from talonrun.data.repositories import (
    BoonsRepository,
    CreaturesRepository,
    EnemiesRepository,
    MedalsRepository,
)
from talonrun.domain.boons import BoonOffering
from talonrun.domain.records import RunRecords, newly_unlocked_medals
from talonrun.domain.run_state import RunState
from talonrun.services import (
    ActionResult,
    ExpeditionService,
    FactoryError,
    RunSaveService,
    StageBattleService,
)
from talonrun.services.factories import create_squad_from_ids

from .render import (
    debug_enabled,
    format_offering,
    format_squad_line,
    format_stage_line,
    render_bullet_lines,
    render_heading,
    render_score,
)

logger = logging.getLogger(__name__)

DEFAULT_SQUAD = ("tabby-striker", "guardian-tom", "moon-mender")
_RARITY_RANK = {"Common": 0, "Rare": 1, "Legendary": 2}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="talonrun", description="Auto-play a seeded expedition run.")
    parser.add_argument("--seed", type=int, default=None, help="Run seed (derived from squad and start time if omitted).")
    parser.add_argument(
        "--squad",
        nargs="+",
        default=list(DEFAULT_SQUAD),
        metavar="CREATURE_ID",
        help="Creature ids forming the squad.",
    )
    parser.add_argument("--rules", type=Path, default=None, help="JSON file overriding run rules.")
    parser.add_argument("--greedy", action="store_true", help="Always pick the rarest offered boon.")
    parser.add_argument("--save", type=Path, default=None, help="Write the final run payload to this path.")
    parser.add_argument("--started-at", type=int, default=None, help="Start timestamp in ms (defaults to now).")
    return parser


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug_enabled() else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Play one expedition and return a process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging()

    rules = load_rules(args.rules)
    boons_repo = BoonsRepository()
    expedition = ExpeditionService(boons_repo, rules=rules)
    battles = StageBattleService(EnemiesRepository(), boons_repo, rules=rules)

    try:
        squad = create_squad_from_ids(args.squad, CreaturesRepository())
    except FactoryError as exc:
        print(f"Error: {exc}")
        return 2

    started_at = args.started_at if args.started_at is not None else int(time.time() * 1000)
    seed = args.seed if args.seed is not None else derive_run_seed([m.instance_id for m in squad], started_at)

    started = expedition.start_run(squad, seed=seed, started_at=started_at)
    if not started.ok or started.state is None:
        print(f"Cannot start run: {started.reason}")
        return 2
    state = started.state
    print(f"Expedition {state.run_id} started with seed {seed}.")

    state = _play(expedition, battles, state, greedy=args.greedy)

    summary = expedition.finish_run(state)
    assert summary is not None
    render_heading("Result")
    print(f"{summary.outcome.title()} after {summary.stages_cleared} stages.")
    print(format_squad_line(state.squad))
    render_score(summary.score)

    medals = newly_unlocked_medals(MedalsRepository().all(), RunRecords(), state, summary.score, ())
    if medals:
        render_heading("Medals")
        render_bullet_lines(f"{medal.name}: {medal.description}" for medal in medals)

    if args.save is not None:
        payload = RunSaveService(boons_repo).serialize(state)
        args.save.parent.mkdir(parents=True, exist_ok=True)
        args.save.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        print(f"Run saved to {args.save}.")
    return 0


def _play(
    expedition: ExpeditionService,
    battles: StageBattleService,
    state: RunState,
    *,
    greedy: bool,
) -> RunState:
    clock = state.started_at
    while state.phase not in TERMINAL_PHASES:
        if state.phase == "pre_battle":
            state = _require_ok(expedition.begin_battle(state))
        elif state.phase == "in_battle":
            report = battles.run_stage(state, started_at=clock)
            clock = report.result.end_time
            print(format_stage_line(report.result, report.victory))
            state = _require_ok(expedition.complete_stage(report.state, report.result))
        elif state.phase == "stage_cleared":
            if state.last_boon_stage == state.current_stage:
                state = _require_ok(expedition.advance_stage(state))
            else:
                state = _require_ok(expedition.offer_boons(state))
        elif state.phase == "boon_select":
            offering = state.current_boon_offering
            assert offering is not None
            boon_id = _pick_boon(offering, greedy=greedy)
            print(f"  Offered: {format_offering(offering)} -> {boon_id}")
            state = _require_ok(expedition.choose_boon(state, boon_id))
        elif state.phase == "healing_spring":
            print(f"  Healing spring: {format_squad_line(state.squad)}")
            state = _require_ok(expedition.advance_stage(state))
    return state


def _pick_boon(offering: BoonOffering, *, greedy: bool) -> str:
    if not greedy:
        return offering.boons[0].id
    best = max(offering.boons, key=lambda boon: _RARITY_RANK.get(boon.rarity, 0))
    return best.id


def _require_ok(result: ActionResult) -> RunState:
    if not result.ok or result.state is None:
        raise RuntimeError(f"Expedition action rejected: {result.reason}")
    if result.reason:
        logger.info("Expedition action note: %s", result.reason)
    return result.state


__all__ = ["build_parser", "main"]
