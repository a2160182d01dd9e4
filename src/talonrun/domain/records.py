"""Lifetime expedition records and medal unlocks."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from talonrun.domain.defs import MedalDef
from talonrun.domain.run_state import RunState
from talonrun.domain.scoring import Score


@dataclass(frozen=True, slots=True)
class RunRecords:
    """Aggregate statistics across finished runs."""

    total_runs: int = 0
    total_runs_completed: int = 0
    best_score: int = 0
    best_stage: int = 0
    total_coins_earned: int = 0
    fastest_completion_ms: int | None = None
    bosses_defeated: tuple[int, ...] = ()
    max_flawless_stages: int = 0


def record_run(records: RunRecords, run_state: RunState, score: Score) -> RunRecords:
    """Return ``records`` updated with one finished run."""
    completed = run_state.phase == "run_complete"
    fastest = records.fastest_completion_ms
    if completed and run_state.stage_results:
        elapsed = run_state.stage_results[-1].end_time - run_state.started_at
        fastest = elapsed if fastest is None else min(fastest, elapsed)

    bosses = set(records.bosses_defeated)
    bosses.update(result.stage_index for result in run_state.stage_results if result.boss_defeated)
    flawless = sum(1 for result in run_state.stage_results if result.flawless)

    return RunRecords(
        total_runs=records.total_runs + 1,
        total_runs_completed=records.total_runs_completed + (1 if completed else 0),
        best_score=max(records.best_score, score.total_score),
        best_stage=max(records.best_stage, run_state.current_stage),
        total_coins_earned=records.total_coins_earned + score.coins_earned,
        fastest_completion_ms=fastest,
        bosses_defeated=tuple(sorted(bosses)),
        max_flawless_stages=max(records.max_flawless_stages, flawless),
    )


def is_medal_unlocked(medal: MedalDef, records: RunRecords) -> bool:
    kind = medal.requirement_kind
    value = medal.requirement_value
    if kind == "complete_run":
        return records.total_runs_completed >= value
    if kind == "reach_stage":
        return records.best_stage >= value
    if kind == "score":
        return records.best_score >= value
    if kind == "boss_kill":
        return value in records.bosses_defeated
    if kind == "flawless":
        return records.max_flawless_stages >= value
    return False


def newly_unlocked_medals(
    medals: Sequence[MedalDef],
    records: RunRecords,
    run_state: RunState,
    score: Score,
    already_unlocked: Iterable[str],
) -> List[MedalDef]:
    """Medals the run would unlock, projected before the run is recorded."""
    projected = record_run(records, run_state, score)
    unlocked = set(already_unlocked)
    return [medal for medal in medals if medal.id not in unlocked and is_medal_unlocked(medal, projected)]
