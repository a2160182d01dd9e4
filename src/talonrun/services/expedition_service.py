"""Expedition run state machine."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Sequence, Tuple

from talonrun.config import DEFAULT_RULES, RunRules
from talonrun.core.rng import RNG
from talonrun.core.types import TERMINAL_PHASES, RunAction, RunOutcome, RunPhase
from talonrun.data.repositories import BoonsRepository
from talonrun.domain.boons import (
    apply_boon,
    apply_boon_stats_to_squad,
    calculate_boon_effects,
    count_fortune_stacks,
    generate_boon_offering,
    get_active_stacks,
    get_boon,
)
from talonrun.domain.entities import Combatant
from talonrun.domain.enemy_scaling import is_boss_stage, is_healing_spring_stage
from talonrun.domain.run_state import (
    SQUAD_SIZE,
    RunState,
    StageResult,
    apply_healing_spring,
    apply_stage_result_hp,
    apply_stage_start_healing,
    clone_run_state,
    is_squad_wiped,
    is_valid_transition,
)
from talonrun.domain.scoring import Score, calculate_score
from talonrun.services.factories import make_run_id, snapshot_squad

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunEvent:
    """Base class for run events."""


@dataclass(slots=True)
class RunStartedEvent(RunEvent):
    run_id: str
    seed: int
    member_ids: List[str]


@dataclass(slots=True)
class PhaseChangedEvent(RunEvent):
    run_id: str
    from_phase: RunPhase
    to_phase: RunPhase
    stage: int


@dataclass(slots=True)
class BoonOfferedEvent(RunEvent):
    run_id: str
    stage: int
    boon_ids: List[str]
    was_guaranteed_rare: bool


@dataclass(slots=True)
class BoonChosenEvent(RunEvent):
    run_id: str
    stage: int
    boon_id: str
    stacks: int


@dataclass(slots=True)
class StageCompletedEvent(RunEvent):
    run_id: str
    stage: int
    flawless: bool
    boss_defeated: bool
    knocked_out_ids: List[str]


@dataclass(slots=True)
class RunEndedEvent(RunEvent):
    run_id: str
    outcome: RunOutcome
    stage: int
    abandoned: bool = False


TelemetrySink = Callable[[RunEvent], None]


@dataclass(slots=True)
class ActionResult:
    """
    Outcome of one state machine action.

    On failure ``state`` is the very object that was passed in and ``reason``
    names the rejected rule; on success it is a fresh copy.
    """

    state: RunState | None
    ok: bool
    reason: str | None = None
    events: List[RunEvent] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Rewards and roster updates handed back when a run is finalized."""

    run_id: str
    outcome: RunOutcome
    score: Score
    final_hp: Dict[str, int]
    knocked_out_ids: Tuple[str, ...]
    stages_cleared: int

    @property
    def coins_earned(self) -> int:
        return self.score.coins_earned


class ExpeditionService:
    """Drives a run through its phases; every rule lives in the transition table."""

    def __init__(
        self,
        boons_repo: BoonsRepository,
        rules: RunRules | None = None,
        telemetry: TelemetrySink | None = None,
    ) -> None:
        self._boons_repo = boons_repo
        self._rules = rules or DEFAULT_RULES
        self._telemetry = telemetry

    @property
    def rules(self) -> RunRules:
        return self._rules

    def start_run(
        self,
        squad: Sequence[Combatant],
        *,
        seed: int,
        started_at: int,
        run_id: str | None = None,
    ) -> ActionResult:
        """Snapshot the squad and enter ``pre_battle`` at stage 1."""
        if not is_valid_transition("squad_select", "select_squad"):
            return self._reject(None, "select_squad", "invalid_phase")
        if len(squad) != SQUAD_SIZE:
            return self._reject(None, "select_squad", "invalid_squad_size")
        member_ids = [member.instance_id for member in squad]
        if len(set(member_ids)) != len(member_ids):
            return self._reject(None, "select_squad", "duplicate_member")
        if any(not member.is_alive for member in squad):
            return self._reject(None, "select_squad", "knocked_out_member")

        state = RunState(
            run_id=run_id or make_run_id(seed),
            seed=seed,
            phase="squad_select",
            current_stage=1,
            squad=snapshot_squad(squad),
            started_at=started_at,
        )
        events: List[RunEvent] = [
            RunStartedEvent(run_id=state.run_id, seed=seed, member_ids=member_ids),
            self._change_phase(state, "pre_battle"),
        ]
        logger.info("Run %s started with seed %d", state.run_id, seed)
        return self._succeed(state, events)

    def begin_battle(self, state: RunState) -> ActionResult:
        blocked = self._check(state, "begin_battle")
        if blocked is not None:
            return blocked
        updated = clone_run_state(state)
        return self._succeed(updated, [self._change_phase(updated, "in_battle")])

    def complete_stage(self, state: RunState, result: StageResult) -> ActionResult:
        """
        Apply a reported stage result.

        A wiped squad ends the run without recording the stage; clearing the
        final stage completes the run.
        """
        blocked = self._check(state, "complete_stage")
        if blocked is not None:
            return blocked
        if result.stage_index != state.current_stage:
            return self._reject(state, "complete_stage", "stage_mismatch")
        assert 1 <= state.current_stage <= self._rules.total_stages, "stage index out of range"

        updated = clone_run_state(state)
        updated.squad = apply_stage_result_hp(updated.squad, result)
        events: List[RunEvent] = []

        if is_squad_wiped(updated.squad):
            events.append(self._change_phase(updated, "run_failed"))
            events.append(RunEndedEvent(run_id=updated.run_id, outcome="defeat", stage=updated.current_stage))
            return self._succeed(updated, events)

        if is_boss_stage(result.stage_index, self._rules) and not result.boss_defeated:
            result = replace(result, boss_defeated=True)
        updated.stage_results.append(result)
        knocked_out_ids = [member.instance_id for member in updated.squad if not member.is_alive]
        events.append(
            StageCompletedEvent(
                run_id=updated.run_id,
                stage=result.stage_index,
                flawless=result.flawless,
                boss_defeated=result.boss_defeated,
                knocked_out_ids=knocked_out_ids,
            )
        )
        if updated.current_stage >= self._rules.total_stages:
            events.append(self._change_phase(updated, "run_complete"))
            events.append(RunEndedEvent(run_id=updated.run_id, outcome="victory", stage=updated.current_stage))
        else:
            events.append(self._change_phase(updated, "stage_cleared"))
        return self._succeed(updated, events)

    def offer_boons(self, state: RunState) -> ActionResult:
        """Draw this stage's offering from the run RNG, replayed to its stored position."""
        blocked = self._check(state, "offer_boons")
        if blocked is not None:
            return blocked
        if state.last_boon_stage == state.current_stage:
            return self._reject(state, "offer_boons", "boons_already_offered")

        catalog = self._boons_repo.all()
        rng = RNG(state.seed, state.prng_call_count)
        offering = generate_boon_offering(
            rng.random,
            state.active_boons,
            state.consecutive_all_common_offerings,
            count_fortune_stacks(state.active_boons, catalog),
            catalog=catalog,
        )
        assert rng.calls > state.prng_call_count, "prng_call_count must never move backwards"

        updated = clone_run_state(state)
        updated.prng_call_count = rng.calls
        updated.current_boon_offering = offering
        updated.last_boon_stage = updated.current_stage
        events: List[RunEvent] = [
            BoonOfferedEvent(
                run_id=updated.run_id,
                stage=updated.current_stage,
                boon_ids=[boon.id for boon in offering.boons],
                was_guaranteed_rare=offering.was_guaranteed_rare,
            ),
            self._change_phase(updated, "boon_select"),
        ]
        return self._succeed(updated, events)

    def choose_boon(self, state: RunState, boon_id: str) -> ActionResult:
        blocked = self._check(state, "choose_boon")
        if blocked is not None:
            return blocked
        catalog = self._boons_repo.all()
        if get_boon(catalog, boon_id) is None:
            return self._reject(state, "choose_boon", "unknown_boon")
        offering = state.current_boon_offering
        if offering is None or not offering.contains(boon_id):
            return self._reject(state, "choose_boon", "boon_not_offered")

        updated = clone_run_state(state)
        updated.active_boons = apply_boon(updated.active_boons, boon_id, catalog)
        effects = calculate_boon_effects(updated.active_boons, catalog)
        updated.squad = apply_boon_stats_to_squad(updated.squad, effects)
        updated.consecutive_all_common_offerings = (
            updated.consecutive_all_common_offerings + 1 if offering.is_all_common else 0
        )
        updated.current_boon_offering = None
        events: List[RunEvent] = [
            BoonChosenEvent(
                run_id=updated.run_id,
                stage=updated.current_stage,
                boon_id=boon_id,
                stacks=get_active_stacks(updated.active_boons, boon_id),
            ),
            self._change_phase(updated, "stage_cleared"),
        ]
        return self._succeed(updated, events)

    def advance_stage(self, state: RunState) -> ActionResult:
        """
        Move to the next stage, or leave a healing spring.

        Start-of-stage healing is applied on entering the new stage; spring
        stages restore part of every living member's HP before ``pre_battle``.
        """
        blocked = self._check(state, "advance_stage")
        if blocked is not None:
            return blocked

        updated = clone_run_state(state)
        if state.phase == "healing_spring":
            return self._succeed(updated, [self._change_phase(updated, "pre_battle")])

        updated.current_stage += 1
        assert updated.current_stage <= self._rules.total_stages, "stage index out of range"
        updated.current_boon_offering = None
        effects = calculate_boon_effects(updated.active_boons, self._boons_repo.all())
        updated.squad = apply_stage_start_healing(updated.squad, effects.stage_start_heal)
        if is_healing_spring_stage(updated.current_stage, self._rules):
            updated.squad = apply_healing_spring(updated.squad, self._rules.healing_spring_fraction)
            return self._succeed(updated, [self._change_phase(updated, "healing_spring")])
        return self._succeed(updated, [self._change_phase(updated, "pre_battle")])

    def abandon_run(self, state: RunState) -> ActionResult:
        if not is_valid_transition(state.phase, "abandon"):
            return self._reject(state, "abandon", "invalid_phase")
        updated = clone_run_state(state)
        events: List[RunEvent] = [
            self._change_phase(updated, "run_failed"),
            RunEndedEvent(run_id=updated.run_id, outcome="defeat", stage=updated.current_stage, abandoned=True),
        ]
        return self._succeed(updated, events)

    def finish_run(self, state: RunState) -> RunSummary | None:
        """Score a finished run; ``None`` while the run is still in progress."""
        if state.phase not in TERMINAL_PHASES:
            logger.warning("Run %s cannot be finished from phase %s", state.run_id, state.phase)
            return None
        score = calculate_score(state, catalog=self._boons_repo.all(), rules=self._rules)
        return RunSummary(
            run_id=state.run_id,
            outcome="victory" if state.phase == "run_complete" else "defeat",
            score=score,
            final_hp={member.instance_id: member.current_hp for member in state.squad},
            knocked_out_ids=tuple(member.instance_id for member in state.squad if not member.is_alive),
            stages_cleared=score.stages_cleared,
        )

    def score(self, state: RunState) -> Score:
        return calculate_score(state, catalog=self._boons_repo.all(), rules=self._rules)

    def _check(self, state: RunState, action: RunAction) -> ActionResult | None:
        """Safety net first, then the transition table. ``None`` means proceed."""
        if state.phase not in TERMINAL_PHASES and is_squad_wiped(state.squad):
            updated = clone_run_state(state)
            logger.warning("Run %s squad is wiped; %s redirected to run_failed", state.run_id, action)
            events: List[RunEvent] = [
                self._change_phase(updated, "run_failed"),
                RunEndedEvent(run_id=updated.run_id, outcome="defeat", stage=updated.current_stage),
            ]
            result = self._succeed(updated, events)
            result.reason = "squad_wiped"
            return result
        if not is_valid_transition(state.phase, action):
            return self._reject(state, action, "invalid_phase")
        return None

    def _change_phase(self, state: RunState, phase: RunPhase) -> PhaseChangedEvent:
        event = PhaseChangedEvent(
            run_id=state.run_id,
            from_phase=state.phase,
            to_phase=phase,
            stage=state.current_stage,
        )
        logger.debug("Run %s: %s -> %s (stage %d)", state.run_id, state.phase, phase, state.current_stage)
        state.phase = phase
        return event

    def _reject(self, state: RunState | None, action: RunAction, reason: str) -> ActionResult:
        logger.debug("Rejected %s: %s", action, reason)
        return ActionResult(state=state, ok=False, reason=reason)

    def _succeed(self, state: RunState, events: List[RunEvent]) -> ActionResult:
        for event in events:
            self._emit(event)
        return ActionResult(state=state, ok=True, events=events)

    def _emit(self, event: RunEvent) -> None:
        if self._telemetry is None:
            return
        try:
            self._telemetry(event)
        except Exception:
            logger.exception("Telemetry sink failed for %s", type(event).__name__)


__all__ = [
    "ActionResult",
    "BoonChosenEvent",
    "BoonOfferedEvent",
    "ExpeditionService",
    "PhaseChangedEvent",
    "RunEndedEvent",
    "RunEvent",
    "RunStartedEvent",
    "RunSummary",
    "StageCompletedEvent",
    "TelemetrySink",
]
