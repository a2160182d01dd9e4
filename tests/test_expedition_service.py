from dataclasses import replace

import pytest

from talonrun.config import RunRules, rules_from_mapping
from talonrun.data.repositories import BoonsRepository
from talonrun.domain.boons import ActiveBoon
from talonrun.domain.run_state import PHASE_TRANSITIONS, RunState, StageResult
from talonrun.services import (
    BoonChosenEvent,
    BoonOfferedEvent,
    ExpeditionService,
    PhaseChangedEvent,
    RunEndedEvent,
    RunStartedEvent,
)

from tests.helpers.squads import full_hp_result, make_member, make_squad, make_state


@pytest.fixture
def service() -> ExpeditionService:
    return ExpeditionService(BoonsRepository())


def _start(service: ExpeditionService, seed: int = 42) -> RunState:
    result = service.start_run(make_squad(), seed=seed, started_at=0)
    assert result.ok
    assert result.state is not None
    return result.state


def _clear_stage(service: ExpeditionService, state: RunState) -> RunState:
    state = service.begin_battle(state).state
    return service.complete_stage(state, full_hp_result(state)).state


def test_start_run_enters_pre_battle(service: ExpeditionService) -> None:
    result = service.start_run(make_squad(), seed=42, started_at=1000)
    state = result.state
    assert result.ok
    assert state.phase == "pre_battle"
    assert state.current_stage == 1
    assert state.run_id == "run_0000002a"
    assert state.prng_call_count == 0
    assert state.started_at == 1000
    assert isinstance(result.events[0], RunStartedEvent)
    assert result.events[1] == PhaseChangedEvent(
        run_id="run_0000002a", from_phase="squad_select", to_phase="pre_battle", stage=1
    )


def test_start_run_snapshots_squad(service: ExpeditionService) -> None:
    roster = make_squad()
    state = service.start_run(roster, seed=1, started_at=0, run_id="custom").state
    state.squad[0].current_hp = 3
    assert roster[0].current_hp == 50
    assert state.run_id == "custom"


@pytest.mark.parametrize(
    "squad,reason",
    [
        (make_squad()[:2], "invalid_squad_size"),
        (make_squad() + [make_member("cat-4")], "invalid_squad_size"),
        ([make_member("cat-1"), make_member("cat-1"), make_member("cat-2")], "duplicate_member"),
        ([make_member("cat-1"), make_member("cat-2"), make_member("cat-3", current_hp=0)], "knocked_out_member"),
    ],
)
def test_start_run_rejects_invalid_squads(service: ExpeditionService, squad, reason: str) -> None:
    result = service.start_run(squad, seed=1, started_at=0)
    assert result.ok is False
    assert result.reason == reason
    assert result.state is None


def test_invalid_phase_returns_unchanged_state(service: ExpeditionService) -> None:
    state = _start(service)
    result = service.complete_stage(state, full_hp_result(state))
    assert result.ok is False
    assert result.reason == "invalid_phase"
    assert result.state is state
    assert result.events == []


def test_advance_from_boon_select_is_rejected(service: ExpeditionService) -> None:
    state = service.offer_boons(_clear_stage(service, _start(service))).state
    assert state.phase == "boon_select"
    result = service.advance_stage(state)
    assert result.ok is False
    assert result.reason == "invalid_phase"
    assert result.state is state
    assert state.phase == "boon_select"


def test_complete_stage_rejects_mismatched_stage(service: ExpeditionService) -> None:
    state = service.begin_battle(_start(service)).state
    bad = StageResult(stage_index=2, hp_remaining={}, start_time=0, end_time=0)
    result = service.complete_stage(state, bad)
    assert result.reason == "stage_mismatch"
    assert result.state is state


def test_complete_stage_updates_hp_and_records_result(service: ExpeditionService) -> None:
    state = service.begin_battle(_start(service)).state
    report = StageResult(
        stage_index=1,
        hp_remaining={"cat-1": 30, "cat-2": 0, "cat-3": 50},
        start_time=0,
        end_time=5000,
    )
    result = service.complete_stage(state, report)
    updated = result.state
    assert updated.phase == "stage_cleared"
    assert [member.current_hp for member in updated.squad] == [30, 0, 50]
    assert updated.squad[1].knocked_out is True
    assert updated.stage_results == [report]
    assert state.phase == "in_battle"
    assert state.stage_results == []


def test_wiped_squad_fails_run_without_recording_stage(service: ExpeditionService) -> None:
    state = service.begin_battle(_start(service)).state
    wipe = StageResult(
        stage_index=1,
        hp_remaining={"cat-1": 0, "cat-2": 0, "cat-3": 0},
        start_time=0,
        end_time=1000,
    )
    result = service.complete_stage(state, wipe)
    assert result.ok
    assert result.state.phase == "run_failed"
    assert result.state.stage_results == []
    assert any(isinstance(event, RunEndedEvent) and event.outcome == "defeat" for event in result.events)


def test_safety_net_redirects_any_action_to_run_failed(service: ExpeditionService) -> None:
    state = _clear_stage(service, _start(service))
    for member in state.squad:
        member.current_hp = 0
        member.knocked_out = True
    result = service.advance_stage(state)
    assert result.ok
    assert result.reason == "squad_wiped"
    assert result.state.phase == "run_failed"
    assert result.state.current_stage == 1


def test_safety_net_runs_before_phase_validation(service: ExpeditionService) -> None:
    squad = [replace(member, current_hp=0, knocked_out=True) for member in make_squad()]
    state = make_state(phase="boon_select", squad=squad)
    result = service.advance_stage(state)
    assert result.state.phase == "run_failed"


def test_offer_boons_advances_prng_and_blocks_repeat(service: ExpeditionService) -> None:
    cleared = _clear_stage(service, _start(service))
    offered = service.offer_boons(cleared)
    state = offered.state
    assert offered.ok
    assert state.phase == "boon_select"
    assert state.prng_call_count >= 6
    assert cleared.prng_call_count == 0
    assert state.current_boon_offering is not None
    assert state.last_boon_stage == 1
    assert isinstance(offered.events[0], BoonOfferedEvent)

    chosen = service.choose_boon(state, state.current_boon_offering.boons[0].id).state
    again = service.offer_boons(chosen)
    assert again.ok is False
    assert again.reason == "boons_already_offered"


def test_offer_boons_is_reproducible(service: ExpeditionService) -> None:
    first = service.offer_boons(_clear_stage(service, _start(service, seed=9))).state
    second = service.offer_boons(_clear_stage(service, _start(service, seed=9))).state
    assert first.current_boon_offering == second.current_boon_offering
    assert first.prng_call_count == second.prng_call_count


def test_choose_boon_validation(service: ExpeditionService) -> None:
    state = service.offer_boons(_clear_stage(service, _start(service))).state
    unknown = service.choose_boon(state, "no-such-boon")
    assert unknown.reason == "unknown_boon"
    assert unknown.state is state

    offered_ids = {boon.id for boon in state.current_boon_offering.boons}
    missing = next(boon.id for boon in BoonsRepository().all() if boon.id not in offered_ids)
    not_offered = service.choose_boon(state, missing)
    assert not_offered.reason == "boon_not_offered"
    assert not_offered.state is state


def test_choose_boon_applies_and_recomputes_stats(service: ExpeditionService) -> None:
    state = service.offer_boons(_clear_stage(service, _start(service))).state
    offering = state.current_boon_offering
    boon = offering.boons[0]

    result = service.choose_boon(state, boon.id)
    chosen = result.state
    assert chosen.phase == "stage_cleared"
    assert chosen.current_boon_offering is None
    assert chosen.active_boons == [ActiveBoon(boon.id, 1)]
    assert chosen.consecutive_all_common_offerings == (1 if offering.is_all_common else 0)
    assert isinstance(result.events[0], BoonChosenEvent)
    if boon.effect == "atk_boost":
        assert chosen.squad[0].current_attack == 10 + boon.params.atk_boost
    if boon.effect == "hp_boost":
        assert chosen.squad[0].max_hp == 50 + boon.params.hp_boost


def test_pity_counter_resets_after_non_common_offering(service: ExpeditionService) -> None:
    cleared = _clear_stage(service, _start(service))
    cleared.consecutive_all_common_offerings = 2
    state = service.offer_boons(cleared).state
    assert state.current_boon_offering.was_guaranteed_rare
    chosen = service.choose_boon(state, state.current_boon_offering.boons[0].id).state
    assert chosen.consecutive_all_common_offerings == 0


def test_advance_stage_applies_rally_cry(service: ExpeditionService) -> None:
    squad = make_squad()
    squad[0] = replace(squad[0], current_hp=20)
    state = make_state(phase="stage_cleared", squad=squad)
    state.active_boons = [ActiveBoon("rally-cry", 2)]
    advanced = service.advance_stage(state).state
    assert advanced.phase == "pre_battle"
    assert advanced.current_stage == 2
    assert advanced.squad[0].current_hp == 30


def test_healing_spring_detour(service: ExpeditionService) -> None:
    squad = make_squad(hp=60)
    squad[0] = replace(squad[0], current_hp=10)
    state = make_state(phase="stage_cleared", stage=4, squad=squad)

    spring = service.advance_stage(state).state
    assert spring.phase == "healing_spring"
    assert spring.current_stage == 5
    assert spring.squad[0].current_hp == 19

    resumed = service.advance_stage(spring).state
    assert resumed.phase == "pre_battle"
    assert resumed.current_stage == 5


def test_abandon_from_any_active_phase(service: ExpeditionService) -> None:
    state = _start(service)
    result = service.abandon_run(state)
    assert result.state.phase == "run_failed"
    ended = result.events[-1]
    assert isinstance(ended, RunEndedEvent)
    assert ended.abandoned is True

    again = service.abandon_run(result.state)
    assert again.ok is False
    assert again.reason == "invalid_phase"


def test_telemetry_failures_never_fail_transitions() -> None:
    received = []

    def sink(event) -> None:
        received.append(event)
        raise RuntimeError("analytics offline")

    service = ExpeditionService(BoonsRepository(), telemetry=sink)
    result = service.start_run(make_squad(), seed=3, started_at=0)
    assert result.ok
    assert len(received) == 2
    assert service.begin_battle(result.state).ok


def test_telemetry_is_optional() -> None:
    with_sink = ExpeditionService(BoonsRepository(), telemetry=lambda event: None)
    without_sink = ExpeditionService(BoonsRepository())
    a = _clear_stage(with_sink, _start(with_sink))
    b = _clear_stage(without_sink, _start(without_sink))
    assert a == b


def test_finish_run_requires_terminal_phase(service: ExpeditionService) -> None:
    assert service.finish_run(_start(service)) is None


def test_shorter_expedition_rules() -> None:
    service = ExpeditionService(BoonsRepository(), rules=RunRules(total_stages=2, boss_stages=(2,), healing_spring_stages=()))
    state = _clear_stage(service, _start(service))
    state = service.advance_stage(state).state
    state = _clear_stage(service, state)
    assert state.phase == "run_complete"
    summary = service.finish_run(state)
    assert summary.outcome == "victory"
    assert summary.score.boss_kill_score == 1000


def test_seed_42_full_expedition_completes(service: ExpeditionService) -> None:
    state = _start(service, seed=42)
    springs = 0
    while state.phase not in ("run_complete", "run_failed"):
        state = _clear_stage(service, state)
        if state.phase != "stage_cleared":
            break
        state = service.offer_boons(state).state
        state = service.choose_boon(state, state.current_boon_offering.boons[0].id).state
        state = service.advance_stage(state).state
        if state.phase == "healing_spring":
            springs += 1
            state = service.advance_stage(state).state

    assert state.phase == "run_complete"
    assert state.current_stage == 20
    assert len(state.stage_results) == 20
    assert springs == 2
    assert all(member.is_alive for member in state.squad)

    summary = service.finish_run(state)
    score = summary.score
    assert summary.outcome == "victory"
    assert score.all_cats_alive_bonus > 0
    assert score.stage_score == 20 * 100
    assert score.boss_kill_score == 500 + 1000
    assert score.total_score == sum(score.components().values())
    assert set(summary.final_hp) == {"cat-1", "cat-2", "cat-3"}


def test_squad_size_stays_three_under_any_rules() -> None:
    service = ExpeditionService(BoonsRepository(), rules=rules_from_mapping({"squad_size": 2}))
    result = service.start_run(make_squad()[:2], seed=1, started_at=0)
    assert result.ok is False
    assert result.reason == "invalid_squad_size"
    assert service.start_run(make_squad(), seed=1, started_at=0).ok


def test_start_run_consults_transition_table(service: ExpeditionService, monkeypatch) -> None:
    monkeypatch.setitem(PHASE_TRANSITIONS, "squad_select", {})
    result = service.start_run(make_squad(), seed=1, started_at=0)
    assert result.ok is False
    assert result.reason == "invalid_phase"
    assert result.state is None


def test_loaded_spring_fraction_out_of_range_uses_default() -> None:
    rules = rules_from_mapping({"healing_spring_fraction": -3.0, "healing_spring_stages": [2]})
    service = ExpeditionService(BoonsRepository(), rules=rules)
    squad = make_squad()
    squad[0] = replace(squad[0], current_hp=10)

    spring = service.advance_stage(make_state(phase="stage_cleared", stage=1, squad=squad)).state
    assert spring.phase == "healing_spring"
    assert spring.squad[0].current_hp == 17
    assert [member.current_hp for member in spring.squad[1:]] == [50, 50]


def test_negative_spring_fraction_never_lowers_hp() -> None:
    rules = RunRules(healing_spring_fraction=-3.0, healing_spring_stages=(2,))
    service = ExpeditionService(BoonsRepository(), rules=rules)
    squad = make_squad()
    squad[0] = replace(squad[0], current_hp=10)

    spring = service.advance_stage(make_state(phase="stage_cleared", stage=1, squad=squad)).state
    assert [member.current_hp for member in spring.squad] == [10, 50, 50]
    assert not any(member.knocked_out for member in spring.squad)
