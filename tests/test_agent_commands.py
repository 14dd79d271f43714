from dataclasses import replace

import pytest

from conftest import FakePairAnalyzer, make_pairs, wait_for_status
from models.analysis_models import AnalysisStatus, ImagePair, Severity
from models.approval_models import ApprovalDecision
from services.analysis.exceptions import (
    AnalysisConflictError,
    AnalysisPreconditionError,
    ApprovalNotFoundError,
)


@pytest.mark.asyncio
async def test_start_requires_initialization(make_agent):
    agent = make_agent()

    with pytest.raises(AnalysisPreconditionError):
        agent.start()

    state = agent.get_analysis_state()
    assert state.status is AnalysisStatus.IDLE
    assert state.progress == 0


@pytest.mark.asyncio
async def test_start_with_zero_pairs_is_rejected(make_agent, building_info):
    agent = make_agent()
    agent.initialize(building_info, [])

    with pytest.raises(AnalysisPreconditionError):
        agent.start()
    assert agent.get_analysis_state().status is AnalysisStatus.IDLE


def test_initialize_rejects_duplicate_pair_ids(make_agent, building_info):
    agent = make_agent()
    pair = make_pairs(1)[0]

    with pytest.raises(AnalysisPreconditionError):
        agent.initialize(building_info, [pair, pair])
    assert agent.get_building_info() is None


def test_initialize_is_idempotent_for_identical_payload(make_agent, building_info):
    agent = make_agent()
    agent.initialize(building_info, make_pairs(2))
    agent.initialize(building_info, make_pairs(2))

    assert agent.get_analysis_state().analysis_log == ["Initialized analysis for Harbour Office"]


def test_initialize_twice_with_other_building_fails(make_agent, building_info):
    agent = make_agent()
    agent.initialize(building_info, make_pairs(2))
    other = replace(building_info, name="Depot")

    with pytest.raises(AnalysisPreconditionError):
        agent.initialize(other, make_pairs(2))
    assert agent.get_building_info().name == "Harbour Office"


@pytest.mark.asyncio
async def test_second_start_while_running_conflicts(make_agent, building_info):
    agent = make_agent(analyzer=FakePairAnalyzer(delay=0.05))
    agent.initialize(building_info, make_pairs(2))
    agent.start()

    with pytest.raises(AnalysisConflictError):
        agent.start()

    agent.stop()
    await agent.wait_until_finished(timeout=2)


@pytest.mark.asyncio
async def test_unknown_approval_id_changes_nothing(make_agent, building_info):
    agent = make_agent(analyzer=FakePairAnalyzer(severities={"p1": [Severity.MINOR]}))
    agent.initialize(building_info, make_pairs(1))
    agent.start()
    await wait_for_status(agent, AnalysisStatus.AWAITING_APPROVAL)
    before = agent.get_analysis_state()

    with pytest.raises(ApprovalNotFoundError):
        agent.provide_approval(ApprovalDecision(approval_id="generate_report_missing", approved=True))

    after = agent.get_analysis_state()
    assert after.status is AnalysisStatus.AWAITING_APPROVAL
    assert after.approval_history == before.approval_history
    assert after.pending_approvals == before.pending_approvals

    agent.stop()
    await agent.wait_until_finished(timeout=2)


@pytest.mark.asyncio
async def test_second_decision_for_same_approval_is_rejected(make_agent, building_info):
    agent = make_agent(analyzer=FakePairAnalyzer(severities={"p1": [Severity.MINOR]}))
    agent.initialize(building_info, make_pairs(1))
    agent.start()
    await wait_for_status(agent, AnalysisStatus.AWAITING_APPROVAL)
    approval_id = agent.get_pending_approvals()[0].id

    agent.provide_approval(ApprovalDecision(approval_id=approval_id, approved=False))
    with pytest.raises(ApprovalNotFoundError):
        agent.provide_approval(ApprovalDecision(approval_id=approval_id, approved=True))

    await agent.wait_until_finished(timeout=2)
    assert len(agent.get_approval_history()) == 1


@pytest.mark.asyncio
async def test_restart_resets_findings_but_keeps_inputs(make_agent, building_info):
    agent = make_agent(analyzer=FakePairAnalyzer(severities={"p1": [Severity.MINOR]}))
    agent.initialize(building_info, make_pairs(2))
    agent.start()
    await wait_for_status(agent, AnalysisStatus.AWAITING_APPROVAL)
    agent.provide_approval(ApprovalDecision(approval_id=agent.get_pending_approvals()[0].id, approved=True))
    await agent.wait_until_finished(timeout=2)
    assert agent.get_analysis_state().status is AnalysisStatus.COMPLETED

    state = agent.restart()

    assert state.status is AnalysisStatus.IDLE
    assert state.progress == 0
    assert state.detected_anomalies == []
    assert state.pending_approvals == []
    assert state.approval_history == []
    assert state.final_report is None
    assert state.energy_rating is None
    assert state.analysis_log == ["Analysis restarted - ready to begin"]
    assert agent.get_building_info() == building_info
    assert [p.id for p in agent.get_image_pairs()] == ["p1", "p2"]


@pytest.mark.asyncio
async def test_restart_while_active_conflicts(make_agent, building_info):
    agent = make_agent(analyzer=FakePairAnalyzer(severities={"p1": [Severity.MINOR]}))
    agent.initialize(building_info, make_pairs(1))
    agent.start()
    await wait_for_status(agent, AnalysisStatus.AWAITING_APPROVAL)

    with pytest.raises(AnalysisConflictError):
        agent.restart()

    agent.stop()
    await agent.wait_until_finished(timeout=2)


@pytest.mark.asyncio
async def test_start_after_completion_requires_restart(make_agent, building_info):
    agent = make_agent()
    agent.initialize(building_info, make_pairs(1))
    agent.start()
    await agent.wait_until_finished(timeout=2)
    assert agent.get_analysis_state().status is AnalysisStatus.COMPLETED

    with pytest.raises(AnalysisPreconditionError):
        agent.start()

    agent.restart()
    agent.start()
    await agent.wait_until_finished(timeout=2)
    assert agent.get_analysis_state().status is AnalysisStatus.COMPLETED


def test_stop_from_idle_marks_stopped(make_agent, building_info):
    agent = make_agent()
    agent.initialize(building_info, make_pairs(1))

    state = agent.stop()

    assert state.status is AnalysisStatus.STOPPED
    assert state.analysis_log[-1] == "Analysis stopped by user"


@pytest.mark.asyncio
async def test_stop_after_completion_is_a_no_op(make_agent, building_info):
    agent = make_agent()
    agent.initialize(building_info, make_pairs(1))
    agent.start()
    await agent.wait_until_finished(timeout=2)
    log_length = len(agent.get_analysis_state().analysis_log)

    state = agent.stop()

    assert state.status is AnalysisStatus.COMPLETED
    assert len(state.analysis_log) == log_length


def test_returned_state_is_a_copy(make_agent, building_info):
    agent = make_agent()
    agent.initialize(building_info, [ImagePair(id="a", label="North", rgb_url="https://x/a.jpg", thermal_url="https://x/b.jpg")])

    state = agent.get_analysis_state()
    state.analysis_log.append("tampered")

    assert "tampered" not in agent.get_analysis_state().analysis_log
