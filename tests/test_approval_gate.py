import asyncio

import pytest

from conftest import make_pairs
from models.analysis_models import AnalysisStatus
from models.approval_models import ApprovalDecision, ApprovalType, StartAnalysisContext
from services.analysis.approval_gate import ApprovalGate, new_approval_id
from services.analysis.session import AnalysisSession


@pytest.fixture
def session(building_info):
    session = AnalysisSession("gate-session")
    session.initialize(building_info, make_pairs(2))
    session.begin_run(2)
    return session


def _request(gate: ApprovalGate):
    return asyncio.create_task(
        gate.request_approval(
            ApprovalType.START_ANALYSIS,
            "Start Thermal Analysis",
            "Analyze 2 image pairs",
            StartAnalysisContext(building_name="Harbour Office", image_pair_count=2),
        )
    )


async def _pending(session: AnalysisSession):
    while not session.state.pending_approvals:
        await asyncio.sleep(0)
    return session.state.pending_approvals[0]


def test_approval_ids_are_unique_and_typed():
    ids = {new_approval_id(ApprovalType.GENERATE_REPORT) for _ in range(500)}
    assert len(ids) == 500
    assert all(i.startswith("generate_report_") for i in ids)


@pytest.mark.asyncio
async def test_approved_decision_resumes_analysis(session):
    gate = ApprovalGate(session, asyncio.Event(), poll_interval=5.0)
    task = _request(gate)
    pending = await _pending(session)

    assert session.status is AnalysisStatus.AWAITING_APPROVAL
    assert session.state.analysis_log[-1] == "Waiting for approval: Start Thermal Analysis"

    session.record_decision(ApprovalDecision(approval_id=pending.id, approved=True, reason="go"))
    # The signal wakes the gate long before the 5s poll interval.
    assert await asyncio.wait_for(task, timeout=1.0) is True
    assert session.status is AnalysisStatus.ANALYZING
    assert session.state.pending_approvals == []
    assert session.state.approval_history == [ApprovalDecision(pending.id, True, "go")]
    assert session.state.analysis_log[-1] == "Start Thermal Analysis: Approved - go"


@pytest.mark.asyncio
async def test_denied_decision_returns_false(session):
    gate = ApprovalGate(session, asyncio.Event(), poll_interval=0.01)
    task = _request(gate)
    pending = await _pending(session)
    session.record_decision(ApprovalDecision(approval_id=pending.id, approved=False))

    assert await asyncio.wait_for(task, timeout=1.0) is False
    assert session.state.analysis_log[-1] == "Start Thermal Analysis: Denied"


@pytest.mark.asyncio
async def test_cancellation_withdraws_pending_approval(session):
    cancel = asyncio.Event()
    gate = ApprovalGate(session, cancel, poll_interval=5.0)
    task = _request(gate)
    await _pending(session)

    cancel.set()
    session.signal_stop()

    assert await asyncio.wait_for(task, timeout=1.0) is False
    assert session.status is AnalysisStatus.STOPPED
    assert session.state.pending_approvals == []
    assert session.state.approval_history == []


@pytest.mark.asyncio
async def test_timeout_stops_without_decision(session):
    gate = ApprovalGate(session, asyncio.Event(), poll_interval=0.01, timeout=0.05)
    task = _request(gate)

    assert await asyncio.wait_for(task, timeout=1.0) is False
    assert session.status is AnalysisStatus.STOPPED
    assert session.state.pending_approvals == []
    assert "no decision within" in session.state.analysis_log[-1]


@pytest.mark.asyncio
async def test_stop_wins_over_decision_recorded_in_same_wait(session):
    cancel = asyncio.Event()
    gate = ApprovalGate(session, cancel, poll_interval=5.0)
    task = _request(gate)
    pending = await _pending(session)

    session.record_decision(ApprovalDecision(approval_id=pending.id, approved=True))
    cancel.set()
    session.mark_stopped("Analysis stopped by user")

    assert await asyncio.wait_for(task, timeout=1.0) is False
    assert session.status is AnalysisStatus.STOPPED
    assert session.state.pending_approvals == []
    assert not any("Approved" in line for line in session.state.analysis_log)
