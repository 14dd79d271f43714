"""Command surface of analysis sessions, translated to HTTP semantics."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request

from models.analysis_models import BuildingInfo, ImagePair
from models.approval_models import ApprovalDecision
from services.analysis.agent import ThermalAnalysisAgent
from services.analysis.exceptions import AnalysisConflictError, AnalysisPreconditionError, ApprovalNotFoundError
from services.analysis.session_store import AnalysisSessionStore


def _store(request: Request) -> AnalysisSessionStore:
	store = getattr(request.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


async def _agent(request: Request, session_id: str) -> ThermalAnalysisAgent:
	try:
		return await _store(request).get(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from exc


def _command_error(exc: Exception) -> HTTPException:
	if isinstance(exc, ApprovalNotFoundError):
		return HTTPException(status_code=404, detail=str(exc))
	if isinstance(exc, AnalysisConflictError):
		return HTTPException(status_code=409, detail=str(exc))
	return HTTPException(status_code=400, detail=str(exc))


async def create_session(
	request: Request,
	building_info: Optional[BuildingInfo] = None,
	image_pairs: Optional[List[ImagePair]] = None,
) -> Dict[str, Any]:
	"""Create a session, initializing it when building info is supplied."""
	agent = _store(request).create()
	if building_info is not None:
		try:
			agent.initialize(building_info, image_pairs or [])
		except AnalysisPreconditionError as exc:
			raise _command_error(exc) from exc
	return agent.snapshot()


async def list_sessions(request: Request) -> Dict[str, Any]:
	return {"sessions": await _store(request).list_sessions()}


async def delete_session(request: Request, session_id: str) -> Dict[str, Any]:
	try:
		await _store(request).delete(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from exc
	return {"session_id": session_id, "deleted": True}


async def initialize_session(
	request: Request, session_id: str, building_info: BuildingInfo, image_pairs: List[ImagePair]
) -> Dict[str, Any]:
	agent = await _agent(request, session_id)
	try:
		state = agent.initialize(building_info, image_pairs)
	except AnalysisPreconditionError as exc:
		raise _command_error(exc) from exc
	return {"session_id": session_id, "analysis_state": state.to_dict()}


async def start_analysis(request: Request, session_id: str) -> Dict[str, Any]:
	agent = await _agent(request, session_id)
	try:
		state = agent.start()
	except AnalysisPreconditionError as exc:
		raise _command_error(exc) from exc
	return {"session_id": session_id, "analysis_state": state.to_dict()}


async def stop_analysis(request: Request, session_id: str) -> Dict[str, Any]:
	agent = await _agent(request, session_id)
	return {"session_id": session_id, "analysis_state": agent.stop().to_dict()}


async def restart_analysis(request: Request, session_id: str) -> Dict[str, Any]:
	agent = await _agent(request, session_id)
	try:
		state = agent.restart()
	except AnalysisPreconditionError as exc:
		raise _command_error(exc) from exc
	return {"session_id": session_id, "analysis_state": state.to_dict()}


async def provide_approval(request: Request, session_id: str, decision: ApprovalDecision) -> Dict[str, Any]:
	agent = await _agent(request, session_id)
	try:
		agent.provide_approval(decision)
	except ApprovalNotFoundError as exc:
		raise _command_error(exc) from exc
	return {"session_id": session_id, "recorded": decision.to_dict()}


async def get_snapshot(request: Request, session_id: str) -> Dict[str, Any]:
	return (await _agent(request, session_id)).snapshot()


async def get_analysis_state(request: Request, session_id: str) -> Dict[str, Any]:
	return (await _agent(request, session_id)).get_analysis_state().to_dict()


async def get_detected_anomalies(request: Request, session_id: str) -> Dict[str, Any]:
	agent = await _agent(request, session_id)
	return {"anomalies": [a.to_dict() for a in agent.get_detected_anomalies()]}


async def get_final_report(request: Request, session_id: str) -> Dict[str, Any]:
	agent = await _agent(request, session_id)
	state = agent.get_analysis_state()
	return {
		"report": agent.get_final_report(),
		"energy_rating": state.energy_rating.value if state.energy_rating else None,
	}


async def get_building_info(request: Request, session_id: str) -> Dict[str, Any]:
	info = (await _agent(request, session_id)).get_building_info()
	return {"building_info": info.to_dict() if info else None}


async def get_image_pairs(request: Request, session_id: str) -> Dict[str, Any]:
	agent = await _agent(request, session_id)
	return {"image_pairs": [p.to_dict() for p in agent.get_image_pairs()]}


async def get_pending_approvals(request: Request, session_id: str) -> Dict[str, Any]:
	agent = await _agent(request, session_id)
	return {"pending_approvals": [p.to_dict() for p in agent.get_pending_approvals()]}


async def get_approval_history(request: Request, session_id: str) -> Dict[str, Any]:
	agent = await _agent(request, session_id)
	return {"approval_history": [d.to_dict() for d in agent.get_approval_history()]}
