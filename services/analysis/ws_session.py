"""Dispatch websocket commands for an analysis session."""

from __future__ import annotations

import json
from typing import Any, Dict

from fastapi import WebSocket

from models.approval_models import ApprovalDecision
from services.analysis.agent import ThermalAnalysisAgent


class AnalysisSocketHandler:
	"""Route websocket messages to one session's command surface."""

	def __init__(self, agent: ThermalAnalysisAgent) -> None:
		self.agent = agent

	async def handle(self, websocket: WebSocket, payload: Dict[str, Any]) -> None:
		"""Process a single inbound websocket payload."""
		request_id = payload.get("request_id")
		message_type = payload.get("type")
		try:
			if message_type == "analysis.start":
				result = {"type": "analysis.started", "analysis_state": self.agent.start().to_dict()}
			elif message_type == "analysis.stop":
				result = {"type": "analysis.stopped", "analysis_state": self.agent.stop().to_dict()}
			elif message_type == "analysis.restart":
				result = {"type": "analysis.restarted", "analysis_state": self.agent.restart().to_dict()}
			elif message_type == "approval.provide":
				result = self._provide_approval(payload)
			elif message_type == "state.get":
				result = {"type": "state.snapshot", "snapshot": self.agent.snapshot()}
			else:
				raise ValueError("Unsupported message type.")
			result["request_id"] = request_id
			await self.send(websocket, result)
		except Exception as exc:
			await self._send_error(websocket, request_id, str(exc))

	def _provide_approval(self, payload: Dict[str, Any]) -> Dict[str, Any]:
		approval_id = (payload.get("approval_id") or "").strip()
		if not approval_id:
			raise ValueError("approval_id is required.")
		if not isinstance(payload.get("approved"), bool):
			raise ValueError("approved must be true or false.")
		reason = (payload.get("reason") or "").strip() or None
		decision = ApprovalDecision(approval_id=approval_id, approved=payload["approved"], reason=reason)
		self.agent.provide_approval(decision)
		return {"type": "approval.recorded", "decision": decision.to_dict()}

	async def _send_error(self, websocket: WebSocket, request_id: Any, detail: str) -> None:
		await self.send(websocket, {"type": "error", "request_id": request_id, "detail": detail})

	async def send(self, websocket: WebSocket, payload: Dict[str, Any]) -> None:
		await websocket.send_text(json.dumps(payload))
