"""WebSocket endpoint mirroring session state and accepting commands."""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.analysis.session_store import AnalysisSessionStore
from services.analysis.ws_session import AnalysisSocketHandler

router = APIRouter()


def _require_session_store(websocket: WebSocket) -> AnalysisSessionStore:
	store = getattr(websocket.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


async def _push_snapshots(websocket: WebSocket, handler: AnalysisSocketHandler, queue: asyncio.Queue) -> None:
	while True:
		snapshot = await queue.get()
		await handler.send(websocket, {"type": "state.snapshot", "snapshot": snapshot})


@router.websocket("/ws/analyses/{session_id}")
async def analysis_socket(
	websocket: WebSocket, session_id: str, store: AnalysisSessionStore = Depends(_require_session_store)
):
	"""Push every state change of a session and handle its commands."""
	await websocket.accept()
	try:
		agent = await store.get(session_id)
	except KeyError:
		await websocket.send_text(json.dumps({"type": "error", "detail": "Session not found"}))
		await websocket.close()
		return

	handler = AnalysisSocketHandler(agent)
	notifier = agent.session.notifier
	queue = notifier.subscribe()
	await handler.send(websocket, {"type": "state.snapshot", "snapshot": agent.snapshot()})
	pusher = asyncio.create_task(_push_snapshots(websocket, handler, queue))
	try:
		while True:
			try:
				raw = await websocket.receive_text()
			except WebSocketDisconnect:
				break
			try:
				payload = json.loads(raw)
			except Exception:
				await websocket.send_text(json.dumps({"type": "error", "detail": "Payload must be JSON"}))
				continue
			if not isinstance(payload, dict):
				await websocket.send_text(json.dumps({"type": "error", "detail": "Payload must be a JSON object"}))
				continue
			await handler.handle(websocket, payload)
	finally:
		notifier.unsubscribe(queue)
		pusher.cancel()
		try:
			await pusher
		except (asyncio.CancelledError, Exception):
			pass
	try:
		await websocket.close()
	except Exception:
		pass
