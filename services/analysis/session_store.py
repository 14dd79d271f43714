"""Registry of analysis sessions with optional snapshot persistence."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from dal.session_dal import SessionDAL
from models.analysis_models import AnalysisState, BuildingInfo, ImagePair
from services.analysis.agent import ThermalAnalysisAgent
from services.analysis.orchestrator import ThermalAnalysisOrchestrator
from services.analysis.session import AnalysisSession
from services.openai.pair_analyzer import ImagePairAnalyzer
from services.openai.report_generator import EnergyReportGenerator
from utils.settings import AnalysisSettings


class SnapshotWriter:
	"""Write session snapshots to SQLite from a single background task, in order."""

	def __init__(self, dal: SessionDAL) -> None:
		self.dal = dal
		self._queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
		self._task: Optional[asyncio.Task] = None

	def start(self) -> None:
		if self._task is None:
			self._task = asyncio.create_task(self._drain(), name="session-snapshot-writer")

	def enqueue(self, snapshot: Dict[str, Any]) -> None:
		self._queue.put_nowait(snapshot)

	async def flush(self) -> None:
		await self._queue.join()

	async def stop(self) -> None:
		if self._task is None:
			return
		self._queue.put_nowait(None)
		await self._task
		self._task = None

	async def _drain(self) -> None:
		while True:
			snapshot = await self._queue.get()
			try:
				if snapshot is None:
					return
				await self.dal.save_snapshot(snapshot)
			except Exception as exc:
				logging.error("Failed to persist session %s: %s", snapshot.get("session_id"), exc)
			finally:
				self._queue.task_done()


class AnalysisSessionStore:
	"""Create, look up and persist analysis sessions."""

	def __init__(
		self,
		pair_analyzer: ImagePairAnalyzer,
		report_generator: EnergyReportGenerator,
		settings: Optional[AnalysisSettings] = None,
		dal: Optional[SessionDAL] = None,
	) -> None:
		self.pair_analyzer = pair_analyzer
		self.report_generator = report_generator
		self.settings = settings or AnalysisSettings()
		self.dal = dal
		self.writer = SnapshotWriter(dal) if dal is not None else None
		self._agents: Dict[str, ThermalAnalysisAgent] = {}

	def _build_agent(self, session_id: str) -> Tuple[AnalysisSession, ThermalAnalysisAgent]:
		session = AnalysisSession(session_id)
		if self.writer is not None:
			self.writer.start()
			session.notifier.add_listener(self.writer.enqueue)
		orchestrator = ThermalAnalysisOrchestrator(session, self.pair_analyzer, self.report_generator, self.settings)
		agent = ThermalAnalysisAgent(session, orchestrator)
		self._agents[session_id] = agent
		return session, agent

	def create(self) -> ThermalAnalysisAgent:
		"""Create an empty session; its first snapshot is persisted right away."""
		session, agent = self._build_agent(uuid4().hex)
		session.notifier.publish(session.snapshot())
		return agent

	async def get(self, session_id: str) -> ThermalAnalysisAgent:
		"""Return a session's agent, rehydrating it from storage if needed.

		Raises:
			KeyError: If the session is unknown.
		"""
		agent = self._agents.get(session_id)
		if agent is not None:
			return agent
		snapshot = await self.dal.get_snapshot(session_id) if self.dal is not None else None
		if snapshot is None:
			raise KeyError(f"Session {session_id} not found")
		# Another request may have rehydrated it while we were reading.
		agent = self._agents.get(session_id)
		if agent is not None:
			return agent
		session, agent = self._build_agent(session_id)
		building = snapshot.get("building_info")
		session.restore(
			BuildingInfo.from_dict(building) if building else None,
			[ImagePair.from_dict(p) for p in snapshot.get("image_pairs", [])],
			AnalysisState.from_dict(snapshot.get("analysis_state") or {}),
		)
		logging.info("Rehydrated session %s with status %s", session_id, session.status.value)
		return agent

	async def list_sessions(self) -> List[Dict[str, Any]]:
		"""Summaries of known sessions, in memory and persisted."""
		summaries: Dict[str, Dict[str, Any]] = {}
		if self.dal is not None:
			for row in await self.dal.list_sessions():
				summaries[row["session_id"]] = row
		for session_id, agent in self._agents.items():
			entry = summaries.setdefault(session_id, {"session_id": session_id})
			entry["status"] = agent.session.status.value
		return list(summaries.values())

	async def delete(self, session_id: str) -> None:
		"""Stop any active run and forget the session.

		Raises:
			KeyError: If the session is unknown.
		"""
		agent = await self.get(session_id)
		agent.stop()
		await agent.shutdown()
		self._agents.pop(session_id, None)
		if self.dal is not None:
			if self.writer is not None:
				await self.writer.flush()
			await self.dal.delete_session(session_id)

	async def shutdown(self) -> None:
		for agent in list(self._agents.values()):
			await agent.shutdown()
		if self.writer is not None:
			await self.writer.stop()
