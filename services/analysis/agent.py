"""Command surface of one analysis session.

Commands are synchronous and run on the event loop; ``start()`` schedules the
orchestrator run as a background task and returns immediately.

Start policy: a session in ``idle`` begins a fresh run. From ``stopped`` or
``error`` the run resumes, keeping prior anomalies, log and approval history
and analysing only the image pairs not yet attempted. A ``completed`` session
must be restarted first.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from models.analysis_models import AnalysisState, AnalysisStatus, BuildingInfo, ImagePair, ThermalAnomaly
from models.approval_models import ApprovalDecision, PendingApproval
from services.analysis.exceptions import AnalysisConflictError, AnalysisPreconditionError
from services.analysis.orchestrator import ThermalAnalysisOrchestrator
from services.analysis.session import AnalysisSession


class ThermalAnalysisAgent:
	"""Start, stop, restart and approve one session's analysis."""

	def __init__(self, session: AnalysisSession, orchestrator: ThermalAnalysisOrchestrator) -> None:
		self.session = session
		self.orchestrator = orchestrator
		self._task: Optional[asyncio.Task] = None

	@property
	def session_id(self) -> str:
		return self.session.session_id

	@property
	def is_running(self) -> bool:
		return self._task is not None and not self._task.done()

	# -- commands --------------------------------------------------------

	def initialize(self, building_info: BuildingInfo, image_pairs: Iterable[ImagePair]) -> AnalysisState:
		"""Set building info and image pairs; allowed once per session."""
		pairs = list(image_pairs)
		ids = [pair.id for pair in pairs]
		if len(set(ids)) != len(ids):
			raise AnalysisPreconditionError("Image pair ids must be unique")
		session = self.session
		if session.building_info is not None:
			if session.building_info == building_info and session.image_pairs == pairs:
				return session.copy_state()
			raise AnalysisPreconditionError("Session is already initialized; create a new session for another building")
		if self.is_running:
			raise AnalysisConflictError("An analysis run is active for this session")
		logging.info("Initializing session %s with %d image pairs", session.session_id, len(pairs))
		session.initialize(building_info, pairs)
		return session.copy_state()

	def start(self) -> AnalysisState:
		"""Begin (or resume) a run in the background."""
		session = self.session
		if not session.is_initialized:
			raise AnalysisPreconditionError("Building info and image pairs must be provided")
		if session.status.is_active:
			raise AnalysisConflictError("Analysis is already running")
		if self.is_running:
			raise AnalysisConflictError("The previous run is still finishing its current step; try again shortly")
		if session.status is AnalysisStatus.COMPLETED:
			raise AnalysisPreconditionError("Analysis already completed; restart it to run again")

		self.orchestrator.reset_cancellation()
		self.orchestrator.prepare()
		self._task = asyncio.create_task(self.orchestrator.run(), name=f"thermal-analysis-{session.session_id}")
		self._task.add_done_callback(self._log_task_failure)
		return session.copy_state()

	def stop(self) -> AnalysisState:
		"""Request cooperative cancellation and mark the session stopped."""
		session = self.session
		if session.status in (AnalysisStatus.COMPLETED, AnalysisStatus.ERROR, AnalysisStatus.STOPPED):
			return session.copy_state()
		logging.info("Stopping analysis for session %s", session.session_id)
		self.orchestrator.request_stop()
		session.mark_stopped("Analysis stopped by user")
		return session.copy_state()

	def restart(self) -> AnalysisState:
		"""Return to ``idle``, clearing findings but keeping building info and images."""
		session = self.session
		if session.status.is_active:
			raise AnalysisConflictError("Stop the running analysis before restarting it")
		if self.is_running:
			raise AnalysisConflictError("The previous run is still finishing its current step; try again shortly")
		logging.info("Restarting analysis for session %s", session.session_id)
		session.reset("Analysis restarted - ready to begin")
		return session.copy_state()

	def provide_approval(self, decision: ApprovalDecision) -> None:
		"""Record a decision for a pending approval."""
		logging.info("Approval decision for %s: approved=%s", decision.approval_id, decision.approved)
		self.session.record_decision(decision)

	async def wait_until_finished(self, timeout: Optional[float] = None) -> None:
		"""Wait for the current run task, if any, to end."""
		if self._task is not None:
			await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)

	async def shutdown(self) -> None:
		"""Cancel an active run; used when the service stops."""
		if self.is_running:
			self.orchestrator.request_stop()
			self._task.cancel()
			try:
				await self._task
			except asyncio.CancelledError:
				pass

	def _log_task_failure(self, task: asyncio.Task) -> None:
		if task.cancelled():
			return
		exc = task.exception()
		if exc is not None:
			logging.error("Analysis task for session %s crashed: %s", self.session_id, exc)

	# -- read side -------------------------------------------------------

	def get_analysis_state(self) -> AnalysisState:
		return self.session.copy_state()

	def get_detected_anomalies(self) -> List[ThermalAnomaly]:
		return list(self.session.state.detected_anomalies)

	def get_final_report(self) -> Optional[str]:
		return self.session.state.final_report

	def get_building_info(self) -> Optional[BuildingInfo]:
		return self.session.building_info

	def get_image_pairs(self) -> List[ImagePair]:
		return list(self.session.image_pairs)

	def get_pending_approvals(self) -> List[PendingApproval]:
		return list(self.session.state.pending_approvals)

	def get_approval_history(self) -> List[ApprovalDecision]:
		return list(self.session.state.approval_history)

	def snapshot(self) -> Dict[str, Any]:
		return self.session.snapshot()
