"""Durable state of one thermal analysis session.

Every mutation is applied and published in one synchronous call so readers on
the event loop never observe a half-applied update (for example a progress
value without its log line).
"""

from __future__ import annotations

import asyncio
import copy
import time
from typing import Any, Dict, Iterable, List, Optional

from models.analysis_models import (
	AnalysisState,
	AnalysisStatus,
	BuildingInfo,
	EnergyRating,
	ImagePair,
	Severity,
	ThermalAnomaly,
)
from models.approval_models import ApprovalDecision, PendingApproval
from services.analysis.exceptions import ApprovalNotFoundError
from services.analysis.notifier import StateNotifier


def _stamp(message: str) -> str:
	return f"[{time.strftime('%H:%M:%S')}] {message}"


class AnalysisSession:
	"""Building metadata, image pairs and live analysis state for one session."""

	def __init__(self, session_id: str, notifier: Optional[StateNotifier] = None) -> None:
		self.session_id = session_id
		self.notifier = notifier or StateNotifier()
		self.building_info: Optional[BuildingInfo] = None
		self.image_pairs: List[ImagePair] = []
		self.state = AnalysisState()
		# Set whenever a decision is recorded or a stop is requested.
		self.approval_signal = asyncio.Event()

	# -- read side -------------------------------------------------------

	@property
	def status(self) -> AnalysisStatus:
		return self.state.status

	@property
	def is_initialized(self) -> bool:
		return self.building_info is not None and bool(self.image_pairs)

	def snapshot(self) -> Dict[str, Any]:
		return {
			"session_id": self.session_id,
			"building_info": self.building_info.to_dict() if self.building_info else None,
			"image_pairs": [p.to_dict() for p in self.image_pairs],
			"analysis_state": self.state.to_dict(),
		}

	def copy_state(self) -> AnalysisState:
		return copy.deepcopy(self.state)

	def pending_pairs(self) -> List[ImagePair]:
		"""Image pairs not yet attempted in this session."""
		done = set(self.state.processed_pair_ids)
		return [pair for pair in self.image_pairs if pair.id not in done]

	def pair_by_id(self, pair_id: Optional[str]) -> Optional[ImagePair]:
		return next((pair for pair in self.image_pairs if pair.id == pair_id), None)

	def severe_anomalies(self) -> List[ThermalAnomaly]:
		return [a for a in self.state.detected_anomalies if a.severity is Severity.SEVERE]

	def find_pending(self, approval_id: str) -> Optional[PendingApproval]:
		return next((p for p in self.state.pending_approvals if p.id == approval_id), None)

	def find_decision(self, approval_id: str) -> Optional[ApprovalDecision]:
		return next((d for d in self.state.approval_history if d.approval_id == approval_id), None)

	# -- write side ------------------------------------------------------

	def _publish(self) -> None:
		self.notifier.publish(self.snapshot())

	def initialize(self, building_info: BuildingInfo, image_pairs: Iterable[ImagePair]) -> None:
		self.building_info = building_info
		self.image_pairs = list(image_pairs)
		self.state = AnalysisState(analysis_log=[f"Initialized analysis for {building_info.name}"])
		self._publish()

	def reset(self, message: str) -> None:
		"""Clear the analysis state while keeping building info and image pairs."""
		self.state = AnalysisState(analysis_log=[message])
		self.approval_signal.clear()
		self._publish()

	def restore(self, building_info: Optional[BuildingInfo], image_pairs: List[ImagePair], state: AnalysisState) -> None:
		"""Load a persisted snapshot; a run that did not survive becomes stopped."""
		self.building_info = building_info
		self.image_pairs = list(image_pairs)
		self.state = state
		if state.status.is_active:
			state.status = AnalysisStatus.STOPPED
			state.pending_approvals = []
			state.analysis_log.append("Analysis interrupted by a service restart; start again to resume")
			self._publish()

	def begin_run(self, remaining: int) -> None:
		state = self.state
		total = len(self.image_pairs)
		state.status = AnalysisStatus.ANALYZING
		state.progress = 0
		state.total_image_pairs = total
		state.current_image_pair = None
		state.current_pair_label = None
		state.error = None
		if remaining < total:
			state.analysis_log.append(f"Resuming thermal analysis with {remaining} of {total} image pairs remaining...")
		else:
			state.analysis_log.append("Starting AI-powered thermal analysis...")
		self._publish()

	def _advance(self, progress: int) -> None:
		progress = max(0, min(100, int(progress)))
		self.state.progress = max(self.state.progress, progress)

	def update_progress(self, progress: int, message: str) -> None:
		self._advance(progress)
		self.state.analysis_log.append(_stamp(message))
		self._publish()

	def start_pair(self, position: int, pair: ImagePair) -> None:
		self.state.current_image_pair = position
		self.state.current_pair_label = pair.label
		self.state.analysis_log.append(_stamp(f"Analyzing {pair.label} ({position}/{len(self.image_pairs)})..."))
		self._publish()

	def record_pair_result(self, pair: ImagePair, anomalies: List[ThermalAnomaly], summary: str, progress: int) -> None:
		"""Append a pair's anomalies, mark it processed and log its outcome."""
		state = self.state
		state.detected_anomalies.extend(anomalies)
		if pair.id not in state.processed_pair_ids:
			state.processed_pair_ids.append(pair.id)
		self._advance(progress)
		state.analysis_log.append(_stamp(summary.split("\n")[0]))
		self._publish()

	def mark_escalated(self, anomaly_ids: Iterable[str]) -> None:
		for anomaly_id in anomaly_ids:
			if anomaly_id not in self.state.escalated_anomaly_ids:
				self.state.escalated_anomaly_ids.append(anomaly_id)
		self._publish()

	def open_approval(self, approval: PendingApproval) -> None:
		if self.find_pending(approval.id) is not None:
			raise ValueError(f"Approval {approval.id} is already pending")
		self.state.pending_approvals.append(approval)
		self.state.status = AnalysisStatus.AWAITING_APPROVAL
		self.state.analysis_log.append(f"Waiting for approval: {approval.title}")
		self._publish()

	def record_decision(self, decision: ApprovalDecision) -> None:
		"""Append a decision for a pending approval; the waiting gate picks it up."""
		if self.find_pending(decision.approval_id) is None or self.find_decision(decision.approval_id) is not None:
			raise ApprovalNotFoundError(f"Approval {decision.approval_id} not found or already processed")
		self.state.approval_history.append(decision)
		self.approval_signal.set()
		self._publish()

	def resolve_approval(self, approval: PendingApproval, decision: ApprovalDecision) -> None:
		state = self.state
		state.pending_approvals = [p for p in state.pending_approvals if p.id != approval.id]
		if state.status is not AnalysisStatus.STOPPED:
			state.status = AnalysisStatus.ANALYZING
		verdict = "Approved" if decision.approved else "Denied"
		reason = f" - {decision.reason}" if decision.reason else ""
		state.analysis_log.append(f"{approval.title}: {verdict}{reason}")
		self._publish()

	def withdraw_approval(self, approval: PendingApproval, message: Optional[str] = None) -> None:
		"""Drop a pending approval without a decision and stop the run."""
		state = self.state
		state.pending_approvals = [p for p in state.pending_approvals if p.id != approval.id]
		state.status = AnalysisStatus.STOPPED
		if message:
			state.analysis_log.append(message)
		self._publish()

	def signal_stop(self) -> None:
		self.approval_signal.set()

	def mark_stopped(self, message: str) -> None:
		self.state.status = AnalysisStatus.STOPPED
		self.state.pending_approvals = []
		self.state.analysis_log.append(message)
		self._publish()

	def store_report(self, report_markdown: str, rating: EnergyRating) -> None:
		self.state.final_report = report_markdown
		self.state.energy_rating = rating
		self.state.analysis_log.append(_stamp(f"Energy efficiency report generated. Energy rating: {rating.value}"))
		self._publish()

	def record_report_failure(self, message: str) -> None:
		self.state.error = message
		self.state.analysis_log.append(_stamp(message))
		self._publish()

	def complete(self) -> None:
		state = self.state
		count = len(state.detected_anomalies)
		state.status = AnalysisStatus.COMPLETED
		state.progress = 100
		state.current_pair_label = None
		state.analysis_log.extend(
			[
				"Thermal analysis completed successfully!",
				f"Found {count} thermal anomalies",
				f"Energy rating: {state.energy_rating.value if state.energy_rating else 'not generated'}",
				"Analysis completed with findings" if count else "Analysis completed - no issues found",
			]
		)
		self._publish()

	def fail(self, message: str) -> None:
		self.state.status = AnalysisStatus.ERROR
		self.state.error = message
		self.state.pending_approvals = []
		self.state.analysis_log.append(f"Analysis failed: {message}")
		self._publish()
