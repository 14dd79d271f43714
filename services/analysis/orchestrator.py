"""State machine driving one thermal analysis run.

The run is an explicit step loop: analyse the next image pair, commit its
findings, consult the approval gate at the review checkpoints, and finally
ask for approval before synthesising the report. Cancellation is cooperative:
``request_stop()`` sets a flag that is observed before each pair, after each
model call returns, and inside approval waits.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from models.analysis_models import AnalysisStatus, Severity
from models.approval_models import (
	AnomalyReviewContext,
	ApprovalType,
	ExpensiveOperationContext,
	ReportContext,
	StartAnalysisContext,
)
from services.analysis.approval_gate import ApprovalGate
from services.analysis.exceptions import ReportGenerationError
from services.analysis.session import AnalysisSession
from services.openai.cost_generator import CostGenerator
from services.openai.pair_analyzer import ImagePairAnalyzer
from services.openai.report_generator import EnergyReportGenerator
from utils.settings import AnalysisSettings

PROGRESS_ENGINE_START = 5
PROGRESS_PAIRS_START = 10
PROGRESS_PAIRS_BAND = 70
PROGRESS_REPORT_DECLINED = 85
PROGRESS_REPORT_STARTED = 90

MAX_REVIEW_ANOMALIES = 3


def pair_progress(processed: int, total: int) -> int:
	"""Progress after ``processed`` of ``total`` pairs, inside the per-pair band."""
	if total <= 0:
		return PROGRESS_PAIRS_START + PROGRESS_PAIRS_BAND
	return PROGRESS_PAIRS_START + round(PROGRESS_PAIRS_BAND * min(processed, total) / total)


def review_interval(total: int) -> int:
	"""Number of pairs between severe-anomaly review checkpoints."""
	return max(1, total // 3)


class ThermalAnalysisOrchestrator:
	"""Sequence the step executors over a session's image pairs."""

	def __init__(
		self,
		session: AnalysisSession,
		pair_analyzer: ImagePairAnalyzer,
		report_generator: EnergyReportGenerator,
		settings: Optional[AnalysisSettings] = None,
		cost_generator: Optional[CostGenerator] = None,
	) -> None:
		self.session = session
		self.pair_analyzer = pair_analyzer
		self.report_generator = report_generator
		self.settings = settings or AnalysisSettings()
		self.cost_generator = cost_generator or CostGenerator()
		self._cancel = asyncio.Event()

	@property
	def cancelled(self) -> bool:
		return self._cancel.is_set()

	def reset_cancellation(self) -> None:
		self._cancel = asyncio.Event()

	def prepare(self) -> None:
		"""Move the session into `analyzing` before the run task is scheduled."""
		self.session.begin_run(len(self.session.pending_pairs()))

	def request_stop(self) -> None:
		self._cancel.set()
		self.session.signal_stop()

	async def run(self) -> None:
		"""Execute one run prepared by `prepare()`; never raises for ordinary failures."""
		session = self.session
		logging.info("Starting analysis run for session %s", session.session_id)
		try:
			await self._run()
		except Exception as exc:
			logging.exception("Analysis run for session %s failed", session.session_id)
			session.fail(str(exc) or exc.__class__.__name__)
		logging.info("Analysis run for session %s finished with status %s", session.session_id, session.status.value)

	async def _run(self) -> None:
		session = self.session
		gate = ApprovalGate(
			session,
			self._cancel,
			poll_interval=self.settings.approval_poll_interval,
			timeout=self.settings.approval_timeout,
		)
		pairs = session.pending_pairs()
		fresh_run = not session.state.processed_pair_ids
		if self.cancelled:
			return
		session.update_progress(PROGRESS_ENGINE_START, "Initializing AI analysis engine...")

		if not await self._pre_run_checkpoints(gate, len(pairs), fresh_run):
			return

		total = len(session.image_pairs)
		interval = review_interval(total)
		building_context = session.building_info.context_line()
		for pair in pairs:
			if self.cancelled:
				break
			session.start_pair(session.image_pairs.index(pair) + 1, pair)
			result = await self.pair_analyzer.analyze(pair, building_context)
			processed = len(session.state.processed_pair_ids) + 1
			session.record_pair_result(pair, result.anomalies, result.summary, pair_progress(processed, total))
			if self.cancelled:
				break
			if processed % interval == 0 and not await self._review_severe_anomalies(gate):
				return

		if self.cancelled:
			self._halt("Analysis was stopped during processing")
			return

		if not await self._report_step(gate):
			return
		if self.cancelled:
			self._halt("Analysis was stopped during report generation")
			return
		session.complete()

	async def _pre_run_checkpoints(self, gate: ApprovalGate, pair_count: int, fresh_run: bool) -> bool:
		"""Optional start and cost approvals; False means the run must end."""
		session = self.session
		building = session.building_info
		if self.settings.require_start_approval and fresh_run:
			approved = await gate.request_approval(
				ApprovalType.START_ANALYSIS,
				"Start Thermal Analysis",
				f"Analyze {pair_count} image pairs of {building.name} with the vision model.",
				StartAnalysisContext(building_name=building.name, image_pair_count=pair_count),
			)
			if not approved:
				self._halt("Analysis was not approved to start")
				return False

		threshold = self.settings.expensive_pair_threshold
		if threshold and pair_count > threshold:
			model = self.settings.analysis_model
			approved = await gate.request_approval(
				ApprovalType.EXPENSIVE_OPERATION,
				"Large Analysis Batch",
				f"{pair_count} image pairs are queued, more than the configured limit of {threshold}. "
				"Each pair is a separate vision model call.",
				ExpensiveOperationContext(
					operation="Image pair analysis",
					image_pair_count=pair_count,
					model=model,
					estimated_cost=self.cost_generator.pair_analysis_estimate(pair_count, model),
				),
			)
			if not approved:
				self._halt("Analysis stopped: large analysis batch was not approved")
				return False
		return not self.cancelled

	async def _review_severe_anomalies(self, gate: ApprovalGate) -> bool:
		"""Escalate severe anomalies not reviewed yet; False means the run must end."""
		session = self.session
		state = session.state
		severe = session.severe_anomalies()
		escalated = set(state.escalated_anomaly_ids)
		new_severe = [a for a in severe if a.id not in escalated]
		if not new_severe:
			return True
		session.mark_escalated(a.id for a in new_severe)

		recent = severe[-MAX_REVIEW_ANOMALIES:]
		images = []
		for anomaly in recent:
			pair = session.pair_by_id(anomaly.image_pair_id)
			if pair is not None and all(img["id"] != pair.id for img in images):
				images.append({"id": pair.id, "label": pair.label, "rgb_url": pair.rgb_url, "thermal_url": pair.thermal_url})
		analyzed = len(state.processed_pair_ids)
		remaining = len(session.image_pairs) - analyzed

		approved = await gate.request_approval(
			ApprovalType.ANOMALY_DETECTION,
			"Critical Thermal Issues Found",
			f"Found {len(severe)} severe thermal anomalies that may indicate serious energy efficiency problems. "
			f"Review the findings and decide whether to continue analyzing the remaining {remaining} image pairs.",
			AnomalyReviewContext(
				severe_count=len(severe),
				total_anomalies=len(state.detected_anomalies),
				images_analyzed=analyzed,
				images_remaining=remaining,
				associated_images=images,
				critical_anomalies=[
					{
						"id": a.id,
						"location": a.location,
						"description": a.description,
						"severity": a.severity.value,
						"confidence": a.confidence,
						"temperature_differential": a.temperature_differential,
						"probable_cause": a.probable_cause,
						"estimated_energy_loss": a.estimated_energy_loss,
						"repair_cost": a.repair_cost,
						"repair_priority": a.repair_priority.value,
					}
					for a in recent
				],
			),
		)
		if approved:
			session.update_progress(state.progress, "Continuing analysis after approval...")
			return True
		self._halt("Analysis stopped after critical anomaly detection")
		return False

	async def _report_step(self, gate: ApprovalGate) -> bool:
		"""Ask for report approval and synthesise it; False means the run must end."""
		session = self.session
		anomalies = list(session.state.detected_anomalies)
		if not anomalies:
			return True

		model = self.settings.report_model
		approved = await gate.request_approval(
			ApprovalType.GENERATE_REPORT,
			"Generate Comprehensive Report",
			f"Generate detailed energy efficiency report with EU rating for {len(anomalies)} detected anomalies. "
			"This requires additional AI processing.",
			ReportContext(
				anomaly_count=len(anomalies),
				severe_count=sum(a.severity is Severity.SEVERE for a in anomalies),
				moderate_count=sum(a.severity is Severity.MODERATE for a in anomalies),
				minor_count=sum(a.severity is Severity.MINOR for a in anomalies),
				estimated_cost=self.cost_generator.report_estimate(len(anomalies), model),
			),
		)
		if self.cancelled or session.status is AnalysisStatus.STOPPED:
			self._halt("Analysis was stopped before the report")
			return False
		if not approved:
			session.update_progress(PROGRESS_REPORT_DECLINED, "Analysis completed without detailed report")
			return True

		session.update_progress(PROGRESS_REPORT_STARTED, "Generating comprehensive energy report...")
		try:
			report = await self.report_generator.generate(session.building_info, anomalies)
		except ReportGenerationError as exc:
			session.record_report_failure(str(exc))
			return True
		session.store_report(report.markdown, report.rating)
		return True

	def _halt(self, message: str) -> None:
		"""Stop after a denied checkpoint unless a stop already did."""
		if self.session.status is not AnalysisStatus.STOPPED:
			self.session.mark_stopped(message)
