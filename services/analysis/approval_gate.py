"""Blocking human-approval checkpoint for an analysis run."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from uuid import uuid4

from models.approval_models import ApprovalContext, ApprovalType, PendingApproval
from services.analysis.session import AnalysisSession


def new_approval_id(approval_type: ApprovalType) -> str:
	return f"{approval_type.value}_{uuid4().hex}"


class ApprovalGate:
	"""Publish a pending approval and suspend the run until it is decided.

	The wait wakes as soon as the session's approval signal is set (a decision
	was recorded or a stop was requested) and otherwise re-checks the session
	every ``poll_interval`` seconds.
	"""

	def __init__(
		self,
		session: AnalysisSession,
		cancel_event: asyncio.Event,
		*,
		poll_interval: float = 1.0,
		timeout: Optional[float] = None,
	) -> None:
		self.session = session
		self.cancel_event = cancel_event
		self.poll_interval = poll_interval
		self.timeout = timeout

	async def request_approval(
		self,
		approval_type: ApprovalType,
		title: str,
		description: str,
		context: ApprovalContext,
	) -> bool:
		"""Return the human decision, or False when the run is cancelled."""
		approval = PendingApproval(
			id=new_approval_id(approval_type),
			type=approval_type,
			title=title,
			description=description,
			context=context,
		)
		self.session.open_approval(approval)
		logging.info("Session %s waiting for approval %s (%s)", self.session.session_id, approval.id, title)

		loop = asyncio.get_running_loop()
		deadline = loop.time() + self.timeout if self.timeout else None
		signal = self.session.approval_signal
		while True:
			signal.clear()
			if self.cancel_event.is_set():
				self.session.withdraw_approval(approval)
				logging.info("Approval %s withdrawn after stop request", approval.id)
				return False
			decision = self.session.find_decision(approval.id)
			if decision is not None:
				self.session.resolve_approval(approval, decision)
				logging.info("Approval %s decided: approved=%s", approval.id, decision.approved)
				return decision.approved
			if deadline is not None and loop.time() >= deadline:
				self.session.withdraw_approval(approval, f"{title}: no decision within {self.timeout:g}s, analysis stopped")
				logging.info("Approval %s timed out", approval.id)
				return False

			wait_for = self.poll_interval
			if deadline is not None:
				wait_for = max(0.0, min(wait_for, deadline - loop.time()))
			try:
				await asyncio.wait_for(signal.wait(), timeout=wait_for)
			except asyncio.TimeoutError:
				pass
