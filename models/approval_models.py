"""Human-approval checkpoint models.

Each approval type carries its own context payload; the payload is flattened
to a plain mapping when the approval is pushed to viewers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ApprovalType(str, Enum):
	START_ANALYSIS = "start_analysis"
	ANOMALY_DETECTION = "anomaly_detection"
	GENERATE_REPORT = "generate_report"
	EXPENSIVE_OPERATION = "expensive_operation"


@dataclass(frozen=True)
class StartAnalysisContext:
	building_name: str
	image_pair_count: int

	def to_dict(self) -> Dict[str, Any]:
		return {"building_name": self.building_name, "image_pair_count": self.image_pair_count}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "StartAnalysisContext":
		return cls(building_name=data["building_name"], image_pair_count=int(data["image_pair_count"]))


@dataclass(frozen=True)
class AnomalyReviewContext:
	"""Severe findings shown to the reviewer, with the images they came from."""

	severe_count: int
	total_anomalies: int
	images_analyzed: int
	images_remaining: int
	associated_images: List[Dict[str, str]] = field(default_factory=list)
	critical_anomalies: List[Dict[str, Any]] = field(default_factory=list)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"severe_count": self.severe_count,
			"total_anomalies": self.total_anomalies,
			"images_analyzed": self.images_analyzed,
			"images_remaining": self.images_remaining,
			"associated_images": [dict(i) for i in self.associated_images],
			"critical_anomalies": [dict(a) for a in self.critical_anomalies],
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "AnomalyReviewContext":
		return cls(
			severe_count=int(data["severe_count"]),
			total_anomalies=int(data["total_anomalies"]),
			images_analyzed=int(data["images_analyzed"]),
			images_remaining=int(data["images_remaining"]),
			associated_images=list(data.get("associated_images", [])),
			critical_anomalies=list(data.get("critical_anomalies", [])),
		)


@dataclass(frozen=True)
class ReportContext:
	anomaly_count: int
	severe_count: int
	moderate_count: int
	minor_count: int
	report_type: str = "Comprehensive Energy Efficiency Report"
	estimated_cost: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return {
			"anomaly_count": self.anomaly_count,
			"severe_count": self.severe_count,
			"moderate_count": self.moderate_count,
			"minor_count": self.minor_count,
			"report_type": self.report_type,
			"estimated_cost": self.estimated_cost,
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "ReportContext":
		return cls(
			anomaly_count=int(data["anomaly_count"]),
			severe_count=int(data["severe_count"]),
			moderate_count=int(data["moderate_count"]),
			minor_count=int(data["minor_count"]),
			report_type=data.get("report_type", "Comprehensive Energy Efficiency Report"),
			estimated_cost=data.get("estimated_cost"),
		)


@dataclass(frozen=True)
class ExpensiveOperationContext:
	operation: str
	image_pair_count: int
	model: str
	estimated_cost: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return {
			"operation": self.operation,
			"image_pair_count": self.image_pair_count,
			"model": self.model,
			"estimated_cost": self.estimated_cost,
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "ExpensiveOperationContext":
		return cls(
			operation=data["operation"],
			image_pair_count=int(data["image_pair_count"]),
			model=data["model"],
			estimated_cost=data.get("estimated_cost"),
		)


ApprovalContext = Union[StartAnalysisContext, AnomalyReviewContext, ReportContext, ExpensiveOperationContext]

CONTEXT_TYPES = {
	ApprovalType.START_ANALYSIS: StartAnalysisContext,
	ApprovalType.ANOMALY_DETECTION: AnomalyReviewContext,
	ApprovalType.GENERATE_REPORT: ReportContext,
	ApprovalType.EXPENSIVE_OPERATION: ExpensiveOperationContext,
}


@dataclass(frozen=True)
class PendingApproval:
	"""An outstanding request for a human decision."""

	id: str
	type: ApprovalType
	title: str
	description: str
	context: ApprovalContext
	timestamp: float = field(default_factory=lambda: time.time())

	def __post_init__(self) -> None:
		expected = CONTEXT_TYPES[self.type]
		if not isinstance(self.context, expected):
			raise TypeError(f"{self.type.value} approvals require a {expected.__name__} context")

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"type": self.type.value,
			"title": self.title,
			"description": self.description,
			"context": self.context.to_dict(),
			"timestamp": self.timestamp,
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "PendingApproval":
		approval_type = ApprovalType(data["type"])
		return cls(
			id=data["id"],
			type=approval_type,
			title=data["title"],
			description=data["description"],
			context=CONTEXT_TYPES[approval_type].from_dict(data.get("context") or {}),
			timestamp=float(data.get("timestamp") or time.time()),
		)


@dataclass(frozen=True)
class ApprovalDecision:
	approval_id: str
	approved: bool
	reason: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return {"approval_id": self.approval_id, "approved": self.approved, "reason": self.reason}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "ApprovalDecision":
		return cls(approval_id=data["approval_id"], approved=bool(data["approved"]), reason=data.get("reason"))
