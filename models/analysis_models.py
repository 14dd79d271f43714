"""Domain models for thermal efficiency analysis sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from models.approval_models import ApprovalDecision, PendingApproval


class AnalysisStatus(str, Enum):
	IDLE = "idle"
	ANALYZING = "analyzing"
	AWAITING_APPROVAL = "awaiting_approval"
	COMPLETED = "completed"
	ERROR = "error"
	STOPPED = "stopped"

	@property
	def is_active(self) -> bool:
		return self in (AnalysisStatus.ANALYZING, AnalysisStatus.AWAITING_APPROVAL)


class BuildingType(str, Enum):
	RESIDENTIAL = "Residential"
	COMMERCIAL = "Commercial"
	INDUSTRIAL = "Industrial"


class Severity(str, Enum):
	MINOR = "minor"
	MODERATE = "moderate"
	SEVERE = "severe"


class RepairPriority(str, Enum):
	LOW = "low"
	MEDIUM = "medium"
	HIGH = "high"
	IMMEDIATE = "immediate"


class EnergyRating(str, Enum):
	A = "A"
	B = "B"
	C = "C"
	D = "D"
	E = "E"
	F = "F"
	G = "G"


@dataclass(frozen=True)
class BuildingInfo:
	"""Inspection metadata for the building under analysis."""

	name: str
	address: str
	building_id: str
	construction_year: int
	building_type: BuildingType
	inspector: str
	inspection_date: str
	inspection_time: str
	outside_temperature: str
	notes: Optional[str] = None

	def context_line(self) -> str:
		"""Return the one-line building context handed to the vision model."""
		return (
			f"{self.name} ({self.building_type.value}, built {self.construction_year}) in {self.address}. "
			f"Outside temp: {self.outside_temperature}°C during inspection on {self.inspection_date}."
		)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"name": self.name,
			"address": self.address,
			"building_id": self.building_id,
			"construction_year": self.construction_year,
			"building_type": self.building_type.value,
			"inspector": self.inspector,
			"inspection_date": self.inspection_date,
			"inspection_time": self.inspection_time,
			"outside_temperature": self.outside_temperature,
			"notes": self.notes,
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "BuildingInfo":
		return cls(
			name=data["name"],
			address=data["address"],
			building_id=data["building_id"],
			construction_year=int(data["construction_year"]),
			building_type=BuildingType(data["building_type"]),
			inspector=data["inspector"],
			inspection_date=data["inspection_date"],
			inspection_time=data["inspection_time"],
			outside_temperature=str(data["outside_temperature"]),
			notes=data.get("notes"),
		)


@dataclass(frozen=True)
class ImagePair:
	"""A visible-spectrum and a thermal image of the same building area."""

	id: str
	label: str
	rgb_url: str
	thermal_url: str

	def to_dict(self) -> Dict[str, Any]:
		return {"id": self.id, "label": self.label, "rgb_url": self.rgb_url, "thermal_url": self.thermal_url}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "ImagePair":
		return cls(id=data["id"], label=data["label"], rgb_url=data["rgb_url"], thermal_url=data["thermal_url"])


@dataclass(frozen=True)
class ThermalAnomaly:
	"""One thermal defect detected in an image pair.

	Attributes:
		id: Unique per detection, prefixed with the slugged pair label.
		coordinates: Bounding box ``[x1, y1, x2, y2]`` normalised to 0.0-1.0.
		confidence: Model confidence in ``[0, 1]``.
		image_pair_id: Id of the image pair the anomaly was found in.
	"""

	id: str
	location: str
	severity: Severity
	description: str
	temperature_differential: str
	probable_cause: str
	coordinates: List[float]
	estimated_energy_loss: str
	repair_cost: str
	repair_priority: RepairPriority
	confidence: float
	image_pair_id: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return {
			"id": self.id,
			"location": self.location,
			"severity": self.severity.value,
			"description": self.description,
			"temperature_differential": self.temperature_differential,
			"probable_cause": self.probable_cause,
			"coordinates": list(self.coordinates),
			"estimated_energy_loss": self.estimated_energy_loss,
			"repair_cost": self.repair_cost,
			"repair_priority": self.repair_priority.value,
			"confidence": self.confidence,
			"image_pair_id": self.image_pair_id,
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "ThermalAnomaly":
		return cls(
			id=data["id"],
			location=data["location"],
			severity=Severity(data["severity"]),
			description=data["description"],
			temperature_differential=data["temperature_differential"],
			probable_cause=data["probable_cause"],
			coordinates=[float(c) for c in data["coordinates"]],
			estimated_energy_loss=data["estimated_energy_loss"],
			repair_cost=data["repair_cost"],
			repair_priority=RepairPriority(data["repair_priority"]),
			confidence=float(data["confidence"]),
			image_pair_id=data.get("image_pair_id"),
		)


@dataclass
class AnalysisState:
	"""Live orchestration state of one session."""

	status: AnalysisStatus = AnalysisStatus.IDLE
	progress: int = 0
	current_image_pair: Optional[int] = None
	total_image_pairs: Optional[int] = None
	current_pair_label: Optional[str] = None
	analysis_log: List[str] = field(default_factory=list)
	detected_anomalies: List[ThermalAnomaly] = field(default_factory=list)
	final_report: Optional[str] = None
	energy_rating: Optional[EnergyRating] = None
	error: Optional[str] = None
	pending_approvals: List[PendingApproval] = field(default_factory=list)
	approval_history: List[ApprovalDecision] = field(default_factory=list)
	processed_pair_ids: List[str] = field(default_factory=list)
	escalated_anomaly_ids: List[str] = field(default_factory=list)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"status": self.status.value,
			"progress": self.progress,
			"current_image_pair": self.current_image_pair,
			"total_image_pairs": self.total_image_pairs,
			"current_pair_label": self.current_pair_label,
			"analysis_log": list(self.analysis_log),
			"detected_anomalies": [a.to_dict() for a in self.detected_anomalies],
			"final_report": self.final_report,
			"energy_rating": self.energy_rating.value if self.energy_rating else None,
			"error": self.error,
			"pending_approvals": [p.to_dict() for p in self.pending_approvals],
			"approval_history": [d.to_dict() for d in self.approval_history],
			"processed_pair_ids": list(self.processed_pair_ids),
			"escalated_anomaly_ids": list(self.escalated_anomaly_ids),
		}

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "AnalysisState":
		rating = data.get("energy_rating")
		return cls(
			status=AnalysisStatus(data.get("status", AnalysisStatus.IDLE.value)),
			progress=int(data.get("progress", 0)),
			current_image_pair=data.get("current_image_pair"),
			total_image_pairs=data.get("total_image_pairs"),
			current_pair_label=data.get("current_pair_label"),
			analysis_log=list(data.get("analysis_log", [])),
			detected_anomalies=[ThermalAnomaly.from_dict(a) for a in data.get("detected_anomalies", [])],
			final_report=data.get("final_report"),
			energy_rating=EnergyRating(rating) if rating else None,
			error=data.get("error"),
			pending_approvals=[PendingApproval.from_dict(p) for p in data.get("pending_approvals", [])],
			approval_history=[ApprovalDecision.from_dict(d) for d in data.get("approval_history", [])],
			processed_pair_ids=list(data.get("processed_pair_ids", [])),
			escalated_anomaly_ids=list(data.get("escalated_anomaly_ids", [])),
		)
