"""FastAPI routes for thermal analysis sessions."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field, field_validator

from controllers import analysis_controller as controller
from models.analysis_models import BuildingInfo, BuildingType, ImagePair
from models.approval_models import ApprovalDecision
from utils.media_validation import validate_image_url

router = APIRouter(prefix="/analyses")


class BuildingInfoPayload(BaseModel):
	name: str = Field(min_length=1)
	address: str
	building_id: str
	construction_year: int = Field(ge=1000, le=2100)
	building_type: BuildingType
	inspector: str
	inspection_date: str
	inspection_time: str
	outside_temperature: str
	notes: Optional[str] = None

	def to_domain(self) -> BuildingInfo:
		return BuildingInfo(**self.model_dump())


class ImagePairPayload(BaseModel):
	id: str = Field(min_length=1)
	label: str = Field(min_length=1)
	rgb_url: str
	thermal_url: str

	@field_validator("rgb_url", "thermal_url")
	@classmethod
	def _check_url(cls, value: str) -> str:
		return validate_image_url(value)

	def to_domain(self) -> ImagePair:
		return ImagePair(id=self.id, label=self.label, rgb_url=self.rgb_url, thermal_url=self.thermal_url)


class InitializePayload(BaseModel):
	building_info: BuildingInfoPayload
	image_pairs: List[ImagePairPayload] = Field(default_factory=list)


class CreatePayload(BaseModel):
	building_info: Optional[BuildingInfoPayload] = None
	image_pairs: List[ImagePairPayload] = Field(default_factory=list)


class ApprovalPayload(BaseModel):
	approval_id: str = Field(min_length=1)
	approved: bool
	reason: Optional[str] = None

	def to_domain(self) -> ApprovalDecision:
		reason = self.reason.strip() if self.reason else None
		return ApprovalDecision(approval_id=self.approval_id, approved=self.approved, reason=reason or None)


async def _guard(call):
	try:
		return await call
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("")
async def create_session_route(request: Request, payload: Optional[CreatePayload] = None):
	payload = payload or CreatePayload()
	building = payload.building_info.to_domain() if payload.building_info else None
	pairs = [p.to_domain() for p in payload.image_pairs]
	return await _guard(controller.create_session(request, building, pairs))


@router.get("")
async def list_sessions_route(request: Request):
	return await _guard(controller.list_sessions(request))


@router.get("/{session_id}")
async def get_session_route(request: Request, session_id: str):
	return await _guard(controller.get_snapshot(request, session_id))


@router.delete("/{session_id}")
async def delete_session_route(request: Request, session_id: str):
	return await _guard(controller.delete_session(request, session_id))


@router.post("/{session_id}/initialize")
async def initialize_route(request: Request, session_id: str, payload: InitializePayload):
	return await _guard(
		controller.initialize_session(
			request,
			session_id,
			payload.building_info.to_domain(),
			[p.to_domain() for p in payload.image_pairs],
		)
	)


@router.post("/{session_id}/start")
async def start_route(request: Request, session_id: str):
	return await _guard(controller.start_analysis(request, session_id))


@router.post("/{session_id}/stop")
async def stop_route(request: Request, session_id: str):
	return await _guard(controller.stop_analysis(request, session_id))


@router.post("/{session_id}/restart")
async def restart_route(request: Request, session_id: str):
	return await _guard(controller.restart_analysis(request, session_id))


@router.post("/{session_id}/approvals")
async def approval_route(request: Request, session_id: str, payload: ApprovalPayload):
	return await _guard(controller.provide_approval(request, session_id, payload.to_domain()))


@router.get("/{session_id}/state")
async def state_route(request: Request, session_id: str):
	return await _guard(controller.get_analysis_state(request, session_id))


@router.get("/{session_id}/anomalies")
async def anomalies_route(request: Request, session_id: str):
	return await _guard(controller.get_detected_anomalies(request, session_id))


@router.get("/{session_id}/report")
async def report_route(request: Request, session_id: str):
	return await _guard(controller.get_final_report(request, session_id))


@router.get("/{session_id}/building")
async def building_route(request: Request, session_id: str):
	return await _guard(controller.get_building_info(request, session_id))


@router.get("/{session_id}/image-pairs")
async def image_pairs_route(request: Request, session_id: str):
	return await _guard(controller.get_image_pairs(request, session_id))


@router.get("/{session_id}/approvals/pending")
async def pending_approvals_route(request: Request, session_id: str):
	return await _guard(controller.get_pending_approvals(request, session_id))


@router.get("/{session_id}/approvals/history")
async def approval_history_route(request: Request, session_id: str):
	return await _guard(controller.get_approval_history(request, session_id))
