"""
Audience routes: rule previews and saved segments.

Routes only speak HTTP; all logic lives in AudienceApplicationService.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from crm.api.deps import get_audience_service, get_current_user
from crm.schemas.rules import RuleGroupSchema
from crm.services.audience.application import AudienceApplicationService

router = APIRouter(prefix="/audiences", tags=["audiences"])


class PreviewRequest(BaseModel):
    rules: RuleGroupSchema


class CreateSegmentRequest(BaseModel):
    name: str = Field(..., min_length=3, description="Unique segment name")
    description: Optional[str] = None
    rules: RuleGroupSchema


@router.post("/preview")
async def preview_audience(
    body: PreviewRequest,
    service: AudienceApplicationService = Depends(get_audience_service),
):
    """Counts the customers a rule set selects; nothing is stored."""
    resolution = await service.preview(body.rules.to_rule_group())
    response = {"audienceSize": resolution.count}
    if resolution.note:
        response["message"] = resolution.note
    return response


@router.post("", status_code=201)
async def create_segment(
    body: CreateSegmentRequest,
    user: str = Depends(get_current_user),
    service: AudienceApplicationService = Depends(get_audience_service),
):
    segment = await service.create_segment(
        name=body.name.strip(),
        rules=body.rules.to_rule_group(),
        description=body.description,
        created_by=user,
    )
    return {"message": "Audience segment created", "audienceSegment": segment.to_dict()}


@router.get("")
async def list_segments(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: AudienceApplicationService = Depends(get_audience_service),
):
    segments = await service.list_segments(limit=limit, offset=offset)
    return {"audienceSegments": [s.to_dict() for s in segments]}


@router.get("/{segment_id}")
async def get_segment(
    segment_id: str,
    service: AudienceApplicationService = Depends(get_audience_service),
):
    segment = await service.get_segment(segment_id)
    return {"audienceSegment": segment.to_dict()}
