"""
Campaign routes.

Both dispatch entry points (creation with sendImmediately and
POST /campaigns/{id}/deliver) end up in the same dispatcher.
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from crm.api.deps import get_campaigns_service, get_current_user
from crm.schemas.rules import RuleGroupSchema
from crm.services.campaigns.application import CampaignsApplicationService

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


class CreateCampaignRequest(BaseModel):
    """Campaign creation payload."""
    name: str = Field(..., min_length=3)
    audienceRules: RuleGroupSchema
    messageTemplate: str = Field(
        ..., min_length=10, description="Supports {{name}}, {{email}}, {{totalSpends}}, {{visitCount}}"
    )
    tags: List[str] = []
    sendImmediately: bool = Field(default=True, description="Dispatch right after creation")


@router.post("", status_code=201)
async def create_campaign(
    body: CreateCampaignRequest,
    user: str = Depends(get_current_user),
    service: CampaignsApplicationService = Depends(get_campaigns_service),
):
    """
    Creates a campaign with its audience size snapshot and, by
    default, dispatches it immediately.
    """
    created = await service.create_campaign(
        name=body.name.strip(),
        audience_rules=body.audienceRules.to_rule_group(),
        message_template=body.messageTemplate,
        tags=body.tags,
        send_immediately=body.sendImmediately,
        created_by=user,
    )
    return {"message": "Campaign created successfully", **created.to_dict()}


@router.get("")
async def list_campaigns(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: CampaignsApplicationService = Depends(get_campaigns_service),
):
    campaigns = await service.list_campaigns(limit=limit, offset=offset)
    return {"campaigns": [c.to_dict() for c in campaigns]}


@router.get("/{campaign_id}")
async def get_campaign(
    campaign_id: str,
    service: CampaignsApplicationService = Depends(get_campaigns_service),
):
    campaign = await service.get_campaign(campaign_id)
    return {"campaign": campaign.to_dict()}


@router.post("/{campaign_id}/deliver")
async def deliver_campaign(
    campaign_id: str,
    service: CampaignsApplicationService = Depends(get_campaigns_service),
):
    """Starts delivery; 409 if the campaign is already SENDING or COMPLETED."""
    result = await service.deliver(campaign_id)
    if result.audience_size == 0:
        message = "No customers found in the audience. Campaign marked as completed."
    else:
        message = "Campaign delivery initiated"
    return {"message": message, **result.to_dict()}


@router.get("/{campaign_id}/logs")
async def list_campaign_logs(
    campaign_id: str,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: CampaignsApplicationService = Depends(get_campaigns_service),
):
    logs = await service.list_logs(campaign_id, limit=limit, offset=offset)
    return {"logs": [log.to_dict() for log in logs]}


@router.get("/{campaign_id}/summary")
async def campaign_summary(
    campaign_id: str,
    service: CampaignsApplicationService = Depends(get_campaigns_service),
):
    """AI-written performance summary."""
    return await service.summarize(campaign_id)


@router.post("/{campaign_id}/autotag")
async def autotag_campaign(
    campaign_id: str,
    service: CampaignsApplicationService = Depends(get_campaigns_service),
):
    """Stores AI-suggested tags on the campaign."""
    tags = await service.autotag(campaign_id)
    return {"tags": tags}
