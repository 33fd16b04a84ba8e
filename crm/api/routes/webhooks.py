"""
Delivery receipt webhook (vendor -> CRM).

Errors are reported to the caller but never retried here: a missing
log is a 404, a malformed payload a 400.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from crm.api.deps import get_campaigns_service
from crm.services.campaigns.application import CampaignsApplicationService
from crm.services.campaigns.types import DeliveryReceipt, LogStatus

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


class DeliveryReceiptPayload(BaseModel):
    communicationLogId: UUID
    status: LogStatus
    vendorMessageId: str
    timestamp: datetime
    failureReason: Optional[str] = None


@router.post("/delivery-receipts")
async def delivery_receipt(
    payload: DeliveryReceiptPayload,
    service: CampaignsApplicationService = Depends(get_campaigns_service),
):
    log = await service.process_receipt(DeliveryReceipt(
        log_id=str(payload.communicationLogId),
        status=payload.status,
        vendor_message_id=payload.vendorMessageId,
        timestamp=payload.timestamp,
        failure_reason=payload.failureReason,
    ))
    return {"message": "Log updated successfully via webhook", "status": log.status.value}
