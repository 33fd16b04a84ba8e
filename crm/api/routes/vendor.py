"""
Stub vendor endpoint (stands in for a real messaging provider).
"""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from crm.services.vendor_stub import VendorStub, get_vendor_stub

router = APIRouter(prefix="/dummy-vendor", tags=["vendor"])
logger = logging.getLogger(__name__)


class VendorSendRequest(BaseModel):
    customerId: str = Field(..., min_length=1)
    customerEmail: str = ""
    message: str = Field(..., min_length=1)
    communicationLogId: str = Field(..., min_length=1)
    callbackUrl: str = Field(..., min_length=1)


@router.post("/send")
async def vendor_send(
    body: VendorSendRequest,
    stub: VendorStub = Depends(get_vendor_stub),
):
    """
    Acknowledges the message at once; the delivery receipt is posted
    to callbackUrl after the simulated latency.
    """
    ack = stub.accept(body.communicationLogId, body.callbackUrl)
    return ack.to_dict()
