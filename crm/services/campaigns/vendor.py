"""
Outbound message vendor client.

One POST per recipient. Network errors and non-2xx answers raise
VendorDispatchError; the vendor reports the actual delivery outcome
later through the receipt webhook.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from crm.core.config import settings
from crm.core.exceptions import VendorDispatchError
from crm.services.http_client import get_http_client

logger = logging.getLogger(__name__)


@dataclass
class VendorMessage:
    """Payload of a vendor send request."""

    customer_id: str
    customer_email: str
    message: str
    communication_log_id: str
    callback_url: str

    def to_payload(self) -> dict:
        return {
            "customerId": self.customer_id,
            "customerEmail": self.customer_email,
            "message": self.message,
            "communicationLogId": self.communication_log_id,
            "callbackUrl": self.callback_url,
        }


class VendorClient:
    """HTTP client for the message vendor."""

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url or settings.vendor_api_url
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_http_client()

    async def send(self, message: VendorMessage) -> dict:
        """
        Hands one message to the vendor.

        Returns:
            Vendor acknowledgement body (may be empty)

        Raises:
            VendorDispatchError: network failure or non-2xx response
        """
        log_id = message.communication_log_id
        client = await self._get_client()

        try:
            response = await client.post(self.url, json=message.to_payload())
        except httpx.HTTPError as e:
            logger.error(f"[Vendor] Network error for log {log_id}: {e}")
            raise VendorDispatchError(f"Network error: {e}", log_id=log_id, original_error=e)

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if not response.is_success:
            detail = body.get("message") or "Failed to dispatch"
            logger.error(f"[Vendor] HTTP {response.status_code} for log {log_id}: {detail}")
            raise VendorDispatchError(
                f"Vendor API error: {response.status_code} - {detail}", log_id=log_id
            )

        logger.debug(f"[Vendor] Accepted log {log_id}: {body.get('message', '')}")
        return body
