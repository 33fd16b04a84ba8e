"""
Stub message vendor.

Accepts a send request, picks an outcome (SENT with probability
VENDOR_SUCCESS_RATE, FAILED otherwise) and, after a random delay,
posts exactly one delivery receipt to the request's callback URL.
"""
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx

from crm.core.config import settings
from crm.core.tasks import schedule_with_delay
from crm.core.timezone import iso_utc
from crm.services.campaigns.types import LogStatus
from crm.services.http_client import http_post

logger = logging.getLogger(__name__)


@dataclass
class VendorAck:
    """Synchronous answer to a send request."""

    status: LogStatus
    vendor_message_id: str
    delay_seconds: float

    def to_dict(self) -> dict:
        return {
            "message": "Message processing simulated by vendor",
            "status": self.status.value,
            "vendorMessageId": self.vendor_message_id,
        }


class VendorStub:
    def __init__(
        self,
        success_rate: Optional[float] = None,
        min_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        rng: Optional[random.Random] = None,
        post: Callable[..., Awaitable[httpx.Response]] = http_post,
    ):
        self.success_rate = settings.VENDOR_SUCCESS_RATE if success_rate is None else success_rate
        self.min_delay = settings.VENDOR_MIN_DELAY_SECONDS if min_delay is None else min_delay
        self.max_delay = settings.VENDOR_MAX_DELAY_SECONDS if max_delay is None else max_delay
        self.rng = rng or random.Random()
        self._post = post

    def decide(self, log_id: str) -> VendorAck:
        """Picks the outcome and latency for one message."""
        status = LogStatus.SENT if self.rng.random() < self.success_rate else LogStatus.FAILED
        delay = self.rng.uniform(self.min_delay, self.max_delay)
        vendor_message_id = f"vendor_{log_id}_{self.rng.getrandbits(32):08x}"
        return VendorAck(status=status, vendor_message_id=vendor_message_id, delay_seconds=delay)

    def build_receipt(self, log_id: str, ack: VendorAck) -> dict:
        payload = {
            "communicationLogId": log_id,
            "status": ack.status.value,
            "vendorMessageId": ack.vendor_message_id,
            "timestamp": iso_utc(),
        }
        if ack.status == LogStatus.FAILED:
            payload["failureReason"] = settings.VENDOR_FAILURE_REASON
        return payload

    async def send_receipt(self, callback_url: str, log_id: str, ack: VendorAck) -> None:
        """Posts the receipt once; callback failures are only logged."""
        payload = self.build_receipt(log_id, ack)
        try:
            response = await self._post(callback_url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"[VendorStub] Callback for log {log_id} failed: {e}")
            return

        if response.is_success:
            logger.debug(f"[VendorStub] Callback for log {log_id} delivered ({ack.status.value})")
        else:
            logger.error(
                f"[VendorStub] Callback for log {log_id} rejected: "
                f"HTTP {response.status_code} {response.text[:200]}"
            )

    def accept(self, log_id: str, callback_url: str) -> VendorAck:
        """Acknowledges a send and schedules its receipt."""
        ack = self.decide(log_id)
        logger.info(
            f"[VendorStub] Log {log_id}: {ack.status.value} in {ack.delay_seconds:.2f}s",
            extra={"log_id": log_id},
        )
        schedule_with_delay(
            self.send_receipt(callback_url, log_id, ack),
            delay_seconds=ack.delay_seconds,
            name=f"vendor_callback:{log_id}",
        )
        return ack


_vendor_stub: Optional[VendorStub] = None


def get_vendor_stub() -> VendorStub:
    """Shared stub (FastAPI dependency)."""
    global _vendor_stub
    if _vendor_stub is None:
        _vendor_stub = VendorStub()
    return _vendor_stub
