"""
Delivery receipt processor.

Applies vendor callbacks to communication logs and rolls them up
into campaign counters. Each receipt is processed on its own: there
is no deduplication and no retry queue.
"""
import logging
from datetime import datetime
from typing import Optional

from crm.core.exceptions import LogNotFound
from crm.core.timezone import iso_utc, utc_now
from crm.repositories.campaign import CampaignStore
from crm.repositories.communication_log import CommunicationLogStore
from crm.services.campaigns.types import (
    DEFAULT_FAILURE_REASON,
    SUCCESS_STATUSES,
    TERMINAL_STATUSES,
    CampaignStatus,
    CommunicationLog,
    DeliveryReceipt,
    LogStatus,
)

logger = logging.getLogger(__name__)


class DeliveryReceiptProcessor:
    """Updates logs and campaign aggregates from delivery receipts."""

    def __init__(self, logs: CommunicationLogStore, campaigns: CampaignStore):
        self.logs = logs
        self.campaigns = campaigns

    async def on_receipt(self, receipt: DeliveryReceipt) -> CommunicationLog:
        """
        Processes one vendor callback.

        Raises:
            LogNotFound: the log does not exist (yet)
        """
        log = await self.logs.get_by_id(receipt.log_id)
        if log is None:
            logger.warning(f"[Receipts] Log {receipt.log_id} not found, receipt dropped")
            raise LogNotFound(receipt.log_id)

        fields = {
            "status": receipt.status.value,
            "vendor_message_id": receipt.vendor_message_id,
        }
        timestamp = iso_utc(receipt.timestamp)
        if receipt.status in SUCCESS_STATUSES:
            fields.update(sent_at=timestamp, failed_at=None, failure_reason=None)
        elif receipt.status == LogStatus.FAILED:
            fields.update(
                failed_at=timestamp,
                failure_reason=receipt.failure_reason or DEFAULT_FAILURE_REASON,
                sent_at=None,
            )

        updated = await self.logs.update(log.id, fields)
        if updated is None:
            raise LogNotFound(receipt.log_id)

        logger.info(
            f"[Receipts] Log {log.id} -> {receipt.status.value}",
            extra={"log_id": log.id, "campaign_id": log.campaign_id},
        )

        if log.campaign_id and receipt.status in TERMINAL_STATUSES:
            await self.record_outcome(log.campaign_id, receipt.status)

        return updated

    async def mark_failed(
        self,
        log: CommunicationLog,
        reason: str,
        failed_at: Optional[datetime] = None,
    ) -> None:
        """
        Records a failure detected on our side (vendor unreachable).

        Same effect as a FAILED receipt for that log.
        """
        await self.logs.update(log.id, {
            "status": LogStatus.FAILED.value,
            "failure_reason": reason,
            "failed_at": iso_utc(failed_at or utc_now()),
            "sent_at": None,
        })
        if log.campaign_id:
            await self.record_outcome(log.campaign_id, LogStatus.FAILED)

    async def record_outcome(self, campaign_id: str, status: LogStatus) -> bool:
        """
        Increments the campaign counter for a terminal outcome and
        completes the campaign once every recipient is accounted for.

        Returns:
            True if this call moved the campaign to COMPLETED
        """
        sent = 1 if status in SUCCESS_STATUSES else 0
        failed = 1 if status == LogStatus.FAILED else 0

        campaign = await self.campaigns.increment_counters(campaign_id, sent=sent, failed=failed)
        if campaign is None:
            campaign = await self.campaigns.get_by_id(campaign_id)
        if campaign is None:
            logger.warning(f"[Receipts] Campaign {campaign_id} not found for counter update")
            return False

        if not campaign.is_settled or campaign.status == CampaignStatus.COMPLETED:
            return False

        completed = await self.campaigns.mark_completed(campaign_id)
        if completed:
            logger.info(
                f"[Receipts] Campaign {campaign_id} COMPLETED "
                f"(sent={campaign.sent_count}, failed={campaign.failed_count})",
                extra={"campaign_id": campaign_id},
            )
        return completed
