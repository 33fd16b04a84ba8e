"""
Campaign dispatcher.

State machine:
    DRAFT/FAILED --dispatch--> SENDING --receipts--> COMPLETED
                                  |
                                  +--resolution or store error--> FAILED

Both entry points (eager send on creation and the explicit deliver
trigger) call CampaignDispatcher.dispatch.
"""
import asyncio
import logging
from typing import Optional, Set

from crm.core.config import settings
from crm.core.exceptions import (
    CampaignStateConflict,
    CrmException,
    DatabaseError,
    NotFoundError,
    VendorDispatchError,
)
from crm.core.tasks import safe_create_task
from crm.repositories.campaign import CampaignStore
from crm.repositories.communication_log import CommunicationLogStore
from crm.repositories.customer import Customer, CustomerStore
from crm.services.audience.resolver import AudienceResolver
from crm.services.campaigns.personalizer import personalize
from crm.services.campaigns.receipts import DeliveryReceiptProcessor
from crm.services.campaigns.types import (
    NON_DISPATCHABLE_STATUSES,
    CampaignStatus,
    CommunicationLog,
    DispatchResult,
    LogStatus,
)
from crm.services.campaigns.vendor import VendorClient, VendorMessage

logger = logging.getLogger(__name__)


class CampaignDispatcher:
    """
    Fans a campaign out to its audience.

    Vendor calls run as detached tasks; dispatch() returns once every
    send has been initiated, without waiting for any of them.
    """

    def __init__(
        self,
        campaigns: CampaignStore,
        logs: CommunicationLogStore,
        customers: CustomerStore,
        vendor: Optional[VendorClient] = None,
        resolver: Optional[AudienceResolver] = None,
        receipts: Optional[DeliveryReceiptProcessor] = None,
        callback_url: Optional[str] = None,
    ):
        self.campaigns = campaigns
        self.logs = logs
        self.vendor = vendor or VendorClient()
        self.resolver = resolver or AudienceResolver(customers)
        self.receipts = receipts or DeliveryReceiptProcessor(logs, campaigns)
        self.callback_url = callback_url or settings.delivery_callback_url
        self._pending: Set[asyncio.Task] = set()

    async def dispatch(self, campaign_id: str) -> DispatchResult:
        """
        Starts a dispatch run.

        Raises:
            NotFoundError: unknown campaign
            CampaignStateConflict: campaign is SENDING or COMPLETED
            RuleError / DatabaseError: resolution or the audience write
                failed (the campaign is left FAILED with the reason stored)
        """
        campaign = await self.campaigns.get_by_id(campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign", campaign_id)
        if campaign.status in NON_DISPATCHABLE_STATUSES:
            raise CampaignStateConflict(campaign_id, campaign.status.value)

        # Commit point: only one concurrent caller wins the transition
        started = await self.campaigns.start_dispatch(campaign_id)
        if started is None:
            current = await self.campaigns.get_by_id(campaign_id)
            if current is None:
                raise NotFoundError("Campaign", campaign_id)
            raise CampaignStateConflict(campaign_id, current.status.value)

        logger.info(
            f"[Dispatcher] Campaign {campaign_id} SENDING ('{started.name}')",
            extra={"campaign_id": campaign_id},
        )

        resolution = None
        try:
            resolution = await self.resolver.resolve(started.audience_rules)

            if resolution.count == 0:
                await self.campaigns.update(campaign_id, {
                    "status": CampaignStatus.COMPLETED.value,
                    "audience_size": 0,
                })
                logger.info(
                    f"[Dispatcher] Campaign {campaign_id} has no audience, COMPLETED",
                    extra={"campaign_id": campaign_id},
                )
                return DispatchResult(
                    campaign_id=campaign_id,
                    status=CampaignStatus.COMPLETED,
                    audience_size=0,
                    initiated_sends=0,
                )

            await self.campaigns.update(campaign_id, {"audience_size": resolution.count})
        except Exception as e:
            detail = e.message if isinstance(e, CrmException) else str(e)
            if resolution is None:
                await self._fail(campaign_id, f"Error processing audience rules: {detail}")
            else:
                await self._fail(campaign_id, f"Error starting dispatch: {detail}")
            raise

        initiated = 0
        completed = False
        for customer in resolution.customers:
            message = personalize(started.message_template, customer)
            try:
                log = await self.logs.upsert_pending(
                    campaign_id, customer.id, message, created_by=started.created_by
                )
            except DatabaseError as e:
                logger.error(
                    f"[Dispatcher] Skipping customer {customer.id}: {e.message}",
                    extra={"campaign_id": campaign_id},
                )
                # Counted as failed so the campaign can still settle
                completed = await self._count_skipped(campaign_id) or completed
                continue

            self._track(safe_create_task(
                self._send(log, customer),
                name=f"vendor_dispatch:{log.id}",
            ))
            initiated += 1

        logger.info(
            f"[Dispatcher] Campaign {campaign_id}: {initiated}/{resolution.count} sends initiated",
            extra={"campaign_id": campaign_id},
        )
        return DispatchResult(
            campaign_id=campaign_id,
            status=CampaignStatus.COMPLETED if completed else CampaignStatus.SENDING,
            audience_size=resolution.count,
            initiated_sends=initiated,
        )

    async def _send(self, log: CommunicationLog, customer: Customer) -> None:
        """Vendor call for one recipient; failures are recorded on its log."""
        try:
            await self.vendor.send(VendorMessage(
                customer_id=customer.id,
                customer_email=customer.email,
                message=log.message,
                communication_log_id=log.id,
                callback_url=self.callback_url,
            ))
        except VendorDispatchError as e:
            await self.receipts.mark_failed(log, e.message)

    async def _count_skipped(self, campaign_id: str) -> bool:
        """Records a recipient whose log could not be written as FAILED."""
        try:
            return await self.receipts.record_outcome(campaign_id, LogStatus.FAILED)
        except DatabaseError as e:
            logger.error(f"[Dispatcher] Could not count skipped recipient for {campaign_id}: {e.message}")
            return False

    async def _fail(self, campaign_id: str, reason: str) -> None:
        logger.error(
            f"[Dispatcher] Campaign {campaign_id} FAILED: {reason}",
            extra={"campaign_id": campaign_id},
        )
        try:
            await self.campaigns.update(campaign_id, {
                "status": CampaignStatus.FAILED.value,
                "failure_reason": reason,
            })
        except DatabaseError as e:
            logger.error(f"[Dispatcher] Could not persist FAILED for {campaign_id}: {e.message}")

    def _track(self, task: asyncio.Task) -> None:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @property
    def pending_sends(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Waits for every in-flight vendor call (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
