"""
Application service for campaigns.

Entry point for every campaign use case: routes call only this
module. Orchestrates repositories, the dispatcher and the receipt
processor, and raises domain exceptions, never HTTP errors.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from crm.core.exceptions import NotFoundError
from crm.repositories.campaign import CampaignStore
from crm.repositories.communication_log import CommunicationLogStore
from crm.repositories.customer import CustomerStore
from crm.services.audience.resolver import AudienceResolver
from crm.services.audience.rules import RuleGroup
from crm.services.campaigns.dispatcher import CampaignDispatcher
from crm.services.campaigns.receipts import DeliveryReceiptProcessor
from crm.services.campaigns.types import (
    Campaign,
    CommunicationLog,
    DeliveryReceipt,
    DispatchResult,
)
from crm.services.llm.insights import CampaignInsights

logger = logging.getLogger(__name__)


@dataclass
class CampaignCreation:
    """A new campaign and, when sent immediately, its dispatch outcome."""

    campaign: Campaign
    dispatch: Optional[DispatchResult] = None

    def to_dict(self) -> dict:
        data = {"campaign": self.campaign.to_dict()}
        if self.dispatch:
            data["dispatch"] = self.dispatch.to_dict()
        return data


class CampaignsApplicationService:
    """
    Use cases for campaigns.

    Exceptions raised:
        - NotFoundError: unknown campaign
        - RuleError: audience rules cannot be compiled
        - CampaignStateConflict: dispatch while SENDING/COMPLETED
        - LogNotFound: receipt for an unknown log
        - DatabaseError: store failure
    """

    def __init__(
        self,
        campaigns: CampaignStore,
        logs: CommunicationLogStore,
        customers: CustomerStore,
        dispatcher: Optional[CampaignDispatcher] = None,
        receipts: Optional[DeliveryReceiptProcessor] = None,
        resolver: Optional[AudienceResolver] = None,
        insights: Optional[CampaignInsights] = None,
    ):
        self._campaigns = campaigns
        self._logs = logs
        self._resolver = resolver or AudienceResolver(customers)
        self._receipts = receipts or DeliveryReceiptProcessor(logs, campaigns)
        self._dispatcher = dispatcher or CampaignDispatcher(
            campaigns, logs, customers, resolver=self._resolver, receipts=self._receipts
        )
        self._insights = insights

    @property
    def insights(self) -> CampaignInsights:
        if self._insights is None:
            self._insights = CampaignInsights()
        return self._insights

    async def create_campaign(
        self,
        name: str,
        audience_rules: RuleGroup,
        message_template: str,
        tags: Optional[List[str]] = None,
        send_immediately: bool = True,
        created_by: str = "system",
    ) -> CampaignCreation:
        """
        Use case: create a campaign.

        Resolves and snapshots the audience size, persists the campaign
        as DRAFT and, when send_immediately, dispatches it right away.
        A rule error aborts before anything is stored.
        """
        resolution = await self._resolver.count(audience_rules)

        campaign = await self._campaigns.create(
            name=name,
            audience_rules=audience_rules,
            message_template=message_template,
            audience_size=resolution.count,
            tags=tags,
            created_by=created_by,
        )
        logger.info(
            f"[CampaignsService] Campaign created: id={campaign.id}, "
            f"audience={resolution.count}",
            extra={"campaign_id": campaign.id},
        )

        if not send_immediately:
            return CampaignCreation(campaign=campaign)

        result = await self._dispatcher.dispatch(campaign.id)
        refreshed = await self._campaigns.get_by_id(campaign.id)
        return CampaignCreation(campaign=refreshed or campaign, dispatch=result)

    async def list_campaigns(self, limit: int = 100, offset: int = 0) -> List[Campaign]:
        return await self._campaigns.list(limit=limit, offset=offset)

    async def get_campaign(self, campaign_id: str) -> Campaign:
        campaign = await self._campaigns.get_by_id(campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign", campaign_id)
        return campaign

    async def deliver(self, campaign_id: str) -> DispatchResult:
        """Use case: explicit dispatch trigger."""
        return await self._dispatcher.dispatch(campaign_id)

    async def list_logs(
        self, campaign_id: str, limit: int = 100, offset: int = 0
    ) -> List[CommunicationLog]:
        await self.get_campaign(campaign_id)
        return await self._logs.list_by_campaign(campaign_id, limit=limit, offset=offset)

    async def process_receipt(self, receipt: DeliveryReceipt) -> CommunicationLog:
        """Use case: vendor delivery callback."""
        return await self._receipts.on_receipt(receipt)

    async def summarize(self, campaign_id: str) -> Dict[str, str]:
        campaign = await self.get_campaign(campaign_id)
        counts = await self._logs.status_counts(campaign_id)
        summary = await self.insights.summarize(campaign, counts)
        return {"campaignId": campaign_id, "summary": summary}

    async def autotag(self, campaign_id: str) -> List[str]:
        """Stores LLM-suggested tags on the campaign."""
        campaign = await self.get_campaign(campaign_id)
        tags = await self.insights.suggest_tags(campaign)
        await self._campaigns.update(campaign_id, {"tags": tags})
        logger.info(f"[CampaignsService] Campaign {campaign_id} tagged: {tags}")
        return tags
