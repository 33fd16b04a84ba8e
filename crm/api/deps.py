"""
FastAPI dependencies: application services wired to the repositories.

Tests replace these through app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends, Header

from crm.repositories.campaign import CampaignStore
from crm.repositories.communication_log import CommunicationLogStore
from crm.repositories.customer import CustomerStore
from crm.repositories.deps import (
    get_campaign_repo,
    get_customer_repo,
    get_log_repo,
    get_order_repo,
    get_segment_repo,
)
from crm.repositories.order import OrderStore
from crm.repositories.segment import SegmentStore
from crm.services.audience.application import AudienceApplicationService
from crm.services.campaigns.application import CampaignsApplicationService
from crm.services.campaigns.dispatcher import CampaignDispatcher
from crm.services.customers import CustomersApplicationService
from crm.services.llm.client import LLMClient, get_llm_client
from crm.services.llm.insights import CampaignInsights
from crm.services.llm.messages import MessageSuggester
from crm.services.llm.segment_rules import RuleGenerator

DEFAULT_USER = "system"


def get_current_user(x_user_id: str = Header(default=DEFAULT_USER)) -> str:
    """Caller identity; authentication happens upstream."""
    return x_user_id or DEFAULT_USER


@lru_cache()
def get_dispatcher() -> CampaignDispatcher:
    """Process-wide dispatcher (tracks in-flight vendor sends)."""
    return CampaignDispatcher(get_campaign_repo(), get_log_repo(), get_customer_repo())


def get_llm() -> LLMClient:
    return get_llm_client()


def get_audience_service(
    customers: CustomerStore = Depends(get_customer_repo),
    segments: SegmentStore = Depends(get_segment_repo),
) -> AudienceApplicationService:
    return AudienceApplicationService(customers, segments)


def get_campaigns_service(
    campaigns: CampaignStore = Depends(get_campaign_repo),
    logs: CommunicationLogStore = Depends(get_log_repo),
    customers: CustomerStore = Depends(get_customer_repo),
    dispatcher: CampaignDispatcher = Depends(get_dispatcher),
    llm: LLMClient = Depends(get_llm),
) -> CampaignsApplicationService:
    return CampaignsApplicationService(
        campaigns,
        logs,
        customers,
        dispatcher=dispatcher,
        receipts=dispatcher.receipts,
        resolver=dispatcher.resolver,
        insights=CampaignInsights(llm),
    )


def get_customers_service(
    customers: CustomerStore = Depends(get_customer_repo),
    orders: OrderStore = Depends(get_order_repo),
) -> CustomersApplicationService:
    return CustomersApplicationService(customers, orders)


def get_rule_generator(llm: LLMClient = Depends(get_llm)) -> RuleGenerator:
    return RuleGenerator(llm)


def get_message_suggester(llm: LLMClient = Depends(get_llm)) -> MessageSuggester:
    return MessageSuggester(llm)
