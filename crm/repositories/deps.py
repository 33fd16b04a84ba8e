"""
Dependency injection for repositories.

Provides dependency functions for FastAPI Depends.

Usage in endpoints:
    from crm.repositories.deps import get_campaign_repo

    @router.get("/campaigns/{id}")
    async def get_campaign(
        id: str,
        repo: CampaignStore = Depends(get_campaign_repo)
    ):
        return await repo.get_by_id(id)

Usage in tests:
    app.dependency_overrides[get_campaign_repo] = lambda: InMemoryCampaignStore()
"""
from functools import lru_cache

from crm.services.supabase import get_supabase_client

from .campaign import CampaignRepository
from .communication_log import CommunicationLogRepository
from .customer import CustomerRepository
from .order import OrderRepository
from .segment import SegmentRepository


@lru_cache()
def get_customer_repo() -> CustomerRepository:
    """Singleton CustomerRepository."""
    return CustomerRepository(get_supabase_client())


@lru_cache()
def get_order_repo() -> OrderRepository:
    """Singleton OrderRepository."""
    return OrderRepository(get_supabase_client())


@lru_cache()
def get_segment_repo() -> SegmentRepository:
    """Singleton SegmentRepository."""
    return SegmentRepository(get_supabase_client())


@lru_cache()
def get_campaign_repo() -> CampaignRepository:
    """Singleton CampaignRepository."""
    return CampaignRepository(get_supabase_client())


@lru_cache()
def get_log_repo() -> CommunicationLogRepository:
    """Singleton CommunicationLogRepository."""
    return CommunicationLogRepository(get_supabase_client())
