"""
Repositories - data access layer.

Each module declares an abstract store (the port the services depend
on) and its Supabase adapter. Services receive stores by injection,
so tests swap in in-memory stores without patching imports.

Usage with dependency injection:
    from fastapi import Depends
    from crm.repositories.deps import get_customer_repo

    @router.get("/customers/{id}")
    async def get_customer(
        id: str,
        repo: CustomerStore = Depends(get_customer_repo)
    ):
        return await repo.get_by_id(id)
"""

from .base import BaseRepository, is_unique_violation
from .campaign import CampaignRepository, CampaignStore
from .communication_log import CommunicationLogRepository, CommunicationLogStore
from .customer import Customer, CustomerRepository, CustomerStore
from .order import Order, OrderRepository, OrderStore
from .segment import AudienceSegment, SegmentRepository, SegmentStore

__all__ = [
    # Base
    "BaseRepository",
    "is_unique_violation",
    # Customers
    "Customer",
    "CustomerStore",
    "CustomerRepository",
    # Orders
    "Order",
    "OrderStore",
    "OrderRepository",
    # Segments
    "AudienceSegment",
    "SegmentStore",
    "SegmentRepository",
    # Campaigns
    "CampaignStore",
    "CampaignRepository",
    # Delivery logs
    "CommunicationLogStore",
    "CommunicationLogRepository",
]
