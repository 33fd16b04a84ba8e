"""
Shared test fixtures.

Stores are in-memory (tests/fakes.py); services and routes receive
them by injection, never by patching imports.
"""
from datetime import timedelta

import pytest

from crm.core.timezone import utc_now
from crm.services.campaigns.dispatcher import CampaignDispatcher
from tests.fakes import (
    FakeVendor,
    InMemoryCampaignStore,
    InMemoryCustomerStore,
    InMemoryLogStore,
    InMemoryOrderStore,
    InMemorySegmentStore,
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def now():
    return utc_now()


@pytest.fixture
def customer_store():
    return InMemoryCustomerStore()


@pytest.fixture
def segment_store():
    return InMemorySegmentStore()


@pytest.fixture
def campaign_store():
    return InMemoryCampaignStore()


@pytest.fixture
def log_store():
    return InMemoryLogStore()


@pytest.fixture
def order_store(customer_store):
    return InMemoryOrderStore(customer_store)


@pytest.fixture
def vendor():
    return FakeVendor()


@pytest.fixture
def dispatcher(campaign_store, log_store, customer_store, vendor):
    return CampaignDispatcher(
        campaign_store,
        log_store,
        customer_store,
        vendor=vendor,
        callback_url="http://testserver/webhooks/delivery-receipts",
    )


@pytest.fixture
def populated_customers(customer_store, now):
    """
    Five customers covering spend, visits and activity:
        ann   - big spender, active yesterday
        bob   - small spender, inactive for 120 days
        cara  - mid spender, active 10 days ago
        dan   - big spender, never active
        eve   - no spend, active 45 days ago
    """
    return {
        "ann": customer_store.add("Ann Lee", "ann@shop.com", 2500, 12, now - timedelta(days=1)),
        "bob": customer_store.add("Bob Stone", "bob@mail.org", 40, 1, now - timedelta(days=120)),
        "cara": customer_store.add("Cara Diaz", "cara@shop.com", 800, 5, now - timedelta(days=10)),
        "dan": customer_store.add("Dan Wu", "dan@corp.io", 5000, 3, None),
        "eve": customer_store.add("Eve Park", "eve@mail.org", 0, 0, now - timedelta(days=45)),
    }
