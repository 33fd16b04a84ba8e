"""
Route fixtures: the app wired to in-memory stores via dependency_overrides.
"""
import pytest
from fastapi.testclient import TestClient

from crm.api.deps import get_dispatcher, get_llm
from crm.main import app
from crm.repositories.deps import (
    get_campaign_repo,
    get_customer_repo,
    get_log_repo,
    get_order_repo,
    get_segment_repo,
)
from tests.fakes import FakeLLM


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def client(customer_store, order_store, segment_store, campaign_store, log_store, dispatcher, llm):
    overrides = {
        get_customer_repo: lambda: customer_store,
        get_order_repo: lambda: order_store,
        get_segment_repo: lambda: segment_store,
        get_campaign_repo: lambda: campaign_store,
        get_log_repo: lambda: log_store,
        get_dispatcher: lambda: dispatcher,
        get_llm: lambda: llm,
    }
    app.dependency_overrides.update(overrides)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
