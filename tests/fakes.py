"""
Test doubles: in-memory store ports, a fake vendor and a fake LLM.

They implement the same abstract stores as the Supabase adapters, so
services run against them unchanged.
"""
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from unittest.mock import MagicMock
from uuid import uuid4

from crm.core.exceptions import (
    DatabaseError,
    DuplicateKey,
    DuplicateName,
    NotFoundError,
    VendorDispatchError,
)
from crm.core.timezone import utc_now
from crm.repositories.campaign import CampaignStore
from crm.repositories.communication_log import CommunicationLogStore
from crm.repositories.customer import Customer, CustomerStore
from crm.repositories.order import Order, OrderStore
from crm.repositories.segment import AudienceSegment, SegmentStore
from crm.services.audience.compiler import MATCH_ALL, Predicate
from crm.services.audience.rules import RuleGroup
from crm.services.campaigns.types import (
    NON_DISPATCHABLE_STATUSES,
    Campaign,
    CampaignStatus,
    CommunicationLog,
    LogStatus,
)


# =============================================================================
# IN-MEMORY STORES
# =============================================================================


class InMemoryCustomerStore(CustomerStore):
    """Customer store evaluating predicates row by row."""

    def __init__(self):
        self.rows: Dict[str, dict] = {}
        self.should_fail = False

    def _check(self):
        if self.should_fail:
            raise DatabaseError("Database error")

    def add(
        self,
        name: str,
        email: Optional[str] = None,
        total_spends: float = 0,
        visit_count: int = 0,
        last_active_date: Optional[datetime] = None,
    ) -> Customer:
        row = {
            "id": str(uuid4()),
            "name": name,
            "email": email or f"{name.lower().replace(' ', '.')}@example.com",
            "total_spends": total_spends,
            "visit_count": visit_count,
            "last_active_date": last_active_date,
            "created_at": utc_now() + timedelta(microseconds=len(self.rows)),
        }
        self.rows[row["id"]] = row
        return Customer.from_db_row(row)

    async def get_by_id(self, id: str) -> Optional[Customer]:
        self._check()
        row = self.rows.get(id)
        return Customer.from_db_row(row) if row else None

    async def list(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        self._check()
        rows = sorted(self.rows.values(), key=lambda r: r["created_at"], reverse=True)
        return [Customer.from_db_row(r) for r in rows[offset:offset + limit]]

    async def create(
        self,
        name: str,
        email: str,
        total_spends: float = 0,
        visit_count: int = 0,
        last_active_date: Optional[datetime] = None,
    ) -> Customer:
        self._check()
        if any(r["email"] == email for r in self.rows.values()):
            raise DuplicateKey("Customer", "email", email)
        return self.add(name, email, total_spends, visit_count, last_active_date)

    async def delete(self, id: str) -> bool:
        self._check()
        return self.rows.pop(id, None) is not None

    async def count(self, predicate: Predicate = MATCH_ALL) -> int:
        self._check()
        return sum(1 for row in self.rows.values() if predicate.matches(row))

    async def find(self, predicate: Predicate = MATCH_ALL) -> List[Customer]:
        self._check()
        return [Customer.from_db_row(r) for r in self.rows.values() if predicate.matches(r)]


class InMemorySegmentStore(SegmentStore):
    def __init__(self):
        self.rows: Dict[str, AudienceSegment] = {}

    async def get_by_id(self, id: str) -> Optional[AudienceSegment]:
        return self.rows.get(id)

    async def list(self, limit: int = 100, offset: int = 0) -> List[AudienceSegment]:
        return list(reversed(list(self.rows.values())))[offset:offset + limit]

    async def create(
        self,
        name: str,
        rules: RuleGroup,
        description: Optional[str] = None,
        created_by: str = "system",
    ) -> AudienceSegment:
        if any(s.name == name for s in self.rows.values()):
            raise DuplicateName("Audience segment", name)
        segment = AudienceSegment(
            id=str(uuid4()),
            name=name,
            rules=rules,
            description=description,
            created_by=created_by,
            created_at=utc_now(),
        )
        self.rows[segment.id] = segment
        return segment


class InMemoryCampaignStore(CampaignStore):
    """Campaign store with the same conditional updates as the adapter."""

    def __init__(self):
        self.rows: Dict[str, dict] = {}

    def _entity(self, id: str) -> Optional[Campaign]:
        row = self.rows.get(id)
        return Campaign.from_db_row(row) if row else None

    def add(self, rules: Optional[RuleGroup] = None, status: CampaignStatus = CampaignStatus.DRAFT,
            template: str = "Hi {{name}}, thanks!", **fields) -> Campaign:
        row = {
            "id": str(uuid4()),
            "name": fields.pop("name", "Spring sale"),
            "audience_rules": (rules or RuleGroup()).to_dict(),
            "message_template": template,
            "status": status.value,
            "audience_size": 0,
            "sent_count": 0,
            "failed_count": 0,
            "tags": [],
            "created_by": "system",
            "failure_reason": None,
            "created_at": utc_now() + timedelta(microseconds=len(self.rows)),
        }
        row.update(fields)
        self.rows[row["id"]] = row
        return Campaign.from_db_row(row)

    async def get_by_id(self, id: str) -> Optional[Campaign]:
        return self._entity(id)

    async def list(self, limit: int = 100, offset: int = 0) -> List[Campaign]:
        rows = sorted(self.rows.values(), key=lambda r: r["created_at"], reverse=True)
        return [Campaign.from_db_row(r) for r in rows[offset:offset + limit]]

    async def create(
        self,
        name: str,
        audience_rules: RuleGroup,
        message_template: str,
        audience_size: int = 0,
        tags: Optional[List[str]] = None,
        created_by: str = "system",
    ) -> Campaign:
        return self.add(
            rules=audience_rules,
            template=message_template,
            name=name,
            audience_size=audience_size,
            tags=tags or [],
            created_by=created_by,
        )

    async def start_dispatch(self, id: str) -> Optional[Campaign]:
        row = self.rows.get(id)
        if row is None or row["status"] in [s.value for s in NON_DISPATCHABLE_STATUSES]:
            return None
        row.update(
            status=CampaignStatus.SENDING.value,
            audience_size=0,
            sent_count=0,
            failed_count=0,
            failure_reason=None,
        )
        return self._entity(id)

    async def update(self, id: str, fields: dict) -> Optional[Campaign]:
        row = self.rows.get(id)
        if row is None:
            return None
        row.update(fields)
        return self._entity(id)

    async def increment_counters(self, id: str, sent: int = 0, failed: int = 0) -> Optional[Campaign]:
        row = self.rows.get(id)
        if row is None:
            return None
        row["sent_count"] += sent
        row["failed_count"] += failed
        return self._entity(id)

    async def mark_completed(self, id: str) -> bool:
        row = self.rows.get(id)
        if row is None or row["status"] == CampaignStatus.COMPLETED.value:
            return False
        row["status"] = CampaignStatus.COMPLETED.value
        return True


class InMemoryLogStore(CommunicationLogStore):
    """Delivery logs unique on (campaign_id, customer_id)."""

    def __init__(self):
        self.rows: Dict[str, dict] = {}
        self.fail_for_customers: set = set()

    def _find_key(self, campaign_id: str, customer_id: str) -> Optional[dict]:
        for row in self.rows.values():
            if row["campaign_id"] == campaign_id and row["customer_id"] == customer_id:
                return row
        return None

    def for_campaign(self, campaign_id: str) -> List[CommunicationLog]:
        return [
            CommunicationLog.from_db_row(r)
            for r in self.rows.values()
            if r["campaign_id"] == campaign_id
        ]

    async def get_by_id(self, id: str) -> Optional[CommunicationLog]:
        row = self.rows.get(id)
        return CommunicationLog.from_db_row(row) if row else None

    async def list(self, limit: int = 100, offset: int = 0) -> List[CommunicationLog]:
        rows = list(reversed(list(self.rows.values())))
        return [CommunicationLog.from_db_row(r) for r in rows[offset:offset + limit]]

    async def upsert_pending(
        self,
        campaign_id: str,
        customer_id: str,
        message: str,
        created_by: str = "system",
    ) -> CommunicationLog:
        if customer_id in self.fail_for_customers:
            raise DatabaseError("Database error")
        row = self._find_key(campaign_id, customer_id)
        if row is None:
            row = {"id": str(uuid4()), "created_at": utc_now()}
            self.rows[row["id"]] = row
        row.update(
            campaign_id=campaign_id,
            customer_id=customer_id,
            message=message,
            status=LogStatus.PENDING.value,
            vendor_message_id=None,
            sent_at=None,
            failed_at=None,
            failure_reason=None,
            created_by=created_by,
        )
        return CommunicationLog.from_db_row(row)

    async def update(self, id: str, fields: dict) -> Optional[CommunicationLog]:
        row = self.rows.get(id)
        if row is None:
            return None
        row.update(fields)
        return CommunicationLog.from_db_row(row)

    async def list_by_campaign(
        self, campaign_id: str, limit: int = 100, offset: int = 0
    ) -> List[CommunicationLog]:
        return self.for_campaign(campaign_id)[offset:offset + limit]

    async def status_counts(self, campaign_id: str) -> Dict[str, int]:
        return dict(Counter(log.status.value for log in self.for_campaign(campaign_id)))


class InMemoryOrderStore(OrderStore):
    """Orders that move the customer aggregates like the store function does."""

    def __init__(self, customers: InMemoryCustomerStore):
        self.customers = customers
        self.rows: Dict[str, dict] = {}

    async def list(
        self, limit: int = 100, offset: int = 0, customer_id: Optional[str] = None
    ) -> List[Order]:
        rows = [r for r in self.rows.values() if customer_id is None or r["customer_id"] == customer_id]
        return [Order.from_db_row(r) for r in rows[offset:offset + limit]]

    async def record(
        self, order_id: str, customer_id: str, order_amount: float, order_date: datetime
    ) -> Order:
        if any(r["order_id"] == order_id for r in self.rows.values()):
            raise DuplicateKey("Order", "orderId", order_id)
        customer = self.customers.rows.get(customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)

        customer["total_spends"] += order_amount
        customer["visit_count"] += 1
        last = customer["last_active_date"]
        customer["last_active_date"] = order_date if last is None else max(last, order_date)

        row = {
            "id": str(uuid4()),
            "order_id": order_id,
            "customer_id": customer_id,
            "order_amount": order_amount,
            "order_date": order_date,
            "created_at": utc_now(),
        }
        self.rows[row["id"]] = row
        return Order.from_db_row(row)


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================


class FakeVendor:
    """Records every send; fails for the configured customer ids."""

    def __init__(self, fail_for: Optional[set] = None):
        self.sent = []
        self.fail_for = fail_for or set()

    async def send(self, message) -> dict:
        if message.customer_id in self.fail_for:
            raise VendorDispatchError(
                "Network error: connection refused",
                log_id=message.communication_log_id,
            )
        self.sent.append(message)
        return {"message": "accepted"}


class FakeLLM:
    """LLM double returning canned answers in order."""

    def __init__(self, *answers: str):
        self.answers = list(answers)
        self.prompts = []

    async def complete(self, prompt, system=None, max_tokens=None, temperature=0.2) -> str:
        self.prompts.append({"prompt": prompt, "system": system})
        if not self.answers:
            return ""
        return self.answers.pop(0)


# =============================================================================
# SUPABASE QUERY CHAIN
# =============================================================================


class MockTable:
    """Mock for the Supabase table chain; records every call."""

    def __init__(self, data=None, should_fail=None, count=None):
        self.data = data if data is not None else []
        self.should_fail = should_fail
        self.count = count
        self.calls = []

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        return self

    def select(self, *args, **kwargs):
        return self._record("select", *args, **kwargs)

    def insert(self, data):
        return self._record("insert", data)

    def update(self, data):
        return self._record("update", data)

    def upsert(self, data, **kwargs):
        return self._record("upsert", data, **kwargs)

    def delete(self):
        return self._record("delete")

    def eq(self, field, value):
        return self._record("eq", field, value)

    def neq(self, field, value):
        return self._record("neq", field, value)

    def in_(self, field, values):
        return self._record("in_", field, values)

    def or_(self, filters):
        return self._record("or_", filters)

    @property
    def not_(self):
        return self._record("not_")

    def order(self, *args, **kwargs):
        return self._record("order", *args, **kwargs)

    def range(self, start, end):
        return self._record("range", start, end)

    def limit(self, n):
        return self._record("limit", n)

    def called(self, name):
        return [c for c in self.calls if c[0] == name]

    def execute(self):
        if self.should_fail:
            raise self.should_fail
        response = MagicMock()
        response.data = self.data
        response.count = self.count
        return response


class MockDatabase:
    """Mock for the Supabase client."""

    def __init__(self, table=None, rpc_data=None, rpc_error=None):
        self.last_table = table or MockTable()
        self.tables = []
        self.rpc_calls = []
        self.rpc_data = rpc_data
        self.rpc_error = rpc_error

    def table(self, name):
        self.tables.append(name)
        return self.last_table

    def rpc(self, name, params):
        self.rpc_calls.append((name, params))
        return MockTable(data=self.rpc_data, should_fail=self.rpc_error)


class UniqueViolation(Exception):
    code = "23505"
