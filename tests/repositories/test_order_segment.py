"""
Tests for OrderRepository and SegmentRepository.
"""
import pytest
from datetime import datetime, timezone

from crm.core.exceptions import DatabaseError, DuplicateKey, DuplicateName, NotFoundError
from crm.repositories.order import OrderRepository
from crm.repositories.segment import AudienceSegment, SegmentRepository
from crm.services.audience.rules import LogicalOperator, RuleGroup
from tests.fakes import MockDatabase, MockTable, UniqueViolation

ORDER_ROW = {
    "id": "o-1",
    "order_id": "ORD-100",
    "customer_id": "c-1",
    "order_amount": 150.5,
    "order_date": "2024-05-01T12:00:00Z",
}

SEGMENT_ROW = {
    "id": "s-1",
    "name": "Big spenders",
    "rules": {
        "logicalOperator": "OR",
        "conditions": [{"field": "totalSpends", "operator": "GREATER_THAN", "value": 1000}],
    },
    "created_by": "ops",
}


class CustomerMissing(Exception):
    code = "P0002"


class TestOrderRepository:
    @pytest.mark.asyncio
    async def test_record_calls_store_function(self):
        db = MockDatabase(rpc_data=[ORDER_ROW])
        repo = OrderRepository(db)
        when = datetime(2024, 5, 1, 12, tzinfo=timezone.utc)

        order = await repo.record("ORD-100", "c-1", 150.5, when)

        name, params = db.rpc_calls[0]
        assert name == "record_customer_order"
        assert params["p_order_id"] == "ORD-100"
        assert params["p_order_date"] == when.isoformat()
        assert order.order_amount == 150.5

    @pytest.mark.asyncio
    async def test_record_duplicate_order(self):
        repo = OrderRepository(MockDatabase(rpc_error=UniqueViolation("dup")))

        with pytest.raises(DuplicateKey):
            await repo.record("ORD-100", "c-1", 10, datetime.now(timezone.utc))

    @pytest.mark.asyncio
    async def test_record_unknown_customer(self):
        repo = OrderRepository(MockDatabase(rpc_error=CustomerMissing("customer not found")))

        with pytest.raises(NotFoundError):
            await repo.record("ORD-100", "c-404", 10, datetime.now(timezone.utc))

    @pytest.mark.asyncio
    async def test_record_other_failure(self):
        repo = OrderRepository(MockDatabase(rpc_error=Exception("connection reset")))

        with pytest.raises(DatabaseError):
            await repo.record("ORD-100", "c-1", 10, datetime.now(timezone.utc))

    @pytest.mark.asyncio
    async def test_list_filters_by_customer(self):
        table = MockTable([ORDER_ROW])
        repo = OrderRepository(MockDatabase(table))

        orders = await repo.list(customer_id="c-1")

        assert table.called("eq")[0][1] == ("customer_id", "c-1")
        assert orders[0].to_dict()["orderId"] == "ORD-100"


class TestSegmentRepository:
    def test_entity_from_row(self):
        segment = AudienceSegment.from_db_row(SEGMENT_ROW)

        assert segment.rules.logical_operator == LogicalOperator.OR
        assert segment.to_dict()["createdBy"] == "ops"

    @pytest.mark.asyncio
    async def test_create_stores_rules_as_json(self):
        table = MockTable([SEGMENT_ROW])
        repo = SegmentRepository(MockDatabase(table))
        rules = RuleGroup.from_dict(SEGMENT_ROW["rules"])

        segment = await repo.create(name="Big spenders", rules=rules, created_by="ops")

        inserted = table.called("insert")[0][1][0]
        assert inserted["rules"]["logicalOperator"] == "OR"
        assert segment.id == "s-1"

    @pytest.mark.asyncio
    async def test_create_duplicate_name(self):
        repo = SegmentRepository(MockDatabase(MockTable(should_fail=UniqueViolation("dup"))))

        with pytest.raises(DuplicateName):
            await repo.create(name="Big spenders", rules=RuleGroup())
