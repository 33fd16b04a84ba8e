"""
Tests for CampaignRepository and CommunicationLogRepository.
"""
import pytest

from crm.core.exceptions import DatabaseError
from crm.repositories.campaign import CampaignRepository
from crm.repositories.communication_log import CommunicationLogRepository
from crm.services.audience.rules import RuleGroup
from crm.services.campaigns.types import Campaign, CampaignStatus, LogStatus
from tests.fakes import MockDatabase, MockTable

CAMPAIGN_ROW = {
    "id": "camp-1",
    "name": "Spring sale",
    "audience_rules": {
        "logicalOperator": "AND",
        "conditions": [{"field": "totalSpends", "operator": "GREATER_THAN", "value": 1000}],
        "groups": [],
    },
    "message_template": "Hi {{name}}, spring deals!",
    "status": "SENDING",
    "audience_size": 2,
    "sent_count": 1,
    "failed_count": 1,
    "tags": ["Seasonal"],
    "created_by": "system",
    "created_at": "2024-05-01T12:00:00Z",
}

LOG_ROW = {
    "id": "log-1",
    "campaign_id": "camp-1",
    "customer_id": "c-1",
    "message": "Hi Ann, spring deals!",
    "status": "PENDING",
    "created_at": "2024-05-01T12:00:01Z",
}


class TestCampaignEntity:
    def test_from_db_row(self):
        campaign = Campaign.from_db_row(CAMPAIGN_ROW)

        assert campaign.status == CampaignStatus.SENDING
        assert campaign.audience_rules.conditions[0].value == 1000
        assert campaign.tags == ["Seasonal"]

    def test_unknown_status_defaults_to_draft(self):
        campaign = Campaign.from_db_row(dict(CAMPAIGN_ROW, status="ARCHIVED"))

        assert campaign.status == CampaignStatus.DRAFT

    def test_is_settled(self):
        assert Campaign.from_db_row(CAMPAIGN_ROW).is_settled is True
        assert Campaign.from_db_row(dict(CAMPAIGN_ROW, sent_count=0)).is_settled is False
        assert Campaign.from_db_row(dict(CAMPAIGN_ROW, audience_size=0, sent_count=0, failed_count=0)).is_settled is False

    def test_to_dict_is_camel_case(self):
        data = Campaign.from_db_row(CAMPAIGN_ROW).to_dict()

        assert data["audienceSize"] == 2
        assert data["messageTemplate"].startswith("Hi")
        assert data["audienceRules"]["logicalOperator"] == "AND"


class TestCampaignRepository:
    @pytest.mark.asyncio
    async def test_create_inserts_draft(self):
        table = MockTable([dict(CAMPAIGN_ROW, status="DRAFT")])
        repo = CampaignRepository(MockDatabase(table))

        campaign = await repo.create(
            name="Spring sale",
            audience_rules=RuleGroup(),
            message_template="Hi {{name}}, spring deals!",
            audience_size=5,
        )

        inserted = table.called("insert")[0][1][0]
        assert inserted["status"] == "DRAFT"
        assert inserted["audience_size"] == 5
        assert inserted["sent_count"] == 0
        assert campaign.status == CampaignStatus.DRAFT

    @pytest.mark.asyncio
    async def test_start_dispatch_is_conditional(self):
        table = MockTable([CAMPAIGN_ROW])
        repo = CampaignRepository(MockDatabase(table))

        campaign = await repo.start_dispatch("camp-1")

        update = table.called("update")[0][1][0]
        assert update["status"] == "SENDING"
        assert update["sent_count"] == 0 and update["failed_count"] == 0
        assert table.called("not_")
        assert table.called("in_")[0][1] == ("status", ["SENDING", "COMPLETED"])
        assert campaign.id == "camp-1"

    @pytest.mark.asyncio
    async def test_start_dispatch_lost_race_returns_none(self):
        repo = CampaignRepository(MockDatabase(MockTable([])))

        assert await repo.start_dispatch("camp-1") is None

    @pytest.mark.asyncio
    async def test_increment_counters_uses_rpc(self):
        db = MockDatabase(rpc_data=[dict(CAMPAIGN_ROW, sent_count=2)])
        repo = CampaignRepository(db)

        campaign = await repo.increment_counters("camp-1", sent=1)

        assert db.rpc_calls == [
            ("increment_campaign_counters", {"p_campaign_id": "camp-1", "p_sent": 1, "p_failed": 0})
        ]
        assert campaign.sent_count == 2

    @pytest.mark.asyncio
    async def test_increment_counters_failure(self):
        repo = CampaignRepository(MockDatabase(rpc_error=Exception("rpc down")))

        with pytest.raises(DatabaseError):
            await repo.increment_counters("camp-1", failed=1)

    @pytest.mark.asyncio
    async def test_mark_completed_only_once(self):
        table = MockTable([dict(CAMPAIGN_ROW, status="COMPLETED")])
        repo = CampaignRepository(MockDatabase(table))

        assert await repo.mark_completed("camp-1") is True
        assert table.called("neq")[0][1] == ("status", "COMPLETED")

        assert await CampaignRepository(MockDatabase(MockTable([]))).mark_completed("camp-1") is False


class TestCommunicationLogRepository:
    @pytest.mark.asyncio
    async def test_upsert_pending_resets_terminal_fields(self):
        table = MockTable([LOG_ROW])
        repo = CommunicationLogRepository(MockDatabase(table))

        log = await repo.upsert_pending("camp-1", "c-1", "Hi Ann, spring deals!")

        _, args, kwargs = table.called("upsert")[0]
        assert kwargs == {"on_conflict": "campaign_id,customer_id"}
        data = args[0]
        assert data["status"] == "PENDING"
        for column in ("sent_at", "failed_at", "failure_reason", "vendor_message_id"):
            assert data[column] is None
        assert log.status == LogStatus.PENDING

    @pytest.mark.asyncio
    async def test_upsert_failure(self):
        repo = CommunicationLogRepository(MockDatabase(MockTable(should_fail=Exception("boom"))))

        with pytest.raises(DatabaseError):
            await repo.upsert_pending("camp-1", "c-1", "hello there")

    @pytest.mark.asyncio
    async def test_update_missing_log_returns_none(self):
        repo = CommunicationLogRepository(MockDatabase(MockTable([])))

        assert await repo.update("nope", {"status": "SENT"}) is None

    @pytest.mark.asyncio
    async def test_status_counts(self):
        rows = [{"status": "SENT"}, {"status": "SENT"}, {"status": "FAILED"}]
        repo = CommunicationLogRepository(MockDatabase(MockTable(rows)))

        assert await repo.status_counts("camp-1") == {"SENT": 2, "FAILED": 1}

    @pytest.mark.asyncio
    async def test_list_by_campaign_filters(self):
        table = MockTable([LOG_ROW])
        repo = CommunicationLogRepository(MockDatabase(table))

        logs = await repo.list_by_campaign("camp-1", limit=10)

        assert table.called("eq")[0][1] == ("campaign_id", "camp-1")
        assert table.called("range")[0][1] == (0, 9)
        assert logs[0].campaign_id == "camp-1"
