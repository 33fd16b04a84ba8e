"""
Repository for campaigns.

Every state transition that can race with a concurrent dispatch or
receipt is a store-level conditional update or an atomic RPC.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from crm.core.exceptions import DatabaseError
from crm.services.audience.rules import RuleGroup
from crm.services.campaigns.types import (
    NON_DISPATCHABLE_STATUSES,
    Campaign,
    CampaignStatus,
)

from .base import BaseRepository

logger = logging.getLogger(__name__)


class CampaignStore(ABC):
    """Campaign persistence port."""

    @abstractmethod
    async def get_by_id(self, id: str) -> Optional[Campaign]:
        pass

    @abstractmethod
    async def list(self, limit: int = 100, offset: int = 0) -> List[Campaign]:
        pass

    @abstractmethod
    async def create(
        self,
        name: str,
        audience_rules: RuleGroup,
        message_template: str,
        audience_size: int = 0,
        tags: Optional[List[str]] = None,
        created_by: str = "system",
    ) -> Campaign:
        """Inserts a DRAFT campaign."""
        pass

    @abstractmethod
    async def start_dispatch(self, id: str) -> Optional[Campaign]:
        """
        Compare-and-set into SENDING with zeroed counters.

        Returns:
            The updated campaign, or None when it is missing or already
            SENDING/COMPLETED (nothing changed)
        """
        pass

    @abstractmethod
    async def update(self, id: str, fields: dict) -> Optional[Campaign]:
        """Plain field update (snake_case columns)."""
        pass

    @abstractmethod
    async def increment_counters(self, id: str, sent: int = 0, failed: int = 0) -> Optional[Campaign]:
        """Atomic $inc of sent_count/failed_count; returns the new state."""
        pass

    @abstractmethod
    async def mark_completed(self, id: str) -> bool:
        """Sets COMPLETED unless already COMPLETED; True only for the caller that flipped it."""
        pass


class CampaignRepository(BaseRepository[Campaign], CampaignStore):
    """Supabase adapter for campaigns."""

    @property
    def table_name(self) -> str:
        return "campaigns"

    async def get_by_id(self, id: str) -> Optional[Campaign]:
        try:
            response = self.db.table(self.table_name).select("*").eq("id", id).execute()
        except Exception as e:
            logger.error(f"Error fetching campaign {id}: {e}")
            raise DatabaseError(f"Error fetching campaign: {e}", original_error=e)
        if response.data:
            return Campaign.from_db_row(response.data[0])
        return None

    async def list(self, limit: int = 100, offset: int = 0) -> List[Campaign]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("*")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error listing campaigns: {e}")
            raise DatabaseError(f"Error listing campaigns: {e}", original_error=e)
        return [Campaign.from_db_row(row) for row in response.data or []]

    async def create(
        self,
        name: str,
        audience_rules: RuleGroup,
        message_template: str,
        audience_size: int = 0,
        tags: Optional[List[str]] = None,
        created_by: str = "system",
    ) -> Campaign:
        data = {
            "name": name,
            "audience_rules": audience_rules.to_dict(),
            "message_template": message_template,
            "status": CampaignStatus.DRAFT.value,
            "audience_size": audience_size,
            "sent_count": 0,
            "failed_count": 0,
            "tags": tags or [],
            "created_by": created_by,
        }
        try:
            response = self.db.table(self.table_name).insert(data).execute()
        except Exception as e:
            logger.error(f"Error creating campaign: {e}")
            raise DatabaseError(f"Error creating campaign: {e}", original_error=e)

        if not response.data:
            raise DatabaseError("Campaign insert returned no row")
        campaign = Campaign.from_db_row(response.data[0])
        logger.info(f"Campaign created: {campaign.id} ({name})")
        return campaign

    async def start_dispatch(self, id: str) -> Optional[Campaign]:
        try:
            response = (
                self.db.table(self.table_name)
                .update({
                    "status": CampaignStatus.SENDING.value,
                    "audience_size": 0,
                    "sent_count": 0,
                    "failed_count": 0,
                    "failure_reason": None,
                })
                .eq("id", id)
                .not_.in_("status", [s.value for s in NON_DISPATCHABLE_STATUSES])
                .execute()
            )
        except Exception as e:
            logger.error(f"Error starting dispatch for campaign {id}: {e}")
            raise DatabaseError(f"Error starting dispatch: {e}", original_error=e)
        if response.data:
            return Campaign.from_db_row(response.data[0])
        return None

    async def update(self, id: str, fields: dict) -> Optional[Campaign]:
        try:
            response = self.db.table(self.table_name).update(fields).eq("id", id).execute()
        except Exception as e:
            logger.error(f"Error updating campaign {id}: {e}")
            raise DatabaseError(f"Error updating campaign: {e}", original_error=e)
        if response.data:
            return Campaign.from_db_row(response.data[0])
        return None

    async def increment_counters(self, id: str, sent: int = 0, failed: int = 0) -> Optional[Campaign]:
        try:
            response = self.db.rpc(
                "increment_campaign_counters",
                {"p_campaign_id": id, "p_sent": sent, "p_failed": failed},
            ).execute()
        except Exception as e:
            logger.error(f"Error incrementing counters for campaign {id}: {e}")
            raise DatabaseError(f"Error incrementing campaign counters: {e}", original_error=e)

        row = response.data
        if isinstance(row, list):
            row = row[0] if row else None
        return Campaign.from_db_row(row) if row else None

    async def mark_completed(self, id: str) -> bool:
        try:
            response = (
                self.db.table(self.table_name)
                .update({"status": CampaignStatus.COMPLETED.value})
                .eq("id", id)
                .neq("status", CampaignStatus.COMPLETED.value)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error completing campaign {id}: {e}")
            raise DatabaseError(f"Error completing campaign: {e}", original_error=e)
        return bool(response.data)
