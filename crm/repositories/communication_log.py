"""
Repository for communication (delivery) logs.

At most one log exists per (campaign_id, customer_id); re-dispatch
overwrites it through an upsert on that key.
"""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict, List, Optional

from crm.core.exceptions import DatabaseError
from crm.services.campaigns.types import CommunicationLog, LogStatus

from .base import BaseRepository

logger = logging.getLogger(__name__)

UPSERT_KEY = "campaign_id,customer_id"


class CommunicationLogStore(ABC):
    """Delivery log persistence port."""

    @abstractmethod
    async def get_by_id(self, id: str) -> Optional[CommunicationLog]:
        pass

    @abstractmethod
    async def list(self, limit: int = 100, offset: int = 0) -> List[CommunicationLog]:
        pass

    @abstractmethod
    async def upsert_pending(
        self,
        campaign_id: str,
        customer_id: str,
        message: str,
        created_by: str = "system",
    ) -> CommunicationLog:
        """
        Creates the log, or resets an existing one to PENDING with every
        terminal field (sent_at, failed_at, failure_reason,
        vendor_message_id) cleared.
        """
        pass

    @abstractmethod
    async def update(self, id: str, fields: dict) -> Optional[CommunicationLog]:
        pass

    @abstractmethod
    async def list_by_campaign(
        self, campaign_id: str, limit: int = 100, offset: int = 0
    ) -> List[CommunicationLog]:
        """Logs of one campaign, newest first."""
        pass

    @abstractmethod
    async def status_counts(self, campaign_id: str) -> Dict[str, int]:
        """Number of logs per status for one campaign."""
        pass


class CommunicationLogRepository(BaseRepository[CommunicationLog], CommunicationLogStore):
    """Supabase adapter for delivery logs."""

    @property
    def table_name(self) -> str:
        return "communication_logs"

    async def get_by_id(self, id: str) -> Optional[CommunicationLog]:
        try:
            response = self.db.table(self.table_name).select("*").eq("id", id).execute()
        except Exception as e:
            logger.error(f"Error fetching communication log {id}: {e}")
            raise DatabaseError(f"Error fetching communication log: {e}", original_error=e)
        if response.data:
            return CommunicationLog.from_db_row(response.data[0])
        return None

    async def list(self, limit: int = 100, offset: int = 0) -> List[CommunicationLog]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("*")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error listing communication logs: {e}")
            raise DatabaseError(f"Error listing communication logs: {e}", original_error=e)
        return [CommunicationLog.from_db_row(row) for row in response.data or []]

    async def upsert_pending(
        self,
        campaign_id: str,
        customer_id: str,
        message: str,
        created_by: str = "system",
    ) -> CommunicationLog:
        data = {
            "campaign_id": campaign_id,
            "customer_id": customer_id,
            "message": message,
            "status": LogStatus.PENDING.value,
            "vendor_message_id": None,
            "sent_at": None,
            "failed_at": None,
            "failure_reason": None,
            "created_by": created_by,
        }
        try:
            response = (
                self.db.table(self.table_name)
                .upsert(data, on_conflict=UPSERT_KEY)
                .execute()
            )
        except Exception as e:
            logger.error(
                f"Error upserting log for campaign {campaign_id} / customer {customer_id}: {e}"
            )
            raise DatabaseError(f"Error upserting communication log: {e}", original_error=e)

        if not response.data:
            raise DatabaseError("Communication log upsert returned no row")
        return CommunicationLog.from_db_row(response.data[0])

    async def update(self, id: str, fields: dict) -> Optional[CommunicationLog]:
        try:
            response = self.db.table(self.table_name).update(fields).eq("id", id).execute()
        except Exception as e:
            logger.error(f"Error updating communication log {id}: {e}")
            raise DatabaseError(f"Error updating communication log: {e}", original_error=e)
        if response.data:
            return CommunicationLog.from_db_row(response.data[0])
        return None

    async def list_by_campaign(
        self, campaign_id: str, limit: int = 100, offset: int = 0
    ) -> List[CommunicationLog]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("*")
                .eq("campaign_id", campaign_id)
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error listing logs for campaign {campaign_id}: {e}")
            raise DatabaseError(f"Error listing communication logs: {e}", original_error=e)
        return [CommunicationLog.from_db_row(row) for row in response.data or []]

    async def status_counts(self, campaign_id: str) -> Dict[str, int]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("status")
                .eq("campaign_id", campaign_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error counting log statuses for campaign {campaign_id}: {e}")
            raise DatabaseError(f"Error counting log statuses: {e}", original_error=e)
        return dict(Counter(row.get("status") for row in response.data or []))
