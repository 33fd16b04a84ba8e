"""
Repository for audience segments (saved rule sets).

Segments are created only; there is no update path.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from crm.core.exceptions import DatabaseError, DuplicateName
from crm.core.timezone import parse_datetime
from crm.services.audience.rules import RuleGroup

from .base import BaseRepository, is_unique_violation

logger = logging.getLogger(__name__)


@dataclass
class AudienceSegment:
    id: str
    name: str
    rules: RuleGroup
    description: Optional[str] = None
    created_by: str = "system"
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "AudienceSegment":
        return cls(
            id=str(row.get("id", "")),
            name=row.get("name", ""),
            rules=RuleGroup.from_dict(row.get("rules")),
            description=row.get("description"),
            created_by=row.get("created_by") or "system",
            created_at=parse_datetime(row.get("created_at")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "rules": self.rules.to_dict(),
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class SegmentStore(ABC):
    """Segment persistence port."""

    @abstractmethod
    async def get_by_id(self, id: str) -> Optional[AudienceSegment]:
        pass

    @abstractmethod
    async def list(self, limit: int = 100, offset: int = 0) -> List[AudienceSegment]:
        pass

    @abstractmethod
    async def create(
        self,
        name: str,
        rules: RuleGroup,
        description: Optional[str] = None,
        created_by: str = "system",
    ) -> AudienceSegment:
        """Raises DuplicateName when the name is taken."""
        pass


class SegmentRepository(BaseRepository[AudienceSegment], SegmentStore):
    """Supabase adapter for audience segments."""

    @property
    def table_name(self) -> str:
        return "audience_segments"

    async def get_by_id(self, id: str) -> Optional[AudienceSegment]:
        try:
            response = self.db.table(self.table_name).select("*").eq("id", id).execute()
        except Exception as e:
            logger.error(f"Error fetching segment {id}: {e}")
            raise DatabaseError(f"Error fetching segment: {e}", original_error=e)
        if response.data:
            return AudienceSegment.from_db_row(response.data[0])
        return None

    async def list(self, limit: int = 100, offset: int = 0) -> List[AudienceSegment]:
        try:
            response = (
                self.db.table(self.table_name)
                .select("*")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error listing segments: {e}")
            raise DatabaseError(f"Error listing segments: {e}", original_error=e)
        return [AudienceSegment.from_db_row(row) for row in response.data or []]

    async def create(
        self,
        name: str,
        rules: RuleGroup,
        description: Optional[str] = None,
        created_by: str = "system",
    ) -> AudienceSegment:
        data = {
            "name": name,
            "description": description,
            "rules": rules.to_dict(),
            "created_by": created_by,
        }
        try:
            response = self.db.table(self.table_name).insert(data).execute()
        except Exception as e:
            if is_unique_violation(e):
                raise DuplicateName("Audience segment", name)
            logger.error(f"Error creating segment: {e}")
            raise DatabaseError(f"Error creating segment: {e}", original_error=e)

        if not response.data:
            raise DatabaseError("Segment insert returned no row")
        logger.info(f"[Segments] Created '{name}' by {created_by}")
        return AudienceSegment.from_db_row(response.data[0])
