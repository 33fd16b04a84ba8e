"""
Application service for audiences: previews and saved segments.

Routes call only this module. It raises domain exceptions
(crm.core.exceptions), never HTTP errors.
"""

import logging
from typing import List, Optional

from crm.core.exceptions import NotFoundError
from crm.repositories.customer import CustomerStore
from crm.repositories.segment import AudienceSegment, SegmentStore
from crm.services.audience.resolver import AudienceResolution, AudienceResolver
from crm.services.audience.rules import RuleGroup

logger = logging.getLogger(__name__)


class AudienceApplicationService:
    """
    Use cases for audience rules.

    Raises:
        RuleError: rule set cannot be compiled (nothing persisted)
        DuplicateName: segment name taken
        NotFoundError: unknown segment
    """

    def __init__(
        self,
        customers: CustomerStore,
        segments: SegmentStore,
        resolver: Optional[AudienceResolver] = None,
    ):
        self._segments = segments
        self._resolver = resolver or AudienceResolver(customers)

    async def preview(self, rules: RuleGroup) -> AudienceResolution:
        """Counts the customers a rule set selects; read only."""
        return await self._resolver.count(rules)

    async def create_segment(
        self,
        name: str,
        rules: RuleGroup,
        description: Optional[str] = None,
        created_by: str = "system",
    ) -> AudienceSegment:
        # Rejects uncompilable rules before anything is stored
        self._resolver.compiler.compile(rules)
        segment = await self._segments.create(
            name=name, rules=rules, description=description, created_by=created_by
        )
        logger.info(f"[AudienceService] Segment created: id={segment.id}")
        return segment

    async def list_segments(self, limit: int = 100, offset: int = 0) -> List[AudienceSegment]:
        return await self._segments.list(limit=limit, offset=offset)

    async def get_segment(self, segment_id: str) -> AudienceSegment:
        segment = await self._segments.get_by_id(segment_id)
        if segment is None:
            raise NotFoundError("Audience segment", segment_id)
        return segment
