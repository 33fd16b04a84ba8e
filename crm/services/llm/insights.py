"""
Campaign insights: performance summary and auto-tagging.
"""

import json
import logging
from typing import Dict, List, Optional

from crm.services.campaigns.types import Campaign
from crm.services.llm.client import LLMClient, get_llm_client
from crm.services.llm.parsing import extract_json
from crm.services.llm.prompts import CAMPAIGN_SUMMARY_PROMPT, CAMPAIGN_TAGS_PROMPT

logger = logging.getLogger(__name__)

MAX_TAGS = 3


class CampaignInsights:
    def __init__(self, llm: Optional[LLMClient] = None):
        self.llm = llm or get_llm_client()

    async def summarize(self, campaign: Campaign, status_counts: Optional[Dict[str, int]] = None) -> str:
        """Short performance summary for a marketing audience."""
        prompt = CAMPAIGN_SUMMARY_PROMPT.format(
            name=campaign.name,
            status=campaign.status.value,
            audience_size=campaign.audience_size,
            sent_count=campaign.sent_count,
            failed_count=campaign.failed_count,
            status_counts=json.dumps(status_counts or {}),
            message_template=campaign.message_template,
        )
        return await self.llm.complete(prompt, max_tokens=300, temperature=0.4)

    async def suggest_tags(self, campaign: Campaign) -> List[str]:
        """
        Up to three tags describing the campaign.

        An unparseable answer yields no tags rather than an error.
        """
        prompt = CAMPAIGN_TAGS_PROMPT.format(
            name=campaign.name,
            status=campaign.status.value,
            audience_rules=json.dumps(campaign.audience_rules.to_dict()),
            message_template=campaign.message_template,
            audience_size=campaign.audience_size,
            sent_count=campaign.sent_count,
            failed_count=campaign.failed_count,
        )
        answer = await self.llm.complete(prompt, max_tokens=100, temperature=0.3)

        try:
            data = extract_json(answer, opening="[", closing="]")
        except json.JSONDecodeError:
            logger.warning(f"[Insights] Unparseable tags for campaign {campaign.id}: {answer[:100]}")
            return []
        if not isinstance(data, list):
            return []

        tags = []
        for item in data:
            tag = str(item).strip()
            if tag and tag not in tags:
                tags.append(tag)
        return tags[:MAX_TAGS]
