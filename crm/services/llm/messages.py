"""
Message template suggestions for a campaign objective.
"""

import json
import logging
from typing import List, Optional

from crm.core.exceptions import ValidationError
from crm.services.llm.client import LLMClient, LLMError, get_llm_client
from crm.services.llm.parsing import extract_json
from crm.services.llm.prompts import (
    MESSAGE_SUGGESTIONS_AUDIENCE_LINE,
    MESSAGE_SUGGESTIONS_SYSTEM_PROMPT,
    MESSAGE_SUGGESTIONS_USER_PROMPT,
)

logger = logging.getLogger(__name__)

TONES = ("neutral", "formal", "friendly", "playful", "urgent")
MIN_SUGGESTIONS = 1
MAX_SUGGESTIONS = 5


class MessageSuggester:
    """Drafts message templates that use the personalization placeholders."""

    def __init__(self, llm: Optional[LLMClient] = None):
        self.llm = llm or get_llm_client()

    async def suggest(
        self,
        objective: str,
        tone: str = "neutral",
        count: int = 3,
        audience: Optional[str] = None,
    ) -> List[str]:
        """
        Raises:
            ValidationError: the model produced no suggestions
            LLMError: API failure or an answer that is not a list of strings
        """
        lines = [MESSAGE_SUGGESTIONS_USER_PROMPT.format(objective=objective)]
        if audience:
            lines.append(MESSAGE_SUGGESTIONS_AUDIENCE_LINE.format(audience=audience))
        lines.append(f"Write {count} message suggestions with a {tone} tone.")

        answer = await self.llm.complete(
            "\n".join(lines),
            system=MESSAGE_SUGGESTIONS_SYSTEM_PROMPT.format(count=count, tone=tone),
            temperature=0.7,
        )

        try:
            data = extract_json(answer, opening="[", closing="]")
        except json.JSONDecodeError as e:
            logger.warning(f"[MessageSuggester] Invalid JSON from LLM: {answer[:200]}")
            raise LLMError(
                "AI generated an invalid JSON format for messages. Please try again.",
                details={"raw_output": answer},
                original_error=e,
            )

        if not isinstance(data, list) or not all(isinstance(s, str) for s in data):
            raise LLMError(
                "AI generated message suggestions with an invalid structure.",
                details={"raw_output": data},
            )

        suggestions = [s.strip() for s in data if s.strip()][:count]
        if not suggestions:
            raise ValidationError(
                "AI could not generate relevant message suggestions for the given objective. Try rephrasing."
            )

        logger.info(f"[MessageSuggester] Generated {len(suggestions)} suggestions ({tone})")
        return suggestions
