"""
Natural language -> RuleGroup.

The LLM output goes through the same rule model and compiler as any
hand-written rule set, so only compilable rules are returned.
"""

import json
import logging
from typing import Optional

from crm.core.exceptions import RuleError, ValidationError
from crm.services.audience.compiler import QueryCompiler
from crm.services.audience.rules import RuleGroup
from crm.services.llm.client import LLMClient, LLMError, get_llm_client
from crm.services.llm.parsing import extract_json
from crm.services.llm.prompts import SEGMENT_RULES_SYSTEM_PROMPT, SEGMENT_RULES_USER_PROMPT

logger = logging.getLogger(__name__)


class RuleGenerator:
    """Produces a rule set from a description, or fails."""

    def __init__(self, llm: Optional[LLMClient] = None, compiler: Optional[QueryCompiler] = None):
        self.llm = llm or get_llm_client()
        self.compiler = compiler or QueryCompiler()

    async def generate(self, prompt: str) -> RuleGroup:
        """
        Raises:
            ValidationError: the model declined to translate the prompt
            LLMError: API failure, invalid JSON or invalid rules
        """
        answer = await self.llm.complete(
            SEGMENT_RULES_USER_PROMPT.format(prompt=prompt),
            system=SEGMENT_RULES_SYSTEM_PROMPT,
            temperature=0.2,
        )

        try:
            data = extract_json(answer)
        except json.JSONDecodeError as e:
            logger.warning(f"[RuleGenerator] Invalid JSON from LLM: {answer[:200]}")
            raise LLMError(
                "AI generated an invalid JSON format. Try rephrasing the prompt.",
                details={"raw_output": answer},
                original_error=e,
            )

        if not isinstance(data, dict):
            raise LLMError("AI generated a rule set that is not an object", details={"raw_output": answer})

        if data.get("error"):
            raise ValidationError(f"AI could not translate prompt: {data['error']}")

        try:
            rules = RuleGroup.from_dict(data, max_depth=self.compiler.max_depth)
            self.compiler.compile(rules)
        except RuleError as e:
            logger.warning(f"[RuleGenerator] LLM rules rejected: {e}")
            raise LLMError(
                "AI generated rules with an invalid structure. Try again or refine the prompt.",
                details={"reason": e.message, "raw_output": data},
                original_error=e,
            )

        logger.info(
            f"[RuleGenerator] Generated {len(rules.conditions)} conditions, "
            f"{len(rules.groups)} groups"
        )
        return rules
