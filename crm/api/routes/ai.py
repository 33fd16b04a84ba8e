"""
AI-assisted segment rule generation and message drafting.
"""
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from crm.api.deps import get_message_suggester, get_rule_generator
from crm.services.llm.messages import MAX_SUGGESTIONS, MIN_SUGGESTIONS, MessageSuggester
from crm.services.llm.segment_rules import RuleGenerator

router = APIRouter(prefix="/ai", tags=["ai"])


class SegmentRulesRequest(BaseModel):
    prompt: str = Field(..., min_length=10, description="Natural language audience description")


class SuggestMessagesRequest(BaseModel):
    objective: str = Field(..., min_length=10, description="What the campaign should achieve")
    audienceDescription: Optional[str] = None
    tone: Literal["neutral", "formal", "friendly", "playful", "urgent"] = "neutral"
    messageCount: int = Field(3, ge=MIN_SUGGESTIONS, le=MAX_SUGGESTIONS)


@router.post("/segment-rules")
async def generate_segment_rules(
    body: SegmentRulesRequest,
    generator: RuleGenerator = Depends(get_rule_generator),
):
    """Returns a validated rule set, or 502 when the model output is unusable."""
    rules = await generator.generate(body.prompt)
    return {"rules": rules.to_dict()}


@router.post("/suggest-messages")
async def suggest_messages(
    body: SuggestMessagesRequest,
    suggester: MessageSuggester = Depends(get_message_suggester),
):
    suggestions = await suggester.suggest(
        body.objective,
        tone=body.tone,
        count=body.messageCount,
        audience=body.audienceDescription,
    )
    return {"suggestions": suggestions}
