"""
LLM module - AI-assisted features over Anthropic Claude.

Usage:
    from crm.services.llm import RuleGenerator

    rules = await RuleGenerator().generate("big spenders inactive for 3 months")

In tests, pass any object with an async `complete(...)` as `llm`.
"""
from crm.services.llm.client import AnthropicClient, LLMClient, LLMError, get_llm_client
from crm.services.llm.insights import CampaignInsights
from crm.services.llm.messages import MessageSuggester
from crm.services.llm.segment_rules import RuleGenerator

__all__ = [
    "AnthropicClient",
    "LLMClient",
    "LLMError",
    "get_llm_client",
    "CampaignInsights",
    "MessageSuggester",
    "RuleGenerator",
]
