"""
Anthropic client for the AI-assisted features.

Wraps the Messages API behind a single `complete` call. Transient
failures (connection, rate limit, 5xx) are retried with tenacity;
everything else surfaces as LLMError.
"""

import logging
from typing import Any, Optional, Protocol, runtime_checkable

import anthropic
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from crm.core.config import settings
from crm.core.exceptions import ExternalAPIError

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)


class LLMError(ExternalAPIError):
    """LLM call failed or returned unusable output."""

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None,
    ):
        self.retryable = retryable
        super().__init__(message, "anthropic", details, original_error)


@runtime_checkable
class LLMClient(Protocol):
    """Anything that turns a prompt into text."""

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.2,
    ) -> str:
        ...


class AnthropicClient:
    """
    LLMClient backed by Claude.

    Example:
        llm = AnthropicClient()
        text = await llm.complete("Summarize...", temperature=0.4)
    """

    def __init__(
        self,
        model_id: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self._model_id = model_id or settings.LLM_MODEL
        self._api_key = api_key or settings.ANTHROPIC_API_KEY
        self._client = client

    @property
    def model_id(self) -> str:
        return self._model_id

    def _get_client(self):
        if self._client is None:
            if not self._api_key:
                raise LLMError("ANTHROPIC_API_KEY not configured")
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self._client

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _create_message(self, **kwargs) -> Any:
        return await self._get_client().messages.create(**kwargs)

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.2,
    ) -> str:
        """
        Single-turn completion.

        Returns:
            Concatenated text blocks of the answer

        Raises:
            LLMError: API failure (after retries) or empty answer
        """
        kwargs = {
            "model": self._model_id,
            "max_tokens": max_tokens or settings.LLM_MAX_TOKENS,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        logger.debug(f"[LLM] Calling {self._model_id} (prompt={len(prompt)} chars)")

        try:
            response = await self._create_message(**kwargs)
        except TRANSIENT_ERRORS as e:
            raise LLMError(f"Anthropic unavailable: {e}", retryable=True, original_error=e)
        except anthropic.APIError as e:
            raise LLMError(f"Anthropic API error: {e}", original_error=e)

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        ).strip()
        if not text:
            raise LLMError("Empty response from LLM")
        return text


_default_client: Optional[AnthropicClient] = None


def get_llm_client() -> AnthropicClient:
    """Shared client (FastAPI dependency)."""
    global _default_client
    if _default_client is None:
        _default_client = AnthropicClient()
    return _default_client
