"""
Shared HTTP client singleton with connection pooling.

Every outbound HTTP call (vendor sends, delivery callbacks) goes
through one AsyncClient:
- Connection reuse
- HTTP/2 multiplexing
- Standard timeouts
- Graceful close on shutdown
"""

import httpx
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Global HTTP client (singleton)
_client: Optional[httpx.AsyncClient] = None


async def get_http_client() -> httpx.AsyncClient:
    """
    Returns the HTTP client singleton.

    Created on first call.
    """
    global _client
    if _client is None:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=10.0,
                read=30.0,
                write=30.0,
                pool=5.0,
            ),
            limits=httpx.Limits(
                max_connections=100,
                max_keepalive_connections=20,
                keepalive_expiry=30.0,
            ),
            http2=True,
            headers={
                "User-Agent": "Audience-CRM/1.0",
            },
            follow_redirects=True,
        )
        logger.info("HTTP client singleton created")

    return _client


async def close_http_client() -> None:
    """
    Closes the HTTP client.

    Called on application shutdown.
    """
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("HTTP client singleton closed")


async def http_post(url: str, **kwargs) -> httpx.Response:
    """POST using the singleton client."""
    client = await get_http_client()
    return await client.post(url, **kwargs)
