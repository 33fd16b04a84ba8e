"""
Supabase client for store operations.

The client is created on first use so the app (and its tests) can be
imported without credentials.
"""
import logging
from functools import lru_cache

from supabase import create_client, Client

from crm.core.config import settings
from crm.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Returns the cached Supabase client.
    Uses the service key for full access.

    Raises:
        ConfigurationError: SUPABASE_URL / SUPABASE_SERVICE_KEY missing
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        raise ConfigurationError(
            "SUPABASE_URL and SUPABASE_SERVICE_KEY are required"
        )

    logger.info("Supabase client created")
    return create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY
    )
