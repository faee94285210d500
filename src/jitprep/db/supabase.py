"""Supabase client for the orders store."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get the cached Supabase client that backs the orders table.

    Returns:
        Supabase Client instance if configured, None otherwise, in which case
        orders are kept in process memory.
        Note: This does not test the connection - the orders table check in
        ``/api/health/database`` does.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logger.info(
            f"Supabase credentials not configured (JIT_SUPABASE_URL/JIT_SUPABASE_KEY); "
            f"orders table '{settings.orders_table}' unavailable"
        )
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client for orders table '{settings.orders_table}': {e}")
        return None
