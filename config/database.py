"""
Database connection management.

Provides the Supabase client used by the supabase storage backend.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Get cached Supabase client instance.

    Uses lru_cache to ensure only one client is created.
    Call reset_connection() to reconnect.

    Returns:
        Client: Supabase client

    Raises:
        DatabaseError: If credentials are missing or the connection fails
    """
    if not settings.supabase_configured:
        logger.error("supabase_not_configured")
        raise DatabaseError("connect", "SUPABASE_URL and SUPABASE_KEY must be set for the supabase backend")

    try:
        logger.info(
            "connecting_to_supabase",
            url=settings.supabase_url[:30] + "..."  # Log partial URL only
        )

        client = create_client(
            settings.supabase_url,
            settings.supabase_key
        )

        logger.info(
            "supabase_connected",
            status="success"
        )

        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseError("connect", str(e)) from e


def check_connection() -> dict:
    """
    Check storage health.

    The file backend is always reported healthy; the supabase backend runs a
    trivial query against the documents table.

    Returns:
        dict: Connection status with details
    """
    if settings.storage_backend == "file":
        return {"status": "healthy", "backend": "file", "data_dir": settings.data_dir}

    try:
        client = get_supabase_client()
        documents = client.table("import_documents").select("key", count="exact").execute()

        return {
            "status": "healthy",
            "backend": "supabase",
            "documents_count": documents.count
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "backend": "supabase",
            "error": str(e)
        }


def reset_connection():
    """
    Reset the cached database connection.

    Call this if connection becomes stale or after config changes.
    """
    get_supabase_client.cache_clear()
    logger.info("database_connection_reset")
