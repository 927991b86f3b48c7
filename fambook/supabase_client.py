import logging

from supabase import Client, create_client

from fambook.config import settings
from fambook.errors import DependencyError

logger = logging.getLogger(__name__)

_client: Client | None = None


def get_supabase() -> Client:
    """Supabase client, created on first use."""
    global _client

    if _client is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise DependencyError("Supabase storage is not configured")

        _client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        logger.info("Supabase client created for %s", settings.SUPABASE_URL)

    return _client
