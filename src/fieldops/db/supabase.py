"""Supabase client for the persistence collaborators."""

import logging
from functools import lru_cache

from supabase import Client, create_client

from ..config import settings
from ..errors import CollaboratorError

logger = logging.getLogger(__name__)

PING_TABLE = "zones"


def connect(url: str, key: str) -> Client:
    """Create a client; failures surface as ``CollaboratorError``."""
    try:
        return create_client(url, key)
    except Exception as exc:
        raise CollaboratorError("connect to Supabase", exc) from exc


@lru_cache()
def get_supabase_client() -> Client | None:
    """Cached client, or ``None`` when Supabase is not configured or unreachable.

    Creating the client does not query the database; use ``ping`` for that.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return connect(settings.supabase_url, settings.supabase_key)
    except CollaboratorError as exc:
        logger.error(f"Falling back to in-memory storage: {exc}")
        return None


def ping(client: Client) -> None:
    """Run a one-row query against the zones table."""
    try:
        client.table(PING_TABLE).select("id", count="exact").limit(1).execute()
    except Exception as exc:
        raise CollaboratorError("query Supabase", exc) from exc
