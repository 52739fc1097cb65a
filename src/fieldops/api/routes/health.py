"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...db.supabase import get_supabase_client, ping
from ...errors import CollaboratorError

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Report whether the Supabase collaborators are configured and reachable."""
    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set FIELDOPS_SUPABASE_URL and FIELDOPS_SUPABASE_KEY environment variables.",
        }

    try:
        ping(supabase)
    except CollaboratorError as exc:
        return {"configured": True, "connected": False, "error": str(exc)}
    return {"configured": True, "connected": True}
