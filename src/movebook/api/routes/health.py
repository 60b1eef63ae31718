"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_geocoder_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.geocoding import check_health as geocoder_health_check
    return geocoder_health_check


def _get_router_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing import check_router_health
    return check_router_health


@router.get("/health/geocoder", status_code=status.HTTP_200_OK)
def health_geocoder() -> dict:
    """Check the geocoding service."""
    try:
        return {"service": "geocoder", "healthy": _get_geocoder_health_check()()}
    except Exception as e:
        return {"service": "geocoder", "healthy": False, "error": str(e)}


@router.get("/health/router", status_code=status.HTTP_200_OK)
def health_router() -> dict:
    """Check the configured routing service."""
    try:
        return {
            "service": "router",
            "provider": settings.router_provider,
            "healthy": _get_router_health_check()(),
        }
    except Exception as e:
        return {"service": "router", "provider": settings.router_provider, "healthy": False, "error": str(e)}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check database connection and order table status."""
    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set MOVEBOOK_SUPABASE_URL and MOVEBOOK_SUPABASE_KEY environment variables. Orders are kept in memory.",
        }

    try:
        response = supabase.table(settings.orders_table).select("id", count="exact").limit(1).execute()
        return {
            "configured": True,
            "connected": True,
            "orders_table": settings.orders_table,
            "orders_count": response.count,
            "message": f"Database connected. Found {response.count} orders.",
        }
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
