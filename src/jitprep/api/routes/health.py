"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/provider", status_code=status.HTTP_200_OK)
def health_provider(request: Request) -> dict:
    """Check ETA provider reachability with a single lookup."""
    provider = request.app.state.provider
    if provider is None:
        return {"service": "eta_provider", "configured": False, "healthy": False}
    try:
        return {"service": "eta_provider", "configured": True, "healthy": provider.check_health()}
    except Exception as e:
        return {"service": "eta_provider", "configured": True, "healthy": False, "error": str(e)}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database(request: Request) -> dict:
    """Check the order store."""
    repository = request.app.state.repository
    return {
        "backend": type(repository).__name__,
        "healthy": repository.check_health(),
    }
