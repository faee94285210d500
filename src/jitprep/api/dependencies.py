"""Request-scoped accessors for the collaborators wired in ``create_app``."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from ..persistence.orders import OrderRepository
from ..services.engine import DecisionEngine


def get_repository(request: Request) -> OrderRepository:
    return request.app.state.repository


def get_engine(request: Request) -> DecisionEngine:
    engine = request.app.state.engine
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="ETA provider is not configured. Check JIT_ETA_PROVIDER and its credentials.",
        )
    return engine
