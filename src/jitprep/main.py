"""FastAPI application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import health, orders, tracking
from .config import settings
from .persistence.orders import OrderRepository, get_order_repository
from .services.engine import DecisionEngine, EngineTunables
from .services.eta import EtaProvider, get_provider
from .services.notifications import ConnectionHub

logger = logging.getLogger(__name__)


def _build_provider() -> EtaProvider | None:
    try:
        return get_provider()
    except ValueError as e:
        logger.error(f"ETA provider initialization failed: {e}. Position updates will be rejected.")
        return None


def create_app(
    repository: OrderRepository | None = None,
    provider: EtaProvider | None = None,
    tunables: EngineTunables | None = None,
) -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title=settings.app_name)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    hub = ConnectionHub()
    app.state.hub = hub
    app.state.repository = repository or get_order_repository()
    app.state.provider = provider or _build_provider()
    app.state.engine = (
        DecisionEngine(
            repository=app.state.repository,
            provider=app.state.provider,
            channel=hub,
            tunables=tunables or EngineTunables.from_settings(),
        )
        if app.state.provider is not None
        else None
    )

    @app.exception_handler(RequestValidationError)
    async def log_rejected_input(request: Request, exc: RequestValidationError):
        logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
        return await request_validation_exception_handler(request, exc)

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(orders.router, prefix=settings.api_prefix)
    app.include_router(tracking.router)
    return app


app = create_app()
