"""Bakery FastAPI application.

Commands are processed synchronously per request inside the bakery domain
context.

Usage:
    uvicorn bakery.app:create_app --factory --host 0.0.0.0 --port 8000
"""

from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bakery.api import order_router, register_error_handlers
from bakery.domain import bakery
from bakery.settings import BakerySettings, load_settings
from bakery.utils.logging import configure_logging


def create_app(settings: BakerySettings | None = None, init_domain: bool = True) -> FastAPI:
    # PROTEAN_ENV picks the config overlay from domain.toml
    settings = settings or load_settings()
    configure_logging(settings.log_dir)

    if init_domain:
        bakery.init()

    app = FastAPI(
        title="Bakery API",
        description="Order placement and lifecycle for the bakery storefront",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the bakery domain context and bind request details for logging."""
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        structlog.contextvars.clear_contextvars()
        with structlog.contextvars.bound_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        ), bakery.domain_context():
            response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    app.include_router(order_router)
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": bakery.name})

    return app
