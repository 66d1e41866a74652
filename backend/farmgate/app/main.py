"""FastAPI application factory for the Farmgate gateway."""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import Settings, settings as default_settings
from .errors import install_error_handlers
from .logging import bind_contextvars, clear_contextvars, get_logger, setup_logging
from .routes import admin, auth, inventory, leads, logistics, notifications, orders, system
from .services import build_services

logger = get_logger("farmgate.main")


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Select the order store, start the scheduler and tear both down."""

    services = app.state.services
    await services.start()
    logger.info(
        "gateway_started",
        env=services.settings.env,
        store=services.store.kind,
        durable_store=services.store.durable,
        jobs=services.scheduler.job_names,
    )
    try:
        yield
    finally:
        await services.stop()
        logger.info("gateway_stopped")


def create_app(*, settings: Settings | None = None, api_prefix: str | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Parameters
    ----------
    settings:
        Configuration override; defaults to the environment-derived settings.
    api_prefix:
        Optional path prefix under which the REST routers are mounted. The
        notification WebSocket is always served from the application root.
    """

    config = settings or default_settings
    setup_logging(level=config.log_level)

    app = FastAPI(title="Farmgate Gateway", version=__version__, lifespan=_lifespan)
    app.state.services = build_services(config)
    install_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.env == "dev" else [config.frontend_url],
        allow_credentials=config.env != "dev",
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        clear_contextvars()
        bind_contextvars(path=request.url.path, method=request.method)
        return await call_next(request)

    router_prefix = ""
    if api_prefix:
        router_prefix = api_prefix.rstrip("/")
        if router_prefix and not router_prefix.startswith("/"):
            router_prefix = f"/{router_prefix}"

    for module in (system, auth, orders, inventory, leads, logistics, admin):
        app.include_router(module.router, prefix=router_prefix)
    app.include_router(notifications.router)

    return app


app = create_app(api_prefix="/api")
