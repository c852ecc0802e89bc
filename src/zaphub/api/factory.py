"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response

from zaphub.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

from .deps import Services
from .errors import install_error_handlers
from .routers import public
from .routes import (
    companion,
    instances,
    messages,
    notifications,
    sessions,
    webhook_evolution,
    webhooks,
)


def create_app(services: Services | None = None) -> FastAPI:
    """Create the gateway proxy app.

    Args:
        services: Collaborators to serve with. Built from the environment
            (STORE_BACKEND, EVOLUTION_*) when omitted.

    Returns:
        Configured FastAPI application.
    """
    services = services or Services()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # pending session timers must not outlive the app
        services.close()

    app = FastAPI(
        title="Zaphub",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.services = services

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    install_error_handlers(app)

    app.include_router(public.router)
    app.include_router(instances.router)
    app.include_router(messages.router)
    app.include_router(messages.chats_router)
    app.include_router(webhook_evolution.router)
    app.include_router(webhooks.router)
    app.include_router(sessions.router)
    app.include_router(companion.router)
    app.include_router(notifications.router)

    return app
