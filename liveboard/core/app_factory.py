"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated instances with their own container.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from liveboard.api.routes import (
    actions_router,
    auth_router,
    health_router,
    questions_router,
    stream_router,
)
from liveboard.core.config import settings
from liveboard.core.container import ServiceContainer, build_container
from liveboard.core.exception_handlers import setup_exception_handlers
from liveboard.core.logging import configure_logging
from liveboard.core.middleware import request_id_middleware
from liveboard.core.openapi import apply_openapi_customizations


def create_app(container_factory: Callable[[], ServiceContainer] | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        container_factory: Builds the service container at startup. Defaults
            to ``build_container`` with the global settings.

    Returns:
        Configured FastAPI app with lifespan, middleware, handlers, routers
        and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    factory = container_factory or build_container

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container = factory()
        await container.start()
        app.state.container = container
        try:
            yield
        finally:
            await container.close()

    app = FastAPI(
        title="Live Questions Board",
        description=(
            "Post short questions, like them, and watch every change live over "
            "server-sent events. Write endpoints are rate limited per client "
            "identity (X-User-ID, then X-Forwarded-For)."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(questions_router, prefix="/api")
    app.include_router(stream_router, prefix="/api")
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(actions_router, prefix="/actions")
    app.include_router(health_router)

    # OpenAPI customizations (tags, identity headers)
    apply_openapi_customizations(app)

    return app
