"""
Application factory.

    uvicorn user_registry.main:app

`create_app()` wires logging, the request id middleware, exception handlers and
routers. Settings are read when the app is created; the database engine is only
created on the first request that needs a session.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from user_registry.api.v1 import health, users
from user_registry.api.v1.error_handlers import register_exception_handlers
from user_registry.config.settings import Settings, get_settings
from user_registry.core.logging import RequestIDMiddleware, setup_logging
from user_registry.database.session import dispose_engine
from user_registry.utils.logging import get_project_version

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings)
        logger.info("app.startup", extra={"env": settings.ENV, "api_prefix": settings.API_PREFIX})
        yield
        await dispose_engine()
        logger.info("app.shutdown")

    app = FastAPI(
        title="User Registry",
        version=get_project_version(),
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(users.router, prefix=settings.API_PREFIX)

    return app


app = create_app()
