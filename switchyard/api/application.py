"""Application - hosts a root Switch inside a FastAPI app.

Invariants:
    - The root Switch is mounted last, after the initializer ran
    - FastAPI's own docs and schema routes are disabled (the tree describes itself)
    - Global error handlers map SwitchyardError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Logging configured on startup via lifespan context manager
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from switchyard.api.dispatch import SwitchApp
from switchyard.api.error_handlers import register_error_handlers
from switchyard.api.tree import Switch
from switchyard.config import Settings, get_settings
from switchyard.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


def create_app(
    root: Switch,
    *,
    settings: Settings | None = None,
    initializer: Callable[[FastAPI], None] | None = None,
) -> FastAPI:
    """Build the ASGI application serving `root`."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(settings.log_level, settings.log_format)
        logger.info(f"{settings.app_title} started")
        yield
        logger.info(f"{settings.app_title} shutting down")

    app = FastAPI(
        title=settings.app_title,
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_error_handlers(app)

    if initializer is not None:
        initializer(app)

    app.mount("/", SwitchApp(root.dispatcher), name="switchyard")
    return app
