"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nutrition_chat.api.errors import register_error_handlers
from nutrition_chat.api.routes import router as openai_router
from nutrition_chat.app_logging import configure_logging
from nutrition_chat.config import parse_cors_origins
from nutrition_chat.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Nutrition chat API starting",
            extra={"environment": settings.node_env, "port": settings.port},
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(
        title="Nutrition Chat API",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.is_development else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.is_development else None,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_cors_origins(settings.cors_origin),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(openai_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
