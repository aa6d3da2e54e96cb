"""
FastAPI application entry point for the Japanese Flashcard API.

This module provides:
- The top-level dispatcher (health, metrics, flashcard mount, catch-all home)
- The middleware chain wrapped around the whole dispatcher
- ``Server``, which serves the wrapped app with uvicorn
"""

import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
import uvicorn
from fastapi import FastAPI
from starlette.types import ASGIApp

from api.src.config import Settings, get_settings
from api.src.errors import ServerError
from api.src.middleware import build_middleware, chain_middleware
from api.src.responses import register_exception_handlers
from api.src.routers import health, root
from api.src.routers.flashcard import create_flashcard_app
from api.src.services.inference_client import AiohttpInferenceClient, InferenceClient
from shared.logging import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup and shutdown of the dispatcher."""
    settings: Settings = app.state.settings
    logger.info(
        "application_started",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        ollama_url=settings.ollama_url,
        ollama_model=settings.ollama_model,
        auth_enabled=settings.auth_enabled
    )
    yield
    logger.info("application_shutdown_complete")


def create_dispatcher(settings: Settings, inference_client: InferenceClient) -> FastAPI:
    """
    Build the top-level router.

    Route order matters: specific routes and the flashcard mount come before
    the catch-all, which answers everything else.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Generates Japanese vocabulary flashcards with a local language model.",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings

    register_exception_handlers(app)

    app.include_router(health.router)
    if settings.metrics_enabled:
        app.include_router(health.metrics_router)

    app.include_router(root.create_redirect_router(settings.flashcard_prefix))
    app.mount(
        settings.flashcard_prefix,
        create_flashcard_app(settings, inference_client),
        name="flash_card",
    )

    app.include_router(root.router)

    return app


def create_app(
    settings: Optional[Settings] = None,
    inference_client: Optional[InferenceClient] = None,
) -> ASGIApp:
    """
    Assemble the dispatcher and wrap it in the middleware chain.

    Args:
        settings: Defaults to the cached environment settings
        inference_client: Defaults to the aiohttp client

    Returns:
        ASGI application ready to serve
    """
    settings = settings or get_settings()
    inference_client = inference_client or AiohttpInferenceClient()

    dispatcher = create_dispatcher(settings, inference_client)
    return chain_middleware(build_middleware(settings))(dispatcher)


class Server:
    """Serves the flashcard API on the configured address."""

    def __init__(self, settings: Settings, inference_client: Optional[InferenceClient] = None):
        self.settings = settings
        self.inference_client = inference_client

    def run(self) -> None:
        """
        Serve until shutdown.

        Raises:
            ServerError: If the listener fails (for example, address in use)
        """
        config = uvicorn.Config(
            create_app(self.settings, self.inference_client),
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
            access_log=False,
            log_config=None,
        )
        server = uvicorn.Server(config)

        logger.info("starting_uvicorn_server", address=self.settings.address)

        # uvicorn exits the process on bind failure; hand that back to the caller.
        try:
            server.run()
        except SystemExit as e:
            raise ServerError(f"listener on {self.settings.address} failed") from e


def main() -> int:
    """Process entrypoint: configure logging, serve, report a fatal listener error."""
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.log_format == "json",
        service_name=settings.app_name,
        environment=settings.environment,
    )

    try:
        Server(settings).run()
    except ServerError as e:
        logger.error("server_stopped", error=str(e), cause=repr(e.__cause__))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
