"""
FastAPI application entry point.

The application is built on demand: ``run()`` builds and serves one app, and
``uvicorn --factory app.main:create_app`` does the same under an external
uvicorn process. Importing this module builds nothing.
"""

import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI

from app.config import Settings
from app.context import AppContext
from app.middleware.logging import RequestLoggingMiddleware
from app.api import webhooks
from app.services.github_auth import load_private_key
from app.utils.logging import setup_logging, get_logger

APP_NAME = "cursorignore-checker"
VERSION = "0.1.0"

logger = get_logger(__name__, component="server")


class StartupError(Exception):
    """Unrecoverable failure while starting the service."""
    pass


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the FastAPI application and its context.

    Args:
        settings: Settings to use; loaded from the environment when omitted
        transport: Optional httpx transport for the GitHub client

    Returns:
        Configured FastAPI application
    """
    settings = settings or Settings()
    setup_logging(settings.log_level)
    context = AppContext.build(settings, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {APP_NAME}")
        logger.info(f"App ID: {settings.app_id or 'unknown'}")
        logger.info(f"Webhook proxy (not forwarded by this process): {settings.webhook_proxy_url or 'none'}")
        logger.info(f"GitHub auth: {'static token' if settings.github_token else 'app installation token'}")
        logger.info(f"Webhook secret configured: {'yes' if settings.webhook_secret else 'no'}")
        yield
        logger.info(f"Shutting down {APP_NAME}")
        await context.close()

    app = FastAPI(
        title="cursorignore checker",
        description="Ensures pull requests into policed branches carry a .cursorignore file",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for container orchestration."""
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "app": APP_NAME,
            "app_id": settings.app_id or "unknown",
            "version": VERSION,
        }

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": f"{APP_NAME} is running",
            "version": VERSION,
        }

    app.include_router(webhooks.router)

    return app


def check_settings(settings: Settings) -> None:
    """
    Require credentials for the GitHub API: a static token, or an app id
    together with a private key.

    Raises:
        StartupError: If the GitHub client cannot be initialized
    """
    if settings.github_token:
        return
    if not settings.app_id:
        raise StartupError("Neither GITHUB_TOKEN nor APP_ID is set; cannot call the GitHub API")
    if not load_private_key(settings.private_key, settings.private_key_path):
        raise StartupError("APP_ID is set but PRIVATE_KEY and PRIVATE_KEY_PATH are not")


def run() -> None:
    """Console entry point. Exits with status 1 if startup fails."""
    try:
        settings = Settings()
        setup_logging(settings.log_level)
        check_settings(settings)
        application = create_app(settings)
        uvicorn.run(application, host=settings.host, port=settings.port, log_config=None)
    except (StartupError, OSError, ValueError) as e:
        logger.error(f"Startup failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
