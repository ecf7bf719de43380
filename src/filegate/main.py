"""Main application entrypoint for FileGate."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from filegate.api.deps import AppState
from filegate.api.errors import register_exception_handlers
from filegate.api.middleware import HTTPErrorLoggingMiddleware
from filegate.api.v1 import routes_health
from filegate.api.v1.routes_files import router as files_router
from filegate.core.config import Settings
from filegate.core.logging import setup_logging
from filegate.services.files.base import FilesService
from filegate.services.files.factory import get_files_service
from filegate.storage.staging import TempStagingArea

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    state: AppState = app.state.filegate
    await state.staging.ensure_scratch_dir()
    logger.info(
        "FileGate started",
        extra={
            "environment": state.settings.ENV,
            "files_backend": state.files_service.get_backend_name(),
            "temp_dir": str(state.settings.TEMP_DIR),
        },
    )
    yield
    logger.info("FileGate shutting down")


def create_app(
    settings: Optional[Settings] = None, files_service: Optional[FilesService] = None
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Frozen settings, loaded from the environment when omitted
        files_service: Files service, built from settings when omitted

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = settings or Settings()

    # Initialize logging first
    setup_logging(settings)

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.filegate = AppState(
        settings=settings,
        staging=TempStagingArea(settings.TEMP_DIR),
        files_service=files_service or get_files_service(settings),
    )

    app.add_middleware(HTTPErrorLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(files_router, prefix=settings.files_prefix)

    return app


# Export app instance for ASGI servers
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
