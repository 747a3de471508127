"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from activity_admin.api.admin import router as admin_router
from activity_admin.app_logging import configure_logging
from activity_admin.containers import AppContainer
from activity_admin.errors import (
    AuthError,
    ConsoleError,
    InputError,
    NotFoundError,
    OperationInProgressError,
    PermissionDeniedError,
    RequestRejectedError,
)

_STATUS_BY_ERROR: list[tuple[type[ConsoleError], int]] = [
    (InputError, status.HTTP_400_BAD_REQUEST),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (OperationInProgressError, status.HTTP_409_CONFLICT),
    (AuthError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (RequestRejectedError, status.HTTP_422_UNPROCESSABLE_ENTITY),
]


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(ConsoleError)
    async def console_error_handler(
        request: Request, exc: ConsoleError
    ) -> JSONResponse:
        status_code = error_status(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "Activity API failure on %s: %s", request.url.path, exc.message
            )
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "error": type(exc).__name__},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def error_status(exc: ConsoleError) -> int:
    """Map a console error to the HTTP status returned to the client."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_502_BAD_GATEWAY
