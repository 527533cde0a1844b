from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from marketplace.api.deps import bootstrap_admin, get_settings
from marketplace.api.routers.auth import router as auth_router
from marketplace.api.routers.health import router as health_router
from marketplace.api.routers.projects import router as projects_router
from marketplace.api.routers.solver import router as solver_router
from marketplace.api.routers.tasks import router as tasks_router
from marketplace.api.routers.users import router as users_router
from marketplace.api.schemas import ErrorResponse
from marketplace.logging import configure_logging
from marketplace.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ServiceError,
    UnauthenticatedError,
    ValidationError,
)
from marketplace.settings import Settings, load_settings

logger = logging.getLogger(__name__)

# Most specific first; ServiceError itself falls through to 500.
_STATUS_BY_ERROR: tuple[tuple[type[ServiceError], int], ...] = (
    (ValidationError, 400),
    (UnauthenticatedError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidStateError, 400),
)


# Error bodies documented on every /api router.
_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status_code: {"model": ErrorResponse} for status_code in (400, 401, 403, 404, 409)
}


def status_for(exc: ServiceError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def create_app(settings: Settings | None = None) -> FastAPI:
    active_settings = settings or load_settings()
    configure_logging(debug=active_settings.debug)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        bootstrap_admin(active_settings)
        yield

    app = FastAPI(title=active_settings.app_name, version=active_settings.app_version, lifespan=lifespan)
    app.dependency_overrides[get_settings] = lambda: active_settings

    @app.exception_handler(ServiceError)
    async def handle_service_error(_: Request, exc: ServiceError) -> JSONResponse:
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("Unhandled service error: %s", exc)
        detail: str | list[str] = exc.errors if isinstance(exc, ValidationError) and len(exc.errors) > 1 else exc.message
        return JSONResponse(status_code=status_code, content={"detail": detail, "error": exc.kind})

    @app.exception_handler(HTTPException)
    async def passthrough_http(_: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    app.include_router(health_router)
    for router in (auth_router, users_router, projects_router, tasks_router, solver_router):
        app.include_router(router, responses=_ERROR_RESPONSES)

    return app


app = create_app()
