"""
Academic Document Repository

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.api.middleware.request_id import RequestIdMiddleware
from src.api.v1 import router as api_v1_router
from src.config import get_settings
from src.database import close_db, init_db
from src.engines.policy import (
    ConflictError,
    ExpiredWindowError,
    ForbiddenError,
    InfrastructureError,
    NotFoundError,
    PolicyError,
    close_caches,
)
from src.logging_config import configure_logging, get_logger
from src.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)

POLICY_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    ExpiredWindowError: status.HTTP_410_GONE,
    ConflictError: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await close_db()
    await close_caches()
    logger.info("Database and cache connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Academic Document Repository

    Course material shared between professors and students, scoped by
    track, level and subject.

    ## Features

    - **Documents**: Role- and scope-aware listing and access, corrections
    - **Trash**: Soft delete with a 30-day recovery window, then purge
    - **Comments**: Threaded discussion with student/staff reply discipline
    - **Audit**: Deduplicated audit log of views and mutations
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first: CORS added last wraps everything
_cors_origins = [
    "http://localhost:3000",
    "http://localhost:5173",  # Vite default
    "http://127.0.0.1:3000",
]

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(request: Request, status_code: int, content: dict) -> JSONResponse:
    headers = {}
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
        if status_code >= 500:
            content["request_id"] = req_id
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(PolicyError)
async def policy_exception_handler(request: Request, exc: PolicyError):
    """Map domain refusals to distinct HTTP statuses."""
    status_code = POLICY_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.info(
        "Policy refusal",
        extra={
            "code": exc.code,
            "resource_id": str(exc.resource_id) if exc.resource_id else None,
            "path": request.url.path,
        },
    )
    return _error_response(request, status_code, {"detail": exc.message, "code": exc.code})


@app.exception_handler(InfrastructureError)
async def infrastructure_exception_handler(request: Request, exc: InfrastructureError):
    """Collaborator failures are logged in full and surfaced opaquely."""
    logger.error(
        "Infrastructure failure",
        extra={"operation": exc.operation, "error": str(exc), "path": request.url.path},
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"detail": "Internal server error", "code": "infrastructure_error"},
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error: %s", exc)
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"detail": "Internal server error", "code": "infrastructure_error"},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    response = _error_response(request, exc.status_code, {"detail": exc.detail})
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {"detail": "Validation error", "errors": errors},
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    if settings.debug:
        content = {"detail": str(exc), "type": type(exc).__name__}
    else:
        content = {"detail": "Internal server error"}
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, content)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health."""
    return HealthResponse(
        status="ok",
        version=settings.version,
        database="connected",
        cache="redis" if settings.redis_url else "memory",
    )


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": settings.api_v1_prefix,
        },
    }


app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
