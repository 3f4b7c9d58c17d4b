"""
Main FastAPI application module.

This module creates and configures the FastAPI application instance.
Design Rationale:
- Factory pattern for app creation
- Request ids bound to the structured log context
- Domain exceptions translated to HTTP errors in one place
- CORS and compression configuration
"""

import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from songmatch.core.config import get_settings
from songmatch.core.exceptions import PostNotFoundError, UserNotFoundError
from songmatch.core.logging import configure_logging, get_logger, LoggingContext
from songmatch.core.database import create_tables
from songmatch.api.v1 import api_router
from songmatch.models.schemas import ErrorResponse

# Get settings and configure logging
settings = get_settings()
configure_logging()
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Creates the tables on startup and logs shutdown.
    """
    logger.info("Application starting up", app_name=settings.APP_NAME, environment=settings.ENVIRONMENT)

    try:
        await create_tables()
        logger.info("Database tables created/verified")

    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    yield  # Application is running

    logger.info("Application shutting down")


def _error_response(request: Request, status_code: int, error: str, detail: str = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            detail=detail,
            request_id=getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
        ).model_dump(mode='json')
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Translate validation, HTTP and domain errors into ErrorResponse bodies."""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("Request validation error", path=request.url.path, errors=exc.errors())
        return _error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Request validation failed",
            str(exc.errors())
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning("HTTP exception", path=request.url.path, status_code=exc.status_code, detail=exc.detail)
        return _error_response(request, exc.status_code, str(exc.detail))

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(request: Request, exc: UserNotFoundError):
        logger.warning("User not found", path=request.url.path, user_id=exc.user_id)
        return _error_response(request, status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(PostNotFoundError)
    async def post_not_found_handler(request: Request, exc: PostNotFoundError):
        logger.warning("Post not found", path=request.url.path, post_id=exc.post_id)
        return _error_response(request, status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            "An unexpected error occurred"
        )


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="Daily song posts, compatibility-ranked discovery and mutual-like matching",
        version=APP_VERSION,
        docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
        openapi_url="/openapi.json" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add GZip compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Add request ID to all requests for tracing."""
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id

        with LoggingContext(request_id=request_id):
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to responses."""
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = str(time.time() - start_time)
        return response

    register_exception_handlers(app)

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    async def root():
        """Root endpoint with application information."""
        return {
            "name": settings.APP_NAME,
            "version": APP_VERSION,
            "docs": "/docs" if settings.ENVIRONMENT != "production" else None,
            "health": f"{settings.API_V1_STR}/health"
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "songmatch.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=settings.WORKERS,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
