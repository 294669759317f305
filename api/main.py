"""
FastAPI main application for the Book Store API.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import __version__
from api.errors import APIError, MalformedRequestError
from api.models import APIResponse
from api.routes import BOOKS_PREFIX, build_book_router
from catalog.database import BookRepository, MongoDBManager
from catalog.models import format_validation_errors
from catalog.service import BookService
from utilities.config import config
from utilities.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store at startup and close it at shutdown."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.is_development()
    )
    logger.info("Starting Book Store API", port=config.port, environment=config.environment)

    db_manager = MongoDBManager(
        connection_url=config.mongo_uri,
        collection_name=config.mongodb_collection,
        default_database=config.mongodb_database,
        timeout_ms=config.mongo_timeout_ms
    )
    try:
        await db_manager.connect()
        logger.info("Database connection established")
    except Exception as e:
        # Not fatal: the API keeps serving and store-backed requests fail with 500
        logger.error("Failed to connect to database", error=str(e))

    app.state.db_manager = db_manager
    if db_manager.collection is not None:
        app.state.book_service = BookService(BookRepository(db_manager.collection))
    else:
        app.state.book_service = None

    yield

    logger.info("Shutting down Book Store API")
    app.state.book_service = None
    await db_manager.disconnect()


# Create FastAPI application
app = FastAPI(
    title="Book Store API",
    description="""
    REST API for managing a catalog of books.

    * **Books**: create, read, update and delete books
    * **Search**: case-insensitive search over title and author
    * **Filters**: by genre and by stock availability

    Every response uses the envelope `{success, message, data?, count?, error?}`.
    """,
    version=__version__,
    lifespan=lifespan
)


@app.middleware("http")
async def answer_options(request: Request, call_next):
    """Any OPTIONS request CORS did not answer as a preflight gets an empty 200."""
    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_200_OK)
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    started = time.perf_counter()
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    try:
        try:
            response = await call_next(request)
        except Exception as exc:
            # Rendered here so the 500 still passes back through CORS
            response = await general_exception_handler(request, exc)
        status_code = response.status_code
        return response
    finally:
        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2)
        )


# CORS wraps the request log, so preflight requests are answered before logging
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


def error_response(status_code: int, message: str, error: str = None, headers=None) -> JSONResponse:
    """Build a failure envelope."""
    envelope = APIResponse(success=False, message=message, error=error)
    return JSONResponse(status_code=status_code, content=envelope.render(), headers=headers)


# Health check endpoint
@app.get("/health", response_model=APIResponse, response_model_exclude_none=True, tags=["Health"])
async def health_check(request: Request):
    """Liveness check; always 200, reports whether the store answers."""
    db_manager = getattr(request.app.state, "db_manager", None)
    database_status = "disconnected"
    if db_manager and await db_manager.ping():
        database_status = "connected"

    return APIResponse(
        success=True,
        message="Server is running",
        data={
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "database": database_status
        }
    ).render()


@app.get("/api", response_model=APIResponse, response_model_exclude_none=True, tags=["Health"])
async def api_root():
    """Capability and version descriptor."""
    return APIResponse(
        success=True,
        message="Welcome to the Book Store API",
        data={
            "version": __version__,
            "endpoints": {
                "books": BOOKS_PREFIX,
                "health": "/health"
            }
        }
    ).render()


app.include_router(build_book_router())


# Exception handlers
@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    """Render domain and request errors as envelopes."""
    if exc.status_code >= 500:
        logger.error("Request failed", error=exc.message, path=request.url.path)
    return error_response(exc.status_code, exc.message, exc.error)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Wrong body or parameter shape is a malformed request."""
    detail = "; ".join(format_validation_errors(exc))
    return error_response(MalformedRequestError.status_code, "Malformed request", detail)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Catch-all for unknown routes and unsupported methods."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return error_response(exc.status_code, "Route not found", request.url.path)
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle anything the handlers did not anticipate."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        str(exc) if config.is_development() else "Something went wrong"
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower()
    )
