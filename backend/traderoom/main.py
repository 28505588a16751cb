"""
Main FastAPI application entry point.
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from traderoom.api import api_router
from traderoom.core.config import settings
from traderoom.core.logging import bind_request_context, setup_logging
from traderoom.db.session import engine

# Setup logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup and shutdown events.
    """
    logger.info(
        "trade_room_starting",
        version="1.0.0",
        debug=settings.api_debug,
    )

    yield

    logger.info("trade_room_stopping")
    await engine.dispose()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Trade rooms - two-party card trade negotiation",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query parameters are client errors (400)."""
    logger.info(
        "request_validation_failed",
        path=request.url.path,
        method=request.method,
        errors=len(exc.errors()),
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# Include API routes with /api prefix
app.include_router(api_router, prefix="/api")


# Middleware for request logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    bind_request_context(request.method, request.url.path)
    logger.debug("request_started")
    response = await call_next(request)
    logger.debug("request_finished", status=response.status_code)
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "traderoom.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
