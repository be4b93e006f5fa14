"""
FastAPI application entry point for the relationship network analysis service.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import uvicorn

from app.core.config import settings
from app.core.database import init_database, close_database
from app.core.exceptions import EXCEPTION_HANDLERS
from app.api.v1.router import api_router, router_info


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info(f"Starting {settings.app_name}...")
    try:
        await init_database()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    try:
        await close_database()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


openapi_tags = [
    {
        "name": "API Info",
        "description": "General API information and navigation endpoints.",
    },
    {
        "name": "Health",
        "description": "Health monitoring for the database, the analysis engine components and the host.",
    },
    {
        "name": "Relationship Network",
        "description": "Transaction graph analysis around one account: relationship strength, PageRank key nodes, communities, cycles, rule-based suspicious clusters and guild correlations.",
    },
]

app = FastAPI(
    title=settings.app_name,
    description="""
# Relationship Network Analysis API

Graph analytics over pairwise transaction aggregates for fraud investigation.

## Overview

For a target account the service fetches its direct and second-degree
counterparties, builds an undirected weighted transaction graph and reports:

- **Relationship strength**: bounded 0-100 score per counterparty
- **Key nodes**: top accounts by PageRank
- **Communities**: single-level greedy local-move communities with suspicion scores
- **Cycle patterns**: closed transaction loops of 3 to `MAX_CYCLE_LENGTH` accounts
- **Suspicious clusters**: rule-based high-frequency, high-amount, new-account and flow flags
- **Guild correlations**: circular and high-frequency trading among active guild members

## Limits

- Each analysis is bounded by `ANALYSIS_TIMEOUT_SECONDS`; overruns return 504
- Data provider failures return 503 and never produce a partial result
    """,
    version=settings.app_version,
    openapi_tags=openapi_tags,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing information."""
    start_time = time.time()

    logger.info(f"Request: {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(f"Response: {response.status_code} - {process_time:.3f}s")

    response.headers["X-Process-Time"] = str(process_time)

    return response


@app.middleware("http")
async def limit_request_size(request: Request, call_next):
    """Limit request body size."""
    content_length = request.headers.get("content-length")

    if content_length and content_length.isdigit():
        if int(content_length) > settings.max_request_size:
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={
                    "success": False,
                    "error_code": "REQUEST_TOO_LARGE",
                    "message": f"Request body too large. Maximum size: {settings.max_request_size} bytes",
                    "timestamp": datetime.utcnow().isoformat()
                }
            )

    return await call_next(request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors."""
    logger.warning(f"Validation error: {exc}")

    field_errors = {}
    for error in exc.errors():
        field_path = " -> ".join(str(loc) for loc in error["loc"])
        field_errors[field_path] = error["msg"]

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error_code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": {
                "field_errors": field_errors,
                "error_count": len(exc.errors())
            },
            "timestamp": datetime.utcnow().isoformat()
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle FastAPI HTTP exceptions."""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error_code": f"HTTP_{exc.status_code}",
            "message": exc.detail,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


for exception_class, handler in EXCEPTION_HANDLERS.items():
    app.exception_handler(exception_class)(handler)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error_code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
            "timestamp": datetime.utcnow().isoformat()
        }
    )


app.include_router(api_router)


@app.get(
    "/",
    summary="API Information",
    description="Get basic information about the API including version, documentation links and available endpoints.",
    tags=["API Info"]
)
async def root():
    """
    Get API information and navigation links.

    Returns:
        dict: API information with navigation links
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Relationship network analysis for transaction fraud detection",
        "documentation": {
            "interactive_docs": "/docs",
            "redoc_docs": "/redoc",
            "openapi_schema": "/openapi.json"
        },
        "endpoints": {
            "health_check": f"{settings.api_v1_prefix}/health",
            "relationship_network": f"{settings.api_v1_prefix}/analyze/relationship-network",
            "guild_correlations": f"{settings.api_v1_prefix}/analyze/guild-correlations",
            "detection_thresholds": f"{settings.api_v1_prefix}/detection-thresholds",
        },
        "features": router_info["features"],
        "limits": {
            "analysis_timeout_seconds": settings.analysis_timeout_seconds,
            "max_cycle_length": settings.max_cycle_length,
            "max_guilds_per_request": settings.max_guilds_per_request,
            "max_request_size_bytes": settings.max_request_size
        }
    }


def main():
    """Run the FastAPI application with uvicorn."""
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
