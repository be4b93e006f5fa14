"""
API v1 router for organizing the relationship network endpoints.

This module provides a centralized router that organizes all endpoints
and provides proper API versioning.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    health,
    network,
)

api_router = APIRouter(
    prefix="/api/v1",
    responses={
        404: {"description": "Not found"},
        422: {"description": "Validation Error"},
        500: {"description": "Internal Server Error"},
        503: {"description": "Service Unavailable"},
    },
)

api_router.include_router(
    health.router,
    tags=["Health"],
    responses={
        200: {"description": "Service is healthy"},
        503: {"description": "Service is unhealthy"},
    },
)

api_router.include_router(
    network.router,
    tags=["Relationship Network"],
    responses={
        200: {"description": "Analysis completed successfully"},
        422: {"description": "Request validation failed"},
        500: {"description": "Analysis processing failed"},
        503: {"description": "Relationship data unavailable"},
        504: {"description": "Analysis exceeded its deadline"},
    },
)

router_info = {
    "version": "1.0",
    "description": "Relationship Network Analysis API v1 - transaction graph fraud detection",
    "endpoints": {
        "health": {"description": "Health monitoring endpoints", "count": 3},
        "network": {"description": "Relationship network endpoints", "count": 3},
    },
    "features": [
        "PageRank key account ranking",
        "Community and cycle detection",
        "Rule-based suspicious cluster flags",
        "Guild member correlation",
        "Versioned detection thresholds",
    ],
}
