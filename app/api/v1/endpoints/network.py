"""
Relationship network endpoints.

This module provides REST API endpoints for:
- Relationship network analysis around one account
- Guild correlation analysis
- Detection threshold inspection
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.exceptions import APIException, create_error_response
from app.models.requests import GuildCorrelationRequest, RelationshipNetworkRequest
from app.models.responses import AnalysisResponse, ErrorResponse
from app.services.analysis_service import AnalysisService, get_analysis_service

logger = logging.getLogger(__name__)
router = APIRouter()

ERROR_RESPONSES = {
    422: {"description": "Request validation failed", "model": ErrorResponse},
    500: {"description": "Analysis processing failed", "model": ErrorResponse},
    503: {"description": "Relationship data unavailable", "model": ErrorResponse},
    504: {"description": "Analysis exceeded its deadline", "model": ErrorResponse},
}


@router.post(
    "/analyze/relationship-network",
    response_model=AnalysisResponse,
    summary="Relationship Network Analysis",
    description="Build the transaction network around an account and flag communities, cycles, clusters and key nodes",
    responses={
        200: {
            "description": "Relationship network analysis completed successfully",
            "model": AnalysisResponse,
        },
        **ERROR_RESPONSES,
    },
)
async def analyze_relationship_network(
    request: RelationshipNetworkRequest,
    analysis_service: AnalysisService = Depends(get_analysis_service),
) -> JSONResponse:
    """
    Analyze the relationship network of one account.

    Args:
        request: Account ID and optional guild usage
        analysis_service: Analysis service dependency

    Returns:
        JSONResponse: Serialized relationship network in the standard envelope
    """
    start_time = datetime.utcnow()

    try:
        logger.info(f"Starting relationship network analysis for {request.user_id}")

        top_guilds = (
            [guild.model_dump() for guild in request.top_guilds]
            if request.top_guilds
            else None
        )
        results = await analysis_service.analyze_relationship_network(
            request.user_id, top_guilds=top_guilds
        )

        end_time = datetime.utcnow()
        processing_time_ms = int((end_time - start_time).total_seconds() * 1000)

        metadata = {
            "analysis_type": "relationship_network",
            "user_id": request.user_id,
            "direct_connection_count": len(results["direct_connections"]),
            "indirect_connection_count": len(results["indirect_connections"]),
            "guilds_requested": len(request.top_guilds or []),
            "thresholds_version": results.get("thresholds_version"),
            "processing_time_ms": processing_time_ms,
        }

        flagged = len(results["suspicious_clusters"]) + len(results["cycle_patterns"])
        if flagged:
            message = (
                f"Relationship network analysis completed successfully. "
                f"Found {len(results['suspicious_clusters'])} suspicious clusters "
                f"and {len(results['cycle_patterns'])} cycle patterns."
            )
        else:
            message = "Relationship network analysis completed. No suspicious patterns found."

        response = AnalysisResponse(
            success=True,
            message=message,
            data=results,
            metadata=metadata,
            timestamp=end_time,
        )

        logger.info(
            f"Relationship network analysis completed successfully in {processing_time_ms}ms"
        )

        return JSONResponse(
            status_code=status.HTTP_200_OK, content=response.model_dump(mode="json")
        )

    except APIException as e:
        logger.warning(f"Relationship network analysis failed for {request.user_id}: {e.message}")
        return create_error_response(e)


@router.post(
    "/analyze/guild-correlations",
    response_model=AnalysisResponse,
    summary="Guild Correlation Analysis",
    description="Score circular and high-frequency trading among active members of the account's most used guilds",
    responses={
        200: {
            "description": "Guild correlation analysis completed successfully",
            "model": AnalysisResponse,
        },
        **ERROR_RESPONSES,
    },
)
async def analyze_guild_correlations(
    request: GuildCorrelationRequest,
    analysis_service: AnalysisService = Depends(get_analysis_service),
) -> JSONResponse:
    start_time = datetime.utcnow()

    try:
        logger.info(
            f"Starting guild correlation analysis for {request.user_id} "
            f"across {len(request.guilds)} guilds"
        )

        results = await analysis_service.analyze_guild_correlations(
            request.user_id, [guild.model_dump() for guild in request.guilds]
        )

        end_time = datetime.utcnow()
        processing_time_ms = int((end_time - start_time).total_seconds() * 1000)

        response = AnalysisResponse(
            success=True,
            message=(
                f"Guild correlation analysis completed. "
                f"{results['guilds_analyzed']} guilds analyzed."
            ),
            data=results,
            metadata={
                "analysis_type": "guild_correlation",
                "guilds_requested": len(request.guilds),
                "processing_time_ms": processing_time_ms,
            },
            timestamp=end_time,
        )

        return JSONResponse(
            status_code=status.HTTP_200_OK, content=response.model_dump(mode="json")
        )

    except APIException as e:
        logger.warning(f"Guild correlation analysis failed for {request.user_id}: {e.message}")
        return create_error_response(e)


@router.get(
    "/detection-thresholds",
    response_model=AnalysisResponse,
    summary="Detection Thresholds",
    description="Return the versioned detection thresholds used by every analysis",
)
async def get_detection_thresholds(
    analysis_service: AnalysisService = Depends(get_analysis_service),
) -> JSONResponse:
    thresholds = analysis_service.get_detection_thresholds()
    response = AnalysisResponse(
        success=True,
        message=f"Detection thresholds version {thresholds['version']}",
        data=thresholds,
        metadata={"analysis_type": "detection_thresholds"},
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK, content=response.model_dump(mode="json")
    )
