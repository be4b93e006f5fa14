"""
Response models for the relationship network API.

This module contains Pydantic models for standardizing API responses.
All successful responses use AnalysisResponse, while errors use ErrorResponse.
"""

from datetime import datetime
from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field


class AnalysisResponse(BaseModel):
    """Standard response model for successful analysis requests."""

    success: bool = Field(True, description="Indicates successful processing")
    message: str = Field(..., description="Human-readable response message")
    data: Optional[Dict[str, Any]] = Field(None, description="Analysis results data")
    metadata: Optional[Dict[str, Any]] = Field(
        None, description="Request and processing metadata"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow, description="Response timestamp"
    )

    class Config:
        json_encoders = {datetime: lambda v: v.isoformat()}
        json_schema_extra = {
            "example": {
                "success": True,
                "message": "Relationship network analysis completed successfully",
                "data": {
                    "target_user_id": "123456789012345678",
                    "direct_connections": [],
                    "indirect_connections": [],
                    "communities": [],
                    "cycle_patterns": [],
                    "suspicious_clusters": [],
                    "key_nodes": [],
                    "guild_correlations": [],
                    "network_stats": {
                        "total_connections": 0,
                        "total_transactions": 0,
                        "total_amount": 0.0,
                        "avg_relationship_strength": 0.0,
                    },
                },
                "metadata": {"processing_time_ms": 1250, "analysis_type": "relationship_network"},
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }


class ErrorResponse(BaseModel):
    """Standard response model for error conditions."""

    success: bool = Field(False, description="Indicates processing failure")
    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None, description="Additional error details"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow, description="Error timestamp"
    )

    class Config:
        json_encoders = {datetime: lambda v: v.isoformat()}
        json_schema_extra = {
            "example": {
                "success": False,
                "error_code": "SERVICE_UNAVAILABLE",
                "message": "Relationship data unavailable: Database query timed out after 30s",
                "details": {"service_name": "get_direct_relationships"},
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Overall service status")
    version: str = Field(..., description="Service version")
    timestamp: datetime = Field(
        default_factory=datetime.utcnow, description="Health check timestamp"
    )
    services: Dict[str, Dict[str, Any]] = Field(
        ..., description="Individual service statuses"
    )
    system_info: Optional[Dict[str, Any]] = Field(
        None, description="System information"
    )

    class Config:
        json_encoders = {datetime: lambda v: v.isoformat()}
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "timestamp": "2024-01-15T10:30:00Z",
                "services": {
                    "database": {
                        "status": "healthy",
                        "response_time_ms": 45,
                        "last_check": "2024-01-15T10:29:55Z",
                    },
                    "analysis_services": {"status": "healthy", "available_services": 7},
                },
                "system_info": {
                    "python_version": "3.11.0",
                    "memory_usage_mb": 256,
                    "uptime_seconds": 3600,
                },
            }
        }


class RelationshipNetworkData(BaseModel):
    """Specific data structure for relationship network analysis results."""

    target_user_id: str = Field(..., description="Account under analysis")
    direct_connections: List[Dict[str, Any]] = Field(
        ..., description="Scored direct counterparties"
    )
    indirect_connections: List[Dict[str, Any]] = Field(
        ..., description="Second-degree counterparties"
    )
    communities: List[Dict[str, Any]] = Field(..., description="Detected communities")
    cycle_patterns: List[Dict[str, Any]] = Field(
        ..., description="Closed transaction cycles"
    )
    suspicious_clusters: List[Dict[str, Any]] = Field(
        ..., description="Rule-based suspicious clusters"
    )
    key_nodes: List[Dict[str, Any]] = Field(..., description="Top accounts by PageRank")
    guild_correlations: List[Dict[str, Any]] = Field(
        default_factory=list, description="Guild correlation results"
    )
    network_stats: Dict[str, Any] = Field(..., description="Direct connection totals")
    thresholds_version: Optional[str] = Field(
        None, description="Version of the detection thresholds applied"
    )
    analyzed_at: Optional[datetime] = Field(None, description="Analysis reference time")


class GuildCorrelationData(BaseModel):
    """Specific data structure for guild correlation results."""

    user_id: str = Field(..., description="Account whose guilds were analyzed")
    guild_correlations: List[Dict[str, Any]] = Field(
        ..., description="Per-guild correlation results"
    )
    guilds_analyzed: int = Field(..., description="Number of guilds with results")
