import asyncio
import importlib
import logging
import psutil
import sys
from datetime import datetime
from typing import Dict, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.database import get_database, DatabaseManager
from app.models.responses import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter()

ANALYSIS_COMPONENTS = [
    ("network_analysis.graph_builder", "build_graph", "graph_builder"),
    (
        "network_analysis.relationship_strength",
        "calculate_relationship_strength",
        "relationship_strength",
    ),
    ("network_analysis.pagerank", "PageRankEngine", "pagerank"),
    ("network_analysis.community_detector", "CommunityDetector", "community_detector"),
    ("network_analysis.cycle_detector", "CycleDetector", "cycle_detector"),
    (
        "network_analysis.suspicious_cluster_detector",
        "SuspiciousClusterDetector",
        "suspicious_cluster_detector",
    ),
    (
        "network_analysis.guild_correlation_analyzer",
        "GuildCorrelationAnalyzer",
        "guild_correlation_analyzer",
    ),
]


async def check_database_health(db_manager: DatabaseManager) -> Dict[str, Any]:
    try:
        start_time = datetime.utcnow()
        health_info = await db_manager.health_check()
        end_time = datetime.utcnow()

        response_time_ms = int((end_time - start_time).total_seconds() * 1000)

        return {
            "status": health_info.get("status", "unknown"),
            "response_time_ms": response_time_ms,
            "connection_pool_size": health_info.get("connection_pool_size", 0),
            "active_connections": health_info.get("active_connections", 0),
            "last_check": health_info.get("timestamp"),
            "error": health_info.get("error"),
        }
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return {
            "status": "unhealthy",
            "error": str(e),
            "response_time_ms": None,
            "last_check": datetime.utcnow().isoformat(),
        }


async def check_analysis_services_health() -> Dict[str, Any]:
    """Verify every analysis engine component can be imported."""
    available = []
    for module_name, attr_name, component_name in ANALYSIS_COMPONENTS:
        try:
            module = importlib.import_module(module_name)
            getattr(module, attr_name)
            available.append(component_name)
        except (ImportError, AttributeError):
            logger.warning(f"{component_name} component unavailable")

    total = len(ANALYSIS_COMPONENTS)
    if len(available) == total:
        status = "healthy"
    elif available:
        status = "degraded"
    else:
        status = "unhealthy"

    return {
        "status": status,
        "available_services": len(available),
        "total_services": total,
        "service_list": available,
        "max_cycle_length": settings.max_cycle_length,
        "analysis_timeout_seconds": settings.analysis_timeout_seconds,
        "last_check": datetime.utcnow().isoformat(),
    }


def get_system_info() -> Dict[str, Any]:
    python_version = (
        f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    )
    try:
        memory = psutil.virtual_memory()
        process = psutil.Process()

        return {
            "python_version": python_version,
            "memory_usage_mb": round(memory.used / 1024 / 1024, 2),
            "memory_total_mb": round(memory.total / 1024 / 1024, 2),
            "memory_percent": memory.percent,
            "cpu_percent": psutil.cpu_percent(interval=None),
            "process_id": process.pid,
            "process_memory_mb": round(process.memory_info().rss / 1024 / 1024, 2),
            "uptime_seconds": int(
                (
                    datetime.utcnow()
                    - datetime.utcfromtimestamp(process.create_time())
                ).total_seconds()
            ),
        }
    except Exception as e:
        logger.warning(f"Failed to collect system info: {str(e)}")
        return {"python_version": python_version, "error": str(e)}


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db_manager: DatabaseManager = Depends(get_database),
) -> JSONResponse:
    database_health, analysis_services_health = await asyncio.gather(
        check_database_health(db_manager), check_analysis_services_health()
    )

    service_statuses = [
        database_health.get("status", "unknown"),
        analysis_services_health.get("status", "unknown"),
    ]

    if "unhealthy" in service_statuses:
        overall_status = "unhealthy"
        status_code = 503
    elif "degraded" in service_statuses:
        overall_status = "degraded"
        status_code = 200
    elif all(status == "healthy" for status in service_statuses):
        overall_status = "healthy"
        status_code = 200
    else:
        overall_status = "unknown"
        status_code = 503

    health_response = HealthResponse(
        status=overall_status,
        version=settings.app_version,
        timestamp=datetime.utcnow(),
        services={
            "database": database_health,
            "analysis_services": analysis_services_health,
        },
        system_info=get_system_info(),
    )

    logger.info(f"Health check completed: {overall_status}")

    return JSONResponse(
        status_code=status_code, content=health_response.model_dump(mode="json")
    )


@router.get("/health/database")
async def database_health_check(
    db_manager: DatabaseManager = Depends(get_database),
) -> JSONResponse:
    health_info = await check_database_health(db_manager)
    status_code = 200 if health_info.get("status") == "healthy" else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "service": "database",
            "timestamp": datetime.utcnow().isoformat(),
            **health_info,
        },
    )


@router.get("/health/services")
async def services_health_check() -> JSONResponse:
    health_info = await check_analysis_services_health()
    status_code = 200 if health_info.get("status") in ["healthy", "degraded"] else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "service": "analysis_services",
            "timestamp": datetime.utcnow().isoformat(),
            **health_info,
        },
    )
