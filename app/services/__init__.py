"""
Services package for the relationship network API.
Contains high-level service layers for business logic.
"""

from .analysis_service import AnalysisService, analysis_service, get_analysis_service
from .relationship_data_service import (
    SupabaseRelationshipProvider,
    get_relationship_provider,
    relationship_provider,
)

__all__ = [
    "AnalysisService",
    "analysis_service",
    "get_analysis_service",
    "SupabaseRelationshipProvider",
    "get_relationship_provider",
    "relationship_provider",
]
