"""
Relationship network analysis engine.
Graph algorithms and fraud heuristics over transaction aggregates.
"""

from .cancellation import AnalysisDeadline
from .exceptions import AnalysisCancelledError, DataProviderError, NetworkAnalysisError
from .orchestrator import NetworkAnalysisOrchestrator
from .provider import RelationshipDataProvider
from .thresholds import DEFAULT_THRESHOLDS, DetectionThresholds

__all__ = [
    "AnalysisDeadline",
    "AnalysisCancelledError",
    "DataProviderError",
    "NetworkAnalysisError",
    "NetworkAnalysisOrchestrator",
    "RelationshipDataProvider",
    "DEFAULT_THRESHOLDS",
    "DetectionThresholds",
]
