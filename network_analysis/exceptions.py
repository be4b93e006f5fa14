"""
Exception types raised by the relationship network analysis engine.
"""

from typing import Any, Dict, Optional


class NetworkAnalysisError(Exception):
    """Base exception for all analysis engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class DataProviderError(NetworkAnalysisError):
    """Raised when the data provider cannot deliver a snapshot."""

    def __init__(
        self,
        message: str = "Data provider request failed",
        operation: Optional[str] = None,
    ):
        details = {"operation": operation} if operation else {}
        super().__init__(message, details)
        self.operation = operation


class AnalysisCancelledError(NetworkAnalysisError):
    """Raised when an analysis is cancelled or runs past its deadline."""

    def __init__(
        self,
        message: str = "Analysis cancelled",
        stage: Optional[str] = None,
    ):
        details = {"stage": stage} if stage else {}
        super().__init__(message, details)
        self.stage = stage
