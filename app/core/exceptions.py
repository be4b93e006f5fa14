"""
Custom exception hierarchy for API error handling.
Provides structured error handling with proper HTTP status codes.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from fastapi import status
from fastapi.responses import JSONResponse

from network_analysis.exceptions import AnalysisCancelledError, DataProviderError


class APIException(Exception):
    """Base exception class for all API-related errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(APIException):
    """Raised when request validation fails."""

    def __init__(
        self,
        message: str = "Request validation failed",
        field_errors: Optional[Dict[str, str]] = None,
        **kwargs
    ):
        details = {"field_errors": field_errors or {}}
        super().__init__(message, "VALIDATION_ERROR", details, **kwargs)


class DatabaseError(APIException):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str = "Database operation failed",
        operation: Optional[str] = None,
        **kwargs
    ):
        details = {"operation": operation} if operation else {}
        super().__init__(message, "DATABASE_ERROR", details, **kwargs)


class AnalysisError(APIException):
    """Raised when analysis processing fails."""

    def __init__(
        self,
        message: str = "Analysis processing failed",
        analysis_type: Optional[str] = None,
        **kwargs
    ):
        details = {"analysis_type": analysis_type} if analysis_type else {}
        super().__init__(message, "ANALYSIS_ERROR", details, **kwargs)


class AnalysisTimeoutError(APIException):
    """Raised when an analysis is cancelled or exceeds its deadline."""

    def __init__(
        self,
        message: str = "Analysis exceeded its deadline",
        stage: Optional[str] = None,
        **kwargs
    ):
        details = {"stage": stage} if stage else {}
        super().__init__(message, "ANALYSIS_TIMEOUT", details, **kwargs)


class ServiceUnavailableError(APIException):
    """Raised when service is temporarily unavailable."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        service_name: Optional[str] = None,
        **kwargs
    ):
        details = {"service_name": service_name} if service_name else {}
        super().__init__(message, "SERVICE_UNAVAILABLE", details, **kwargs)


def from_analysis_exception(exc: Exception) -> APIException:
    """Translate an analysis engine error into its API counterpart."""
    if isinstance(exc, APIException):
        return exc
    if isinstance(exc, DataProviderError):
        return ServiceUnavailableError(
            f"Relationship data unavailable: {exc.message}",
            service_name=exc.operation or "data_provider",
        )
    if isinstance(exc, AnalysisCancelledError):
        return AnalysisTimeoutError(exc.message, stage=exc.stage)
    return AnalysisError(f"Analysis failed: {str(exc)}")


STATUS_CODE_MAPPING = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    DatabaseError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AnalysisError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AnalysisTimeoutError: status.HTTP_504_GATEWAY_TIMEOUT,
    ServiceUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def create_error_response(exc: APIException) -> JSONResponse:
    """Convert APIException to a JSON error response with appropriate status code."""

    status_code = STATUS_CODE_MAPPING.get(
        type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR
    )

    if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        content = {
            "success": False,
            "error_code": exc.error_code,
            "message": "Internal server error",
            "timestamp": datetime.utcnow().isoformat(),
        }
    else:
        content = {
            "success": False,
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
            "timestamp": datetime.utcnow().isoformat(),
        }

    return JSONResponse(status_code=status_code, content=content)


async def api_exception_handler(request, exc: APIException):
    """Handle API exceptions."""
    return create_error_response(exc)


async def analysis_engine_exception_handler(request, exc: Exception):
    """Handle errors raised by the analysis engine outside an endpoint's own handling."""
    return create_error_response(from_analysis_exception(exc))


EXCEPTION_HANDLERS = {
    APIException: api_exception_handler,
    DataProviderError: analysis_engine_exception_handler,
    AnalysisCancelledError: analysis_engine_exception_handler,
}
