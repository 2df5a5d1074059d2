"""
Custom exception classes for the application.

Every error carries a machine-readable code, a message, an HTTP status and
optional details so routes can return a uniform error body.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PRODUCT_STATE_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# SERIAL WORKFLOW ERRORS
# ===================

class ProductStateNotFoundError(NotFoundError):
    """No allocation state registered for this product in the workflow."""

    def __init__(self, product_id: int):
        super().__init__(
            resource="Product allocation state",
            identifier=str(product_id),
            code="PRODUCT_STATE_NOT_FOUND"
        )


class SerialValidationClientError(ExternalServiceError):
    """Validation oracle unreachable or returned an unusable response."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="serial_validation",
            message=message,
            details=details
        )


# ===================
# SERIAL VALIDATION ENDPOINT ERRORS
# ===================

class MissingProjectError(ValidationError):
    """Validation request without a project scope."""

    def __init__(self):
        super().__init__(
            code="PROJECT_ID_REQUIRED",
            message="project_id is required"
        )


class SerialSubmissionError(ValidationError):
    """Submitted serial payload failed review."""

    def __init__(self, errors: dict[str, str]):
        super().__init__(
            code="SERIAL_SUBMISSION_INVALID",
            message=f"Serial number validation failed with {len(errors)} errors",
            details={"errors": errors}
        )
