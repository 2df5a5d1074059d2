"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Serial workflow
    ProductStateNotFoundError,
    SerialValidationClientError,

    # Serial validation endpoint / submission review
    MissingProjectError,
    SerialSubmissionError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Serial workflow
    "ProductStateNotFoundError",
    "SerialValidationClientError",

    # Serial validation endpoint / submission review
    "MissingProjectError",
    "SerialSubmissionError",
]
