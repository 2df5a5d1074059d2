"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.serial_allocation import (
    QuotaStatus,
    QUOTA_STYLE_CLASSES,
    ProductLine,
    Destination,
    DestinationCount,
    AllocationCounts,
    GateReasonCode,
    GateReason,
    GateStatus,
    ProductAllocationSnapshot,
)
from models.serial_validation import (
    SerialValidationRequest,
    SerialConflict,
    SerialValidationResponse,
    ValidationVerdict,
)
from models.serial_submission import (
    ProductSerialEntry,
    SerialSubmissionRequest,
    ProductSerialData,
    SerialSubmissionReview,
)

__all__ = [
    # Base
    "BaseSchema",

    # Allocation
    "QuotaStatus",
    "QUOTA_STYLE_CLASSES",
    "ProductLine",
    "Destination",
    "DestinationCount",
    "AllocationCounts",
    "GateReasonCode",
    "GateReason",
    "GateStatus",
    "ProductAllocationSnapshot",

    # Validation
    "SerialValidationRequest",
    "SerialConflict",
    "SerialValidationResponse",
    "ValidationVerdict",

    # Submission
    "ProductSerialEntry",
    "SerialSubmissionRequest",
    "ProductSerialData",
    "SerialSubmissionReview",
]
