"""
Business logic services.

Each service handles one domain area.
"""

from services.serial_allocation_service import AllocationState, AllocationStateStore
from services.payload_sync_service import (
    FormPayload,
    PayloadSynchronizer,
    get_payload_synchronizer,
)
from services.submission_gate_service import SubmissionGate, get_submission_gate
from services.request_sequencer import RequestSequencer
from services.serial_workflow_service import SerialWorkflow
from services.serial_validation_service import (
    SerialValidationService,
    get_serial_validation_service,
)
from services.serial_submission_service import (
    SerialSubmissionService,
    get_serial_submission_service,
)
from services.export_service import ExportService, get_export_service

__all__ = [
    "AllocationState",
    "AllocationStateStore",
    "FormPayload",
    "PayloadSynchronizer",
    "get_payload_synchronizer",
    "SubmissionGate",
    "get_submission_gate",
    "RequestSequencer",
    "SerialWorkflow",
    "SerialValidationService",
    "get_serial_validation_service",
    "SerialSubmissionService",
    "get_serial_submission_service",
    "ExportService",
    "get_export_service",
]
