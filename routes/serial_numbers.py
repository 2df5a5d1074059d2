"""
Serial number API routes.

POST /api/serial-numbers/validate is the validation oracle the serial
workflow calls while the user types.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.serial_validation import SerialValidationRequest, SerialValidationResponse
from services.serial_validation_service import get_serial_validation_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/serial-numbers", tags=["Serial Numbers"])


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "Failed to validate serial numbers"
            }
        }
    )


@router.post("/validate", response_model=SerialValidationResponse)
async def validate_serial_numbers(request: SerialValidationRequest):
    """
    Validate newline-separated serial numbers.

    Reports serials repeated in the input and serials already used by other
    delivery challans of the project (scoped to product_id when given,
    ignoring exclude_dc_id).

    Raises:
        422: project_id missing
        500: Lookup failed
    """
    try:
        service = get_serial_validation_service()
        return service.validate(request)
    except Exception as e:
        return handle_error(e)
