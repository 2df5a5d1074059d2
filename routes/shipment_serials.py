"""
Shipment serial API routes.

Server-side review of the serial payload posted by the shipment form, and an
Excel export of the resulting assignment.
"""

from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response
import structlog

from models.serial_submission import SerialSubmissionRequest, SerialSubmissionReview
from services.serial_submission_service import get_serial_submission_service
from services.export_service import get_export_service, snapshots_from_review
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/shipment-serials", tags=["Shipment Serials"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


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
                "message": "An unexpected error occurred"
            }
        }
    )


@router.post("/review", response_model=SerialSubmissionReview)
async def review_serials(request: SerialSubmissionRequest):
    """
    Re-check a submitted serial payload.

    Returns the parsed serials and assignments per product.

    Raises:
        422: Count mismatch, duplicate serial, over-quota or unknown assignment
    """
    try:
        service = get_serial_submission_service()
        return service.review_or_raise(request.fields, request.products)
    except Exception as e:
        return handle_error(e)


@router.post("/export")
async def export_serials(request: SerialSubmissionRequest):
    """
    Download the serial assignment as an Excel file.

    The payload is exported as submitted, even when review finds errors;
    the summary sheet marks incomplete products.
    """
    try:
        review = get_serial_submission_service().review(request.fields, request.products)
        snapshots = snapshots_from_review(request.products, review)
        output = get_export_service().generate_serial_assignment_excel(snapshots)

        filename = f"serial_assignment_{datetime.now().strftime('%Y%m%d_%H%M')}.xlsx"
        return Response(
            content=output.getvalue(),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except Exception as e:
        return handle_error(e)
