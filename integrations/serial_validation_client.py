"""
Serial validation oracle client.

Posts a product's serials to the validation endpoint and returns the verdict.
The HTTP call is blocking (requests) and runs in a worker thread so the
event loop only suspends while the round-trip is in flight.
"""

import asyncio
from typing import Optional, Sequence

import requests
import structlog
from pydantic import ValidationError as PydanticValidationError

from config import settings
from exceptions import SerialValidationClientError
from models.serial_validation import (
    SerialValidationRequest,
    SerialValidationResponse,
    ValidationVerdict,
)
from parsers.serial_parser import join_serials

logger = structlog.get_logger(__name__)


class SerialValidationClient:
    """Client for POST /api/serial-numbers/validate."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = url or settings.serial_validation_url
        self.timeout = timeout or settings.serial_validation_timeout_seconds
        self.session = session or requests.Session()

    def build_request(
        self,
        product_id: int,
        serials: Sequence[str],
        project_id: int,
        exclude_dc_id: Optional[int] = None,
    ) -> SerialValidationRequest:
        return SerialValidationRequest(
            project_id=project_id,
            product_id=product_id,
            serial_numbers=join_serials(serials),
            exclude_dc_id=exclude_dc_id,
        )

    def validate_sync(self, request: SerialValidationRequest) -> ValidationVerdict:
        """
        Send one validation request.

        Args:
            request: Validation request body

        Returns:
            ValidationVerdict from the oracle

        Raises:
            SerialValidationClientError: On transport failure, non-2xx status
                or a body that does not match the response contract
        """
        try:
            logger.debug(
                "sending_serial_validation",
                product_id=request.product_id,
                project_id=request.project_id,
            )

            response = self.session.post(
                self.url,
                json=request.model_dump(),
                timeout=self.timeout,
            )
            response.raise_for_status()

            body = SerialValidationResponse.model_validate(response.json())

        except requests.exceptions.RequestException as e:
            logger.warning("serial_validation_request_failed", error=str(e))
            raise SerialValidationClientError(
                f"Serial validation request failed: {str(e)}",
                details={"product_id": request.product_id},
            ) from e
        except (ValueError, PydanticValidationError) as e:
            logger.warning("serial_validation_bad_response", error=str(e))
            raise SerialValidationClientError(
                "Serial validation returned an unreadable response",
                details={"product_id": request.product_id},
            ) from e

        return ValidationVerdict.from_response(body)

    async def validate(
        self,
        product_id: int,
        serials: Sequence[str],
        project_id: int,
        exclude_dc_id: Optional[int] = None,
    ) -> ValidationVerdict:
        """Async wrapper: runs validate_sync() in a worker thread."""
        request = self.build_request(product_id, serials, project_id, exclude_dc_id)
        return await asyncio.to_thread(self.validate_sync, request)


# Singleton instance
_serial_validation_client: Optional[SerialValidationClient] = None


def get_serial_validation_client() -> SerialValidationClient:
    """Get or create SerialValidationClient instance."""
    global _serial_validation_client
    if _serial_validation_client is None:
        _serial_validation_client = SerialValidationClient()
    return _serial_validation_client
