"""
Serial submission service — Reviews the serial fields a shipment form posted.

The browser-side gate is advisory from the server's point of view, so the
submitted payload is parsed again and every rule is re-checked:
1. Serial count must equal the required quantity (when any were entered)
2. No serial may repeat within a product
3. No destination may receive more than its quota
4. Every assigned serial must be one of the product's entered serials
5. No serial may be assigned to two destinations
"""

from typing import Mapping, Optional

import structlog

from exceptions import SerialSubmissionError
from models.serial_submission import (
    ProductSerialData,
    ProductSerialEntry,
    SerialSubmissionReview,
)
from parsers.serial_parser import find_duplicates, parse_serials
from services.payload_sync_service import assignment_field_name, serials_field_name

logger = structlog.get_logger(__name__)


class SerialSubmissionService:
    """Parses and checks submitted serial payload fields."""

    def parse(
        self,
        fields: Mapping[str, str],
        entry: ProductSerialEntry,
    ) -> ProductSerialData:
        """Read one product's serials and per-destination assignments."""
        product_id = entry.product.product_id
        data = ProductSerialData(
            product_id=product_id,
            all_serials=parse_serials(fields.get(serials_field_name(product_id))),
        )

        for destination in entry.destinations:
            assigned = parse_serials(
                fields.get(assignment_field_name(product_id, destination.id))
            )
            if assigned:
                data.assignments[destination.id] = assigned

        return data

    def review(
        self,
        fields: Mapping[str, str],
        entries: list[ProductSerialEntry],
    ) -> SerialSubmissionReview:
        """
        Parse and check every product's serial fields.

        Args:
            fields: Posted form fields
            entries: Products of the shipment with their destinations

        Returns:
            SerialSubmissionReview with parsed data and errors keyed by field
        """
        review = SerialSubmissionReview()

        for entry in entries:
            data = self.parse(fields, entry)
            review.products.append(data)
            self._check(entry, data, review.errors)

        logger.info(
            "serial_submission_reviewed",
            products=len(entries),
            errors=len(review.errors),
        )

        return review

    def review_or_raise(
        self,
        fields: Mapping[str, str],
        entries: list[ProductSerialEntry],
    ) -> SerialSubmissionReview:
        """
        Same as review(), raising when any rule fails.

        Raises:
            SerialSubmissionError: With the error map in details
        """
        review = self.review(fields, entries)
        if not review.is_valid:
            raise SerialSubmissionError(review.errors)
        return review

    def _check(
        self,
        entry: ProductSerialEntry,
        data: ProductSerialData,
        errors: dict[str, str],
    ) -> None:
        product = entry.product
        serials_field = serials_field_name(product.product_id)

        if data.all_serials and len(data.all_serials) != product.required:
            errors[serials_field] = (
                f"Expected {product.required} serials, got {len(data.all_serials)}"
            )

        scan = find_duplicates(data.all_serials)
        if scan.has_duplicates:
            errors[serials_field] = f"Duplicate serial: {scan.duplicates[0]}"

        entered = set(data.all_serials)
        placed: set[str] = set()
        for destination in entry.destinations:
            assigned = data.assignments.get(destination.id, [])
            field = assignment_field_name(product.product_id, destination.id)
            unknown = [s for s in assigned if s not in entered]
            repeated = [s for s in assigned if s in placed]

            if len(assigned) > destination.quota:
                errors[field] = f"Too many serials assigned (max {destination.quota})"
            elif unknown:
                errors[field] = f"Serial {unknown[0]} is not in the entered list"
            elif repeated:
                errors[field] = f"Serial {repeated[0]} is assigned to more than one destination"

            placed.update(assigned)


# Singleton instance
_serial_submission_service: Optional[SerialSubmissionService] = None


def get_serial_submission_service() -> SerialSubmissionService:
    """Get or create SerialSubmissionService instance."""
    global _serial_submission_service
    if _serial_submission_service is None:
        _serial_submission_service = SerialSubmissionService()
    return _serial_submission_service
