"""
Serial validation service — The oracle behind POST /api/serial-numbers/validate.

Checks a pasted serial list for:
1. Serials repeated inside the list itself
2. Serials already consumed by other delivery challans of the project
   (optionally scoped to one product, optionally ignoring the DC being edited)
"""

from typing import Optional

import structlog

from config import get_supabase_client, settings
from exceptions import DatabaseError, MissingProjectError
from models.serial_validation import (
    SerialConflict,
    SerialValidationRequest,
    SerialValidationResponse,
)
from parsers.serial_parser import find_duplicates, parse_serials

logger = structlog.get_logger(__name__)

# Serials per IN (...) filter; keeps the PostgREST URL short
LOOKUP_BATCH_SIZE = 200


class SerialValidationService:
    """Serial uniqueness checks against the serial usage table."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = settings.serial_usage_table

    def validate(self, request: SerialValidationRequest) -> SerialValidationResponse:
        """
        Validate a serial list.

        Args:
            request: Project/product scope and newline-separated serials

        Returns:
            SerialValidationResponse; valid only when nothing collides

        Raises:
            MissingProjectError: If project_id is missing
            DatabaseError: If the lookup fails
        """
        if not request.project_id:
            raise MissingProjectError()

        serials = parse_serials(request.serial_numbers)
        scan = find_duplicates(serials)

        conflicts = self.find_conflicts(
            project_id=request.project_id,
            serials=scan.unique,
            product_id=request.product_id or None,
            exclude_dc_id=request.exclude_dc_id,
        )

        response = SerialValidationResponse(
            valid=not conflicts and not scan.duplicates,
            duplicate_in_db=conflicts,
            duplicate_in_input=scan.duplicates,
            total_count=len(serials),
        )

        logger.info(
            "serials_validated",
            project_id=request.project_id,
            product_id=request.product_id,
            total=len(serials),
            duplicates_in_input=len(scan.duplicates),
            conflicts=len(conflicts),
        )

        return response

    def find_conflicts(
        self,
        project_id: int,
        serials: list[str],
        product_id: Optional[int] = None,
        exclude_dc_id: Optional[int] = None,
    ) -> list[SerialConflict]:
        """
        Find serials already used by delivery challans of the project.

        Args:
            project_id: Project scope
            serials: De-duplicated serials to look up
            product_id: Restrict to this product when given
            exclude_dc_id: Ignore serials owned by this DC

        Returns:
            Conflicts in lookup order

        Raises:
            DatabaseError: If the query fails
        """
        if not serials:
            return []

        conflicts = []
        try:
            for start in range(0, len(serials), LOOKUP_BATCH_SIZE):
                batch = serials[start:start + LOOKUP_BATCH_SIZE]
                query = (
                    self.db.table(self.table)
                    .select("serial_number, dc_id, dc_number, dc_status, product_name")
                    .eq("project_id", project_id)
                    .in_("serial_number", batch)
                )
                if product_id:
                    query = query.eq("product_id", product_id)
                if exclude_dc_id is not None:
                    query = query.neq("dc_id", exclude_dc_id)

                result = query.execute()
                conflicts.extend(self._row_to_conflict(row) for row in result.data)

        except Exception as e:
            logger.error(
                "serial_conflict_lookup_failed",
                project_id=project_id,
                product_id=product_id,
                error=str(e),
            )
            raise DatabaseError("select", str(e))

        return conflicts

    def _row_to_conflict(self, row: dict) -> SerialConflict:
        """Convert database row to SerialConflict."""
        return SerialConflict(
            serial_number=row["serial_number"],
            dc_number=row.get("dc_number") or "",
            dc_status=row.get("dc_status") or "",
            product_name=row.get("product_name") or "",
        )


# Singleton instance
_serial_validation_service: Optional[SerialValidationService] = None


def get_serial_validation_service() -> SerialValidationService:
    """Get or create SerialValidationService instance."""
    global _serial_validation_service
    if _serial_validation_service is None:
        _serial_validation_service = SerialValidationService()
    return _serial_validation_service
