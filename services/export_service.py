"""
Export service — Generate serial assignment Excel files.

One summary sheet (per-product counts) and one detail sheet listing every
serial with the destination it ships to.
"""

from io import BytesIO
from typing import List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Border, Side, PatternFill
import structlog

from models.serial_allocation import ProductAllocationSnapshot
from models.serial_submission import ProductSerialEntry, SerialSubmissionReview

logger = structlog.get_logger(__name__)

UNASSIGNED_LABEL = "Unassigned"


def snapshots_from_review(
    entries: List[ProductSerialEntry],
    review: SerialSubmissionReview,
) -> List[ProductAllocationSnapshot]:
    """Pair reviewed serial data with its product configuration."""
    parsed = {p.product_id: p for p in review.products}
    snapshots = []
    for entry in entries:
        data = parsed.get(entry.product.product_id)
        snapshots.append(ProductAllocationSnapshot(
            product=entry.product,
            destinations=entry.destinations,
            serials=data.all_serials if data else [],
            assignments=data.assignments if data else {},
        ))
    return snapshots


class ExportService:
    """Service for generating serial assignment files."""

    def generate_serial_assignment_excel(
        self,
        snapshots: List[ProductAllocationSnapshot],
        title: str = "SERIAL ASSIGNMENT",
    ) -> BytesIO:
        """
        Generate Excel file for a shipment's serial assignment.

        Args:
            snapshots: One allocation snapshot per product
            title: Heading written on the summary sheet

        Returns:
            BytesIO containing the Excel file
        """
        logger.info(
            "generating_serial_assignment_excel",
            products=len(snapshots),
            serials=sum(len(s.serials) for s in snapshots),
        )

        wb = Workbook()

        # Styles
        title_font = Font(bold=True, size=14)
        header_font = Font(bold=True, size=11)
        thin_border = Border(
            bottom=Side(style="thin", color="000000")
        )
        header_fill = PatternFill(start_color="E0E8FF", end_color="E0E8FF", fill_type="solid")
        success_fill = PatternFill(start_color="E0FFE0", end_color="E0FFE0", fill_type="solid")
        warning_fill = PatternFill(start_color="FFF0E0", end_color="FFF0E0", fill_type="solid")

        # ===== SUMMARY SHEET =====
        ws_summary = wb.active
        ws_summary.title = "Summary"

        for col, width in zip("ABCDEF", (35, 12, 12, 12, 12, 15)):
            ws_summary.column_dimensions[col].width = width

        ws_summary["A1"] = title
        ws_summary["A1"].font = title_font

        headers = ["Product", "Required", "Entered", "Assigned", "Unassigned", "Status"]
        row = 3
        for col, header in enumerate(headers, start=1):
            cell = ws_summary.cell(row=row, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.border = thin_border
        row += 1

        for snapshot in snapshots:
            assigned = sum(len(v) for v in snapshot.assignments.values())
            entered = len(snapshot.serials)
            complete = entered == snapshot.product.required and assigned == entered

            ws_summary.cell(row=row, column=1, value=snapshot.product.name or str(snapshot.product.product_id))
            ws_summary.cell(row=row, column=2, value=snapshot.product.required)
            ws_summary.cell(row=row, column=3, value=entered)
            ws_summary.cell(row=row, column=4, value=assigned)
            ws_summary.cell(row=row, column=5, value=entered - assigned)
            status_cell = ws_summary.cell(row=row, column=6, value="COMPLETE" if complete else "INCOMPLETE")
            status_cell.fill = success_fill if complete else warning_fill
            row += 1

        # ===== DETAIL SHEET =====
        ws_detail = wb.create_sheet("Serials")
        for col, width in zip("ABCD", (35, 30, 35, 12)):
            ws_detail.column_dimensions[col].width = width

        detail_headers = ["Product", "Serial Number", "Destination", "Destination ID"]
        for col, header in enumerate(detail_headers, start=1):
            cell = ws_detail.cell(row=1, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.border = thin_border

        row = 2
        for snapshot in snapshots:
            names = {d.id: d.name or str(d.id) for d in snapshot.destinations}
            owner = {
                serial: destination_id
                for destination_id, serials in snapshot.assignments.items()
                for serial in serials
            }
            product_label = snapshot.product.name or str(snapshot.product.product_id)

            for serial in snapshot.serials:
                destination_id = owner.get(serial)
                ws_detail.cell(row=row, column=1, value=product_label)
                ws_detail.cell(row=row, column=2, value=serial)
                ws_detail.cell(row=row, column=3, value=names.get(destination_id, UNASSIGNED_LABEL))
                ws_detail.cell(row=row, column=4, value=destination_id)
                if destination_id is None:
                    for col in range(1, 5):
                        ws_detail.cell(row=row, column=col).fill = warning_fill
                row += 1

        output = BytesIO()
        wb.save(output)
        output.seek(0)

        logger.info("serial_assignment_excel_generated", rows=row - 2)

        return output


# Singleton instance
_export_service: Optional[ExportService] = None


def get_export_service() -> ExportService:
    """Get or create ExportService instance."""
    global _export_service
    if _export_service is None:
        _export_service = ExportService()
    return _export_service
