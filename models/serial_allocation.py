"""
Serial allocation models.

A product line item requires a fixed number of serials which are spread over
its ship-to destinations, each with its own quota.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from models.base import BaseSchema


class QuotaStatus(str, Enum):
    """Assigned count compared with a destination's quota."""
    BELOW = "BELOW"
    MET = "MET"
    OVER = "OVER"


# Counter style classes keyed by quota status
QUOTA_STYLE_CLASSES = {
    QuotaStatus.MET: "text-green-600",
    QuotaStatus.OVER: "text-red-600",
    QuotaStatus.BELOW: "text-gray-600",
}


class ProductLine(BaseSchema):
    """Product line item that needs serial numbers."""

    product_id: int = Field(..., ge=1, description="Product ID")
    name: str = Field(default="", description="Product display name")
    required: int = Field(..., ge=0, description="Number of serials required")


class Destination(BaseSchema):
    """Ship-to destination of a product with its fixed quantity."""

    id: int = Field(..., ge=1, description="Ship-to address ID")
    name: str = Field(default="", description="Destination display name")
    quota: int = Field(..., ge=0, description="Quantity shipped to this destination")


class DestinationCount(BaseSchema):
    """Assigned count for one destination."""

    destination_id: int
    assigned: int = Field(..., ge=0)
    quota: int = Field(..., ge=0)
    status: QuotaStatus

    @property
    def style_class(self) -> str:
        return QUOTA_STYLE_CLASSES[self.status]

    @property
    def label(self) -> str:
        return f"{self.assigned}/{self.quota}"


class AllocationCounts(BaseSchema):
    """Per-destination counts plus the unassigned remainder."""

    destinations: List[DestinationCount] = Field(default_factory=list)
    unassigned: int = Field(..., ge=0)

    @property
    def total_assigned(self) -> int:
        return sum(d.assigned for d in self.destinations)


class GateReasonCode(str, Enum):
    """Why the submission gate is closed."""
    TOO_MANY_SERIALS = "TOO_MANY_SERIALS"
    DUPLICATE_SERIALS = "DUPLICATE_SERIALS"


class GateReason(BaseSchema):
    """One blocking condition found by the submission gate."""

    product_id: int
    code: GateReasonCode
    message: str
    overflow: Optional[int] = Field(None, ge=1, description="Serials over the required count")
    duplicates: List[str] = Field(default_factory=list)


class GateStatus(BaseSchema):
    """Submission gate verdict across every product in the workflow."""

    blocked: bool = False
    reasons: List[GateReason] = Field(default_factory=list)


class ProductAllocationSnapshot(BaseSchema):
    """Read-only copy of one product's allocation, used for export."""

    product: ProductLine
    destinations: List[Destination] = Field(default_factory=list)
    serials: List[str] = Field(default_factory=list)
    assignments: dict[int, List[str]] = Field(default_factory=dict)
