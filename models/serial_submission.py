"""
Submitted serial payload models.

Mirrors the hidden form fields written by the payload synchronizer:
serials_<product_id> and assign_<product_id>_<destination_id>.
"""

from typing import Dict, List

from pydantic import Field

from models.base import BaseSchema
from models.serial_allocation import Destination, ProductLine


class ProductSerialEntry(BaseSchema):
    """A product together with its destinations, as configured for the shipment."""

    product: ProductLine
    destinations: List[Destination] = Field(default_factory=list)


class SerialSubmissionRequest(BaseSchema):
    """Submitted form fields plus the products they belong to."""

    products: List[ProductSerialEntry] = Field(..., min_length=1)
    fields: Dict[str, str] = Field(default_factory=dict)


class ProductSerialData(BaseSchema):
    """Parsed serials for one product."""

    product_id: int
    all_serials: List[str] = Field(default_factory=list)
    assignments: Dict[int, List[str]] = Field(default_factory=dict)

    @property
    def unassigned(self) -> List[str]:
        assigned = {s for serials in self.assignments.values() for s in serials}
        return [s for s in self.all_serials if s not in assigned]


class SerialSubmissionReview(BaseSchema):
    """Outcome of reviewing a submitted payload."""

    products: List[ProductSerialData] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors
