"""
Serial validation wire models.

Field names follow the JSON contract of POST /api/serial-numbers/validate.
"""

from typing import List, Optional

from pydantic import Field, field_validator

from models.base import BaseSchema


class SerialValidationRequest(BaseSchema):
    """Body of a validation request."""

    project_id: int = Field(default=0, ge=0, description="Project scope (required)")
    product_id: int = Field(default=0, ge=0, description="Scope check to this product when > 0")
    serial_numbers: str = Field(default="", description="Newline-separated serial numbers")
    exclude_dc_id: Optional[int] = Field(
        None, description="Ignore serials owned by this DC (when editing it)"
    )


class SerialConflict(BaseSchema):
    """Serial already consumed by another delivery challan."""

    serial_number: str
    dc_number: str
    dc_status: str
    product_name: str = ""


class SerialValidationResponse(BaseSchema):
    """Verdict returned by the validation endpoint."""

    valid: bool
    duplicate_in_db: List[SerialConflict] = Field(default_factory=list)
    duplicate_in_input: List[str] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)

    @field_validator("duplicate_in_db", "duplicate_in_input", mode="before")
    @classmethod
    def null_as_empty(cls, v):
        """Empty results may arrive as JSON null."""
        if v is None:
            return []
        return v


class ValidationVerdict(BaseSchema):
    """
    Result of one validation round as seen by the serial workflow.

    duplicates_in_input has set semantics; order is first-seen.
    """

    duplicates_in_input: List[str] = Field(default_factory=list)
    duplicates_in_records: List[SerialConflict] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)

    @property
    def valid(self) -> bool:
        return not self.duplicates_in_input and not self.duplicates_in_records

    @classmethod
    def from_response(cls, response: SerialValidationResponse) -> "ValidationVerdict":
        return cls(
            duplicates_in_input=response.duplicate_in_input,
            duplicates_in_records=response.duplicate_in_db,
            total_count=response.total_count,
        )
