"""
Payload sync service — Projects allocation state into submittable form fields.

Field layout (read back by the submission review):
    serials_<product_id>                   all serials, newline-joined
    assign_<product_id>_<destination_id>   serials for that destination,
                                           only when it has any
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog

from parsers.serial_parser import join_serials
from services.serial_allocation_service import AllocationState

logger = structlog.get_logger(__name__)


def serials_field_name(product_id: int) -> str:
    return f"serials_{product_id}"


def assignment_field_name(product_id: int, destination_id: int) -> str:
    return f"assign_{product_id}_{destination_id}"


@dataclass
class PayloadField:
    """One hidden form input, tagged with the product that wrote it."""
    name: str
    value: str
    owner: int


class FormPayload:
    """Hidden fields of the enclosing form, in write order."""

    def __init__(self):
        self._fields: List[PayloadField] = []

    def add(self, name: str, value: str, owner: int) -> None:
        self._fields.append(PayloadField(name=name, value=value, owner=owner))

    def remove_owned_by(self, owner: int) -> int:
        """Drop every field written for a product; returns how many went."""
        before = len(self._fields)
        self._fields = [f for f in self._fields if f.owner != owner]
        return before - len(self._fields)

    def get(self, name: str) -> Optional[str]:
        for f in self._fields:
            if f.name == name:
                return f.value
        return None

    def fields_for(self, owner: int) -> List[PayloadField]:
        return [f for f in self._fields if f.owner == owner]

    def as_dict(self) -> Dict[str, str]:
        return {f.name: f.value for f in self._fields}

    def __len__(self) -> int:
        return len(self._fields)


class PayloadSynchronizer:
    """Writes a product's allocation into the form payload. Holds no state."""

    def sync(self, state: AllocationState, payload: FormPayload) -> None:
        """
        Replace the product's fields with a projection of its current state.

        Args:
            state: Product allocation state
            payload: Form payload to write into
        """
        product_id = state.product_id
        removed = payload.remove_owned_by(product_id)

        payload.add(serials_field_name(product_id), join_serials(state.tokens), product_id)

        written = 1
        for destination in state.destinations:
            serials = state.assignment.get(destination.id, [])
            if not serials:
                continue
            payload.add(
                assignment_field_name(product_id, destination.id),
                join_serials(serials),
                product_id,
            )
            written += 1

        logger.debug(
            "payload_synced",
            product_id=product_id,
            removed=removed,
            written=written,
        )


# Singleton instance
_payload_synchronizer: Optional[PayloadSynchronizer] = None


def get_payload_synchronizer() -> PayloadSynchronizer:
    """Get or create PayloadSynchronizer instance."""
    global _payload_synchronizer
    if _payload_synchronizer is None:
        _payload_synchronizer = PayloadSynchronizer()
    return _payload_synchronizer
