"""
Submission gate — Decides whether the serial form may be submitted.

Blocks when any product has more serials than it requires, or still shows
serials repeated in its own input. Conflicts with other delivery challans are
advisory and never block here.
"""

from typing import Iterable, Mapping, Optional, Sequence

import structlog

from models.serial_allocation import GateReason, GateReasonCode, GateStatus
from services.serial_allocation_service import AllocationState

logger = structlog.get_logger(__name__)


def too_many_message(overflow: int) -> str:
    return f"Too many serials entered. Remove {overflow} to proceed."


def duplicates_message(duplicates: Sequence[str]) -> str:
    return "Duplicate serials: " + ", ".join(duplicates)


class SubmissionGate:
    """Read-only scan over every product of a workflow."""

    def evaluate(
        self,
        states: Iterable[AllocationState],
        local_duplicates: Optional[Mapping[int, Sequence[str]]] = None,
        entered_counts: Optional[Mapping[int, int]] = None,
    ) -> GateStatus:
        """
        Evaluate the gate.

        Args:
            states: Allocation state of every product in the workflow
            local_duplicates: Unresolved in-input duplicates per product ID
            entered_counts: Raw line count per product ID, repeats included.
                Falls back to the assigned token count.

        Returns:
            GateStatus, blocked with one reason per failing condition
        """
        local_duplicates = local_duplicates or {}
        entered_counts = entered_counts or {}
        reasons = []

        for state in states:
            entered = entered_counts.get(state.product_id, len(state.tokens))
            overflow = entered - state.required
            if overflow > 0:
                reasons.append(GateReason(
                    product_id=state.product_id,
                    code=GateReasonCode.TOO_MANY_SERIALS,
                    message=too_many_message(overflow),
                    overflow=overflow,
                ))

            duplicates = list(local_duplicates.get(state.product_id) or [])
            if duplicates:
                reasons.append(GateReason(
                    product_id=state.product_id,
                    code=GateReasonCode.DUPLICATE_SERIALS,
                    message=duplicates_message(duplicates),
                    duplicates=duplicates,
                ))

        status = GateStatus(blocked=bool(reasons), reasons=reasons)

        if status.blocked:
            logger.info(
                "submission_blocked",
                reasons=[(r.product_id, r.code.value) for r in reasons],
            )

        return status


# Singleton instance
_submission_gate: Optional[SubmissionGate] = None


def get_submission_gate() -> SubmissionGate:
    """Get or create SubmissionGate instance."""
    global _submission_gate
    if _submission_gate is None:
        _submission_gate = SubmissionGate()
    return _submission_gate
