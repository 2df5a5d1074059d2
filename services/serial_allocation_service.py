"""
Serial Allocation Service — Spreads a product's serials across its destinations.

Key principle: the assignment mapping is never patched in place. Every change
records a declared choice (serial -> destination or unassigned) and the whole
mapping is rebuilt from those choices, so a serial can only ever sit in one
destination and never outlives the serial list it came from.

Algorithm (auto-assign):
1. CLEAR every destination
2. WALK destinations in their configured order
3. TAKE serials from the front of the list up to each destination's quota
4. LEAVE anything beyond total capacity unassigned
"""

from typing import Dict, Iterable, List, Mapping, Optional

import structlog

from exceptions import ProductStateNotFoundError
from models.serial_allocation import (
    AllocationCounts,
    Destination,
    DestinationCount,
    ProductAllocationSnapshot,
    ProductLine,
    QuotaStatus,
)

logger = structlog.get_logger(__name__)


def quota_status(assigned: int, quota: int) -> QuotaStatus:
    """Compare an assigned count with its quota."""
    if assigned == quota:
        return QuotaStatus.MET
    if assigned > quota:
        return QuotaStatus.OVER
    return QuotaStatus.BELOW


class AllocationState:
    """Serials of one product line and their destination assignment."""

    def __init__(self, product: ProductLine, destinations: Iterable[Destination]):
        self.product = product
        self.destinations: List[Destination] = list(destinations)
        self._destination_ids = {d.id for d in self.destinations}
        self.tokens: List[str] = []
        self.assignment: Dict[int, List[str]] = {d.id: [] for d in self.destinations}
        self._choices: Dict[str, Optional[int]] = {}

    @property
    def product_id(self) -> int:
        return self.product.product_id

    @property
    def required(self) -> int:
        return self.product.required

    @property
    def quota_per_set(self) -> int:
        """Quantity of the first destination (what the grid footer shows)."""
        return self.destinations[0].quota if self.destinations else 0

    def reset(self, tokens: Iterable[str]) -> None:
        """Replace the serial list and drop every assignment."""
        self.tokens = list(tokens)
        self._choices = {}
        self._rebuild()

        logger.debug(
            "allocation_reset",
            product_id=self.product_id,
            serials=len(self.tokens),
        )

    def auto_assign(self) -> None:
        """Fill each destination's quota in order from the front of the list."""
        self._choices = {}
        remaining = iter(self.tokens)

        for destination in self.destinations:
            for _ in range(destination.quota):
                token = next(remaining, None)
                if token is None:
                    break
                self._choices[token] = destination.id

        self._rebuild()

        logger.info(
            "auto_assign_complete",
            product_id=self.product_id,
            serials=len(self.tokens),
            assigned=sum(len(v) for v in self.assignment.values()),
        )

    def clear_assignments(self) -> None:
        """Mark every serial unassigned."""
        self._choices = {}
        self._rebuild()

    def manual_assign(self, token: str, destination_id: Optional[int]) -> None:
        """
        Declare the destination for one serial and rebuild the mapping.

        Args:
            token: Serial number from the current list
            destination_id: Target destination, or None for unassigned
        """
        self._declare(token, destination_id)
        self._rebuild()

    def apply_choices(self, choices: Mapping[str, Optional[int]]) -> None:
        """
        Replace the declared choices with the grid's full state and rebuild.

        Serials missing from choices become unassigned.
        """
        self._choices = {}
        for token, destination_id in choices.items():
            self._declare(token, destination_id)
        self._rebuild()

    def destination_of(self, token: str) -> Optional[int]:
        """Current destination of a serial, None when unassigned."""
        return self._choices.get(token)

    def counts(self) -> AllocationCounts:
        """Assigned count per destination plus the unassigned remainder."""
        per_destination = []
        for destination in self.destinations:
            assigned = len(self.assignment.get(destination.id, []))
            per_destination.append(DestinationCount(
                destination_id=destination.id,
                assigned=assigned,
                quota=destination.quota,
                status=quota_status(assigned, destination.quota),
            ))

        total_assigned = sum(c.assigned for c in per_destination)
        return AllocationCounts(
            destinations=per_destination,
            unassigned=len(self.tokens) - total_assigned,
        )

    def snapshot(self) -> ProductAllocationSnapshot:
        return ProductAllocationSnapshot(
            product=self.product,
            destinations=self.destinations,
            serials=list(self.tokens),
            assignments={k: list(v) for k, v in self.assignment.items()},
        )

    def _declare(self, token: str, destination_id: Optional[int]) -> None:
        if token not in self.tokens:
            logger.warning(
                "assignment_ignored_unknown_serial",
                product_id=self.product_id,
                serial=token,
            )
            return

        if destination_id is not None and destination_id not in self._destination_ids:
            logger.warning(
                "assignment_unknown_destination",
                product_id=self.product_id,
                serial=token,
                destination_id=destination_id,
            )
            destination_id = None

        if destination_id is None:
            self._choices.pop(token, None)
        else:
            self._choices[token] = destination_id

    def _rebuild(self) -> None:
        # Choices for serials no longer in the list are dropped here
        known = set(self.tokens)
        self._choices = {
            token: dest for token, dest in self._choices.items()
            if token in known
        }
        assignment: Dict[int, List[str]] = {d.id: [] for d in self.destinations}
        for token in self.tokens:
            destination_id = self._choices.get(token)
            if destination_id is not None:
                assignment[destination_id].append(token)
        self.assignment = assignment


class AllocationStateStore:
    """
    Allocation states of one workflow view, keyed by product ID.

    Created with the view, destroyed with it. Each state is only touched by
    its own product's handlers; the store is the sole owner.
    """

    def __init__(self):
        self._states: Dict[int, AllocationState] = {}

    def create(
        self,
        product: ProductLine,
        destinations: Iterable[Destination],
    ) -> AllocationState:
        """Register a product with empty serials and empty assignments."""
        state = AllocationState(product, destinations)
        self._states[product.product_id] = state

        logger.info(
            "allocation_state_created",
            product_id=product.product_id,
            required=product.required,
            destinations=len(state.destinations),
        )

        return state

    def get(self, product_id: int) -> AllocationState:
        """
        Get a product's state.

        Raises:
            ProductStateNotFoundError: If the product was never added
        """
        state = self._states.get(product_id)
        if state is None:
            raise ProductStateNotFoundError(product_id)
        return state

    def reset(self, product_id: int, tokens: Iterable[str]) -> AllocationState:
        state = self.get(product_id)
        state.reset(tokens)
        return state

    def destroy(self, product_id: int) -> None:
        if self._states.pop(product_id, None) is not None:
            logger.info("allocation_state_destroyed", product_id=product_id)

    def clear(self) -> None:
        for product_id in list(self._states):
            self.destroy(product_id)

    def all(self) -> List[AllocationState]:
        return list(self._states.values())

    def __contains__(self, product_id: int) -> bool:
        return product_id in self._states

    def __len__(self) -> int:
        return len(self._states)
