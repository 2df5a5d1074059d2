"""
Unit tests for serial_allocation_service.

Run: pytest tests/unit/test_serial_allocation_service.py -v
"""

import pytest

from exceptions import ProductStateNotFoundError
from models.serial_allocation import ProductLine, QuotaStatus
from services.serial_allocation_service import (
    AllocationState,
    AllocationStateStore,
    quota_status,
)
from tests.factories import DestinationFactory, ProductLineFactory


def make_state(required: int = 4, quotas=(2, 2), tokens=None) -> AllocationState:
    state = AllocationState(
        ProductLineFactory.create(product_id=1, required=required),
        DestinationFactory.create_batch(list(quotas)),
    )
    if tokens is not None:
        state.reset(tokens)
    return state


def assert_partition(state: AllocationState):
    """Every assigned serial is in the list and sits in exactly one destination."""
    placed = [t for serials in state.assignment.values() for t in serials]
    assert len(placed) == len(set(placed))
    assert set(placed) <= set(state.tokens)


class TestQuotaStatus:

    def test_met(self):
        assert quota_status(2, 2) == QuotaStatus.MET

    def test_over(self):
        assert quota_status(3, 2) == QuotaStatus.OVER

    def test_below(self):
        assert quota_status(1, 2) == QuotaStatus.BELOW

    def test_zero_quota_zero_assigned_is_met(self):
        assert quota_status(0, 0) == QuotaStatus.MET


class TestReset:

    def test_new_state_is_empty(self):
        state = make_state()

        assert state.tokens == []
        assert state.assignment == {1: [], 2: []}

    def test_reset_replaces_tokens_and_clears_assignment(self):
        state = make_state(tokens=["A", "B", "C"])
        state.auto_assign()

        state.reset(["D", "E"])

        assert state.tokens == ["D", "E"]
        assert state.assignment == {1: [], 2: []}
        assert state.destination_of("A") is None
        assert state.destination_of("D") is None


class TestAutoAssign:
    """Tests for AllocationState.auto_assign()"""

    def test_fills_destinations_in_order(self):
        state = make_state(tokens=["A", "B", "C", "D"])

        state.auto_assign()

        assert state.assignment == {1: ["A", "B"], 2: ["C", "D"]}
        assert state.counts().unassigned == 0

    def test_fewer_tokens_than_capacity(self):
        state = make_state(tokens=["A", "B", "C"])

        state.auto_assign()

        assert state.assignment == {1: ["A", "B"], 2: ["C"]}
        counts = state.counts()
        assert counts.destinations[0].status == QuotaStatus.MET
        assert counts.destinations[1].status == QuotaStatus.BELOW
        assert counts.unassigned == 0

    def test_overflow_stays_unassigned(self):
        state = make_state(quotas=(1, 1), tokens=["A", "B", "C"])

        state.auto_assign()

        assert state.assignment == {1: ["A"], 2: ["B"]}
        assert state.destination_of("C") is None
        assert state.counts().unassigned == 1

    def test_zero_quota_destination_receives_nothing(self):
        state = make_state(quotas=(0, 2), tokens=["A", "B"])

        state.auto_assign()

        assert state.assignment == {1: [], 2: ["A", "B"]}

    def test_no_destinations(self):
        state = AllocationState(ProductLineFactory.create(required=2), [])
        state.reset(["A", "B"])

        state.auto_assign()

        assert state.assignment == {}
        assert state.counts().unassigned == 2
        assert state.quota_per_set == 0

    def test_discards_previous_manual_choices(self):
        state = make_state(tokens=["A", "B", "C", "D"])
        state.manual_assign("D", 1)

        state.auto_assign()

        assert state.assignment == {1: ["A", "B"], 2: ["C", "D"]}

    def test_empty_list(self):
        state = make_state(tokens=[])
        state.auto_assign()
        assert state.assignment == {1: [], 2: []}


class TestManualAssign:
    """Tests for AllocationState.manual_assign() and apply_choices()"""

    def test_move_serial_between_destinations(self):
        state = make_state(tokens=["A", "B", "C", "D"])
        state.auto_assign()

        state.manual_assign("A", 2)

        assert state.assignment == {1: ["B"], 2: ["A", "C", "D"]}
        assert state.destination_of("A") == 2
        assert_partition(state)

    def test_manual_assign_may_exceed_quota(self):
        state = make_state(tokens=["A", "B", "C", "D"])
        state.auto_assign()

        state.manual_assign("C", 1)

        counts = state.counts()
        assert counts.destinations[0].assigned == 3
        assert counts.destinations[0].status == QuotaStatus.OVER
        assert counts.destinations[0].style_class == "text-red-600"
        assert counts.destinations[0].label == "3/2"

    def test_unassign_with_none(self):
        state = make_state(tokens=["A", "B"])
        state.auto_assign()

        state.manual_assign("A", None)

        assert state.destination_of("A") is None
        assert state.assignment == {1: ["B"], 2: []}
        assert state.counts().unassigned == 1

    def test_unknown_token_is_ignored(self):
        state = make_state(tokens=["A", "B"])
        state.auto_assign()

        state.manual_assign("ZZZ", 1)

        assert state.assignment == {1: ["A", "B"], 2: []}
        assert state.destination_of("ZZZ") is None

    def test_unknown_destination_means_unassigned(self):
        state = make_state(tokens=["A", "B"])
        state.auto_assign()

        state.manual_assign("A", 999)

        assert state.destination_of("A") is None
        assert 999 not in state.assignment
        assert_partition(state)

    def test_assignment_keeps_token_order(self):
        state = make_state(quotas=(4, 4), tokens=["A", "B", "C", "D"])

        state.manual_assign("D", 1)
        state.manual_assign("B", 1)

        assert state.assignment[1] == ["B", "D"]

    def test_apply_choices_replaces_everything(self):
        state = make_state(tokens=["A", "B", "C", "D"])
        state.auto_assign()

        state.apply_choices({"A": 2, "B": None, "C": 1})

        assert state.assignment == {1: ["C"], 2: ["A"]}
        assert state.destination_of("D") is None
        assert state.counts().unassigned == 2

    def test_reset_after_manual_drops_choices(self):
        state = make_state(tokens=["A", "B"])
        state.manual_assign("A", 2)

        state.reset(["A", "B"])

        assert state.destination_of("A") is None
        assert state.assignment == {1: [], 2: []}

    def test_clear_assignments(self):
        state = make_state(tokens=["A", "B", "C"])
        state.auto_assign()

        state.clear_assignments()

        assert state.tokens == ["A", "B", "C"]
        assert state.assignment == {1: [], 2: []}
        assert state.counts().unassigned == 3

    def test_partition_holds_after_many_operations(self):
        state = make_state(quotas=(2, 3), tokens=["A", "B", "C", "D", "E"])
        state.auto_assign()
        for token, destination_id in [("A", 2), ("E", 1), ("A", 1), ("C", None), ("B", 2)]:
            state.manual_assign(token, destination_id)
            assert_partition(state)

        counts = state.counts()
        assert counts.total_assigned + counts.unassigned == len(state.tokens)


class TestCountsAndSnapshot:

    def test_counts_labels_and_styles(self):
        state = make_state(tokens=["A", "B", "C"])
        state.auto_assign()

        counts = state.counts()

        assert [c.label for c in counts.destinations] == ["2/2", "1/2"]
        assert [c.style_class for c in counts.destinations] == ["text-green-600", "text-gray-600"]

    def test_snapshot_is_a_copy(self):
        state = make_state(tokens=["A", "B"])
        state.auto_assign()

        snapshot = state.snapshot()
        state.clear_assignments()

        assert snapshot.serials == ["A", "B"]
        assert snapshot.assignments == {1: ["A", "B"], 2: []}

    def test_quota_per_set_is_first_destination_quota(self):
        state = make_state(quotas=(3, 5))
        assert state.quota_per_set == 3


class TestAllocationStateStore:

    def test_create_and_get(self):
        store = AllocationStateStore()
        product = ProductLine(product_id=5, required=2)

        state = store.create(product, DestinationFactory.create_batch([2]))

        assert store.get(5) is state
        assert 5 in store
        assert len(store) == 1

    def test_get_missing_raises(self):
        store = AllocationStateStore()

        with pytest.raises(ProductStateNotFoundError) as exc_info:
            store.get(42)

        assert exc_info.value.status_code == 404
        assert exc_info.value.details["id"] == "42"

    def test_reset_through_store(self):
        store = AllocationStateStore()
        store.create(ProductLine(product_id=5, required=2), DestinationFactory.create_batch([2]))

        state = store.reset(5, ["A", "B"])

        assert state.tokens == ["A", "B"]

    def test_destroy_and_clear(self):
        store = AllocationStateStore()
        store.create(ProductLine(product_id=1, required=1), [])
        store.create(ProductLine(product_id=2, required=1), [])

        store.destroy(1)
        assert 1 not in store
        store.destroy(1)  # no-op

        store.clear()
        assert len(store) == 0
        assert store.all() == []

    def test_states_are_independent(self):
        store = AllocationStateStore()
        first = store.create(ProductLine(product_id=1, required=2), DestinationFactory.create_batch([2]))
        second = store.create(ProductLine(product_id=2, required=2), DestinationFactory.create_batch([2]))

        first.reset(["A", "B"])
        first.auto_assign()

        assert second.tokens == []
        assert second.assignment == {1: []}
