"""
Tests for payload_sync_service — Hidden form field projection.
"""

from services.payload_sync_service import (
    FormPayload,
    PayloadSynchronizer,
    assignment_field_name,
    get_payload_synchronizer,
    serials_field_name,
)
from services.serial_allocation_service import AllocationState
from tests.factories import DestinationFactory, ProductLineFactory


def make_state(product_id: int = 7, tokens=("A", "B", "C")) -> AllocationState:
    state = AllocationState(
        ProductLineFactory.create(product_id=product_id, required=4),
        DestinationFactory.create_batch([2, 2]),
    )
    state.reset(list(tokens))
    return state


class TestFieldNames:

    def test_serials_field(self):
        assert serials_field_name(7) == "serials_7"

    def test_assignment_field(self):
        assert assignment_field_name(7, 3) == "assign_7_3"


class TestFormPayload:

    def test_add_get_and_as_dict(self):
        payload = FormPayload()
        payload.add("serials_1", "A", owner=1)
        payload.add("other", "x", owner=2)

        assert payload.get("serials_1") == "A"
        assert payload.get("missing") is None
        assert payload.as_dict() == {"serials_1": "A", "other": "x"}
        assert len(payload) == 2

    def test_remove_owned_by_leaves_other_products(self):
        payload = FormPayload()
        payload.add("serials_1", "A", owner=1)
        payload.add("assign_1_1", "A", owner=1)
        payload.add("serials_2", "B", owner=2)

        removed = payload.remove_owned_by(1)

        assert removed == 2
        assert payload.as_dict() == {"serials_2": "B"}


class TestPayloadSynchronizer:
    """Tests for PayloadSynchronizer.sync()"""

    def test_writes_serials_and_non_empty_destinations(self):
        state = make_state()
        state.auto_assign()
        payload = FormPayload()

        PayloadSynchronizer().sync(state, payload)

        assert payload.as_dict() == {
            "serials_7": "A\nB\nC",
            "assign_7_1": "A\nB",
            "assign_7_2": "C",
        }

    def test_empty_destination_has_no_field(self):
        state = make_state(tokens=("A",))
        state.auto_assign()
        payload = FormPayload()

        PayloadSynchronizer().sync(state, payload)

        assert payload.get("assign_7_1") == "A"
        assert payload.get("assign_7_2") is None

    def test_serials_field_always_written(self):
        state = make_state(tokens=())
        payload = FormPayload()

        PayloadSynchronizer().sync(state, payload)

        assert payload.as_dict() == {"serials_7": ""}

    def test_resync_replaces_previous_fields(self):
        state = make_state()
        state.auto_assign()
        payload = FormPayload()
        sync = PayloadSynchronizer()
        sync.sync(state, payload)

        state.clear_assignments()
        sync.sync(state, payload)

        assert payload.as_dict() == {"serials_7": "A\nB\nC"}
        assert len(payload.fields_for(7)) == 1

    def test_does_not_touch_other_products(self):
        first = make_state(product_id=1, tokens=("A",))
        second = make_state(product_id=2, tokens=("B",))
        first.auto_assign()
        second.auto_assign()
        payload = FormPayload()
        sync = PayloadSynchronizer()
        sync.sync(first, payload)
        sync.sync(second, payload)

        first.reset([])
        sync.sync(first, payload)

        assert payload.get("serials_2") == "B"
        assert payload.get("assign_2_1") == "B"
        assert payload.get("assign_1_1") is None

    def test_singleton(self):
        assert get_payload_synchronizer() is get_payload_synchronizer()
