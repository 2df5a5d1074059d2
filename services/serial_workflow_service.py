"""
Serial workflow — Event handlers of the serial entry & assignment step.

Flow on every text edit:
1. PARSE the textarea into serials
2. DETECT serials repeated in the input (de-duplicate for the state)
3. RESET the product's allocation state (prior manual choices are dropped)
4. AUTO-ASSIGN when enabled
5. RENDER grid + counters, SYNC the hidden payload, RE-EVALUATE the gate
6. SCHEDULE a debounced validation against other delivery challans

Validation results only change what is displayed. They never add or remove
serials, and a failed round leaves the last displayed result in place.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from config import settings
from exceptions import ExternalServiceError
from integrations.presentation import (
    SEVERITY_ERROR,
    CounterSink,
    GridRenderer,
    LoggingPresenter,
    NotificationSink,
)
from integrations.serial_validation_client import (
    SerialValidationClient,
    get_serial_validation_client,
)
from models.serial_allocation import (
    Destination,
    GateReasonCode,
    GateStatus,
    ProductLine,
)
from models.serial_validation import ValidationVerdict
from parsers.serial_parser import scan_serials
from services.payload_sync_service import (
    FormPayload,
    PayloadSynchronizer,
    get_payload_synchronizer,
)
from services.request_sequencer import RequestSequencer
from services.serial_allocation_service import AllocationState, AllocationStateStore
from services.submission_gate_service import (
    SubmissionGate,
    duplicates_message,
    get_submission_gate,
)

logger = structlog.get_logger(__name__)

SUBMIT_BLOCKED_MESSAGE = "Please fix serial number validation errors before saving."

# Style classes pushed to the counter sink
STYLE_OK = "text-green-600 font-medium"
STYLE_OVER = "text-red-600 font-medium"
STYLE_UNDER = "text-gray-500"
STYLE_ERROR = "text-red-600"
STYLE_HIDDEN = "hidden"
STYLE_INPUT_INVALID = "border-red-500 bg-red-50"
STYLE_INPUT_VALID = "border-green-500 bg-green-50"
STYLE_INPUT_NEUTRAL = "border-gray-200 bg-gray-50"
STYLE_SUBMIT_ENABLED = "enabled"
STYLE_SUBMIT_DISABLED = "disabled opacity-50 cursor-not-allowed"


@dataclass
class ValidationDisplay:
    """What is currently shown for the last applied validation round."""
    verdict: Optional[ValidationVerdict] = None
    epoch: int = 0


def format_conflicts(verdict: ValidationVerdict) -> str:
    return "Already used in project: " + ", ".join(
        f"{c.serial_number} (DC: {c.dc_number}, {c.dc_status})"
        for c in verdict.duplicates_in_records
    )


class SerialWorkflow:
    """
    Serial entry for every product of one shipment form.

    Owns the allocation state store, the hidden payload and the request
    sequencer of the view; close() tears all of them down.
    """

    def __init__(
        self,
        project_id: Optional[int] = None,
        exclude_dc_id: Optional[int] = None,
        validation_client: Optional[SerialValidationClient] = None,
        sequencer: Optional[RequestSequencer] = None,
        notifier: Optional[NotificationSink] = None,
        counters: Optional[CounterSink] = None,
        grid_renderer: Optional[GridRenderer] = None,
        auto_assign_on_input: Optional[bool] = None,
    ):
        presenter = LoggingPresenter()
        self.project_id = project_id
        self.exclude_dc_id = exclude_dc_id
        self.validation_client = validation_client or get_serial_validation_client()
        self.sequencer = sequencer or RequestSequencer()
        self.notifier = notifier or presenter
        self.counters = counters or presenter
        self.grid_renderer = grid_renderer or presenter
        self.auto_assign_on_input = (
            settings.auto_assign_on_input if auto_assign_on_input is None
            else auto_assign_on_input
        )

        self.store = AllocationStateStore()
        self.payload = FormPayload()
        self.synchronizer: PayloadSynchronizer = get_payload_synchronizer()
        self.gate: SubmissionGate = get_submission_gate()

        self._local_duplicates: Dict[int, List[str]] = {}
        self._entered_counts: Dict[int, int] = {}
        self._displays: Dict[int, ValidationDisplay] = {}
        self.gate_status = GateStatus()

    # ===================
    # LIFECYCLE
    # ===================

    def add_product(
        self,
        product: ProductLine,
        destinations: Iterable[Destination],
    ) -> AllocationState:
        """Bring a product into the workflow with no serials."""
        state = self.store.create(product, destinations)
        self._local_duplicates[product.product_id] = []
        self._entered_counts[product.product_id] = 0
        self._displays[product.product_id] = ValidationDisplay()
        self._after_change(state)
        return state

    def remove_product(self, product_id: int) -> None:
        self.sequencer.cancel(product_id)
        self.sequencer.invalidate(product_id)
        self.store.destroy(product_id)
        self.payload.remove_owned_by(product_id)
        self._local_duplicates.pop(product_id, None)
        self._entered_counts.pop(product_id, None)
        self._displays.pop(product_id, None)
        self._evaluate_gate()

    def close(self) -> None:
        """Tear down the view: cancel timers, drop all state."""
        for state in self.store.all():
            self.remove_product(state.product_id)

        logger.info("serial_workflow_closed", project_id=self.project_id)

    def state(self, product_id: int) -> AllocationState:
        return self.store.get(product_id)

    def local_duplicates(self, product_id: int) -> List[str]:
        self.store.get(product_id)
        return list(self._local_duplicates.get(product_id, []))

    def validation_display(self, product_id: int) -> ValidationDisplay:
        self.store.get(product_id)
        return self._displays[product_id]

    # ===================
    # TEXT INPUT
    # ===================

    def handle_serial_input(self, product_id: int, raw_text: str) -> AllocationState:
        """
        Handle an edit of a product's serial textarea.

        Args:
            product_id: Product whose textarea changed
            raw_text: Full textarea content

        Returns:
            The product's allocation state after the edit

        Raises:
            ProductStateNotFoundError: If the product is not in the workflow
        """
        state = self.store.get(product_id)
        scan = scan_serials(raw_text)

        self._entered_counts[product_id] = scan.entered_count
        self._local_duplicates[product_id] = scan.duplicates
        self._update_entered_counter(state, scan.entered_count)
        self._update_input_errors(product_id, scan.duplicates)
        self._clear_validation_display(product_id)

        state.reset(scan.unique)
        if self.auto_assign_on_input:
            state.auto_assign()

        self._render_grid(state)
        self._after_change(state)
        self._schedule_validation(state)

        logger.info(
            "serial_input_handled",
            product_id=product_id,
            entered=scan.entered_count,
            unique=len(scan.unique),
            duplicates=len(scan.duplicates),
        )

        return state

    # ===================
    # GRID HANDLERS
    # ===================

    def auto_assign(self, product_id: int) -> AllocationState:
        state = self.store.get(product_id)
        state.auto_assign()
        self._render_grid(state)
        self._after_change(state)
        return state

    def clear_assignments(self, product_id: int) -> AllocationState:
        state = self.store.get(product_id)
        state.clear_assignments()
        self._render_grid(state)
        self._after_change(state)
        return state

    def manual_assign(
        self,
        product_id: int,
        token: str,
        destination_id: Optional[int],
    ) -> AllocationState:
        """One radio button changed in the grid."""
        state = self.store.get(product_id)
        state.manual_assign(token, destination_id)
        self._after_change(state)
        return state

    def on_assignment_change(
        self,
        product_id: int,
        choices: Mapping[str, Optional[int]],
    ) -> AllocationState:
        """The grid reported the checked radio of every row."""
        state = self.store.get(product_id)
        state.apply_choices(choices)
        self._after_change(state)
        return state

    # ===================
    # VALIDATION
    # ===================

    async def validate(self, product_id: int, tokens: Sequence[str]) -> None:
        """
        Check serials against other delivery challans of the project.

        No request is sent for an empty list or without a project. Stale
        responses are dropped; transport failures are logged and leave the
        display untouched.
        """
        if not tokens or not self.project_id:
            return

        tokens = list(tokens)

        async def send() -> ValidationVerdict:
            return await self.validation_client.validate(
                product_id, tokens, self.project_id, self.exclude_dc_id
            )

        try:
            verdict = await self.sequencer.run_latest(product_id, send)
        except ExternalServiceError as e:
            logger.warning(
                "serial_validation_failed",
                product_id=product_id,
                error=e.message,
            )
            return

        if verdict is None or product_id not in self.store:
            return

        self._apply_verdict(product_id, verdict)

    async def validate_now(self, product_id: int) -> None:
        """Validate the product's current serials (debounce timer target)."""
        if product_id not in self.store:
            return
        await self.validate(product_id, self.store.get(product_id).tokens)

    # ===================
    # SUBMISSION
    # ===================

    def submit(self) -> Optional[Dict[str, str]]:
        """
        Attempt to submit the form.

        Returns:
            Hidden payload fields, or None when the gate is closed
        """
        status = self._evaluate_gate()
        if status.blocked:
            self.notifier.show_toast(SUBMIT_BLOCKED_MESSAGE, SEVERITY_ERROR)
            return None
        return self.payload.as_dict()

    # ===================
    # INTERNALS
    # ===================

    def _after_change(self, state: AllocationState) -> None:
        self._update_assignment_counters(state)
        self.synchronizer.sync(state, self.payload)
        self._evaluate_gate()

    def _evaluate_gate(self) -> GateStatus:
        status = self.gate.evaluate(
            self.store.all(), self._local_duplicates, self._entered_counts
        )
        self.gate_status = status

        for state in self.store.all():
            overflow = next(
                (r for r in status.reasons
                 if r.product_id == state.product_id
                 and r.code == GateReasonCode.TOO_MANY_SERIALS),
                None,
            )
            if overflow is not None:
                self.counters.update(
                    f"too-many-errors-{state.product_id}", overflow.message, STYLE_OVER
                )
            else:
                self.counters.update(f"too-many-errors-{state.product_id}", "", STYLE_HIDDEN)

        self.counters.update(
            "submit",
            "",
            STYLE_SUBMIT_DISABLED if status.blocked else STYLE_SUBMIT_ENABLED,
        )
        return status

    def _schedule_validation(self, state: AllocationState) -> None:
        product_id = state.product_id
        # The display was just cleared; responses to older text must not repaint it
        self.sequencer.invalidate(product_id)
        if not state.tokens or not self.project_id:
            self.sequencer.cancel(product_id)
            return
        self.sequencer.schedule(product_id, lambda: self.validate_now(product_id))

    def _apply_verdict(self, product_id: int, verdict: ValidationVerdict) -> None:
        display = self._displays[product_id]
        display.verdict = verdict
        display.epoch = self.sequencer.current_epoch(product_id)

        if verdict.duplicates_in_input:
            self.counters.update(
                f"validation-input-{product_id}",
                "Duplicates in this list: " + ", ".join(verdict.duplicates_in_input),
                STYLE_ERROR,
            )
        else:
            self.counters.update(f"validation-input-{product_id}", "", STYLE_HIDDEN)

        if verdict.duplicates_in_records:
            self.counters.update(
                f"db-errors-{product_id}", format_conflicts(verdict), STYLE_ERROR
            )
        else:
            self.counters.update(f"db-errors-{product_id}", "", STYLE_HIDDEN)

        self.counters.update(
            f"serials-{product_id}",
            "",
            STYLE_INPUT_VALID if verdict.valid else STYLE_INPUT_INVALID,
        )

        logger.info(
            "serial_validation_applied",
            product_id=product_id,
            valid=verdict.valid,
            duplicates_in_input=len(verdict.duplicates_in_input),
            conflicts=len(verdict.duplicates_in_records),
        )

    def _clear_validation_display(self, product_id: int) -> None:
        self._displays[product_id] = ValidationDisplay()
        self.counters.update(f"validation-input-{product_id}", "", STYLE_HIDDEN)
        self.counters.update(f"db-errors-{product_id}", "", STYLE_HIDDEN)
        self.counters.update(f"serials-{product_id}", "", STYLE_INPUT_NEUTRAL)

    def _update_entered_counter(self, state: AllocationState, entered: int) -> None:
        if entered == state.required:
            style = STYLE_OK
        elif entered > state.required:
            style = STYLE_OVER
        else:
            style = STYLE_UNDER
        self.counters.update(
            f"counter-{state.product_id}",
            f"Entered: {entered} / Required: {state.required}",
            style,
        )

    def _update_input_errors(self, product_id: int, duplicates: List[str]) -> None:
        if duplicates:
            self.counters.update(
                f"input-errors-{product_id}", duplicates_message(duplicates), STYLE_ERROR
            )
        else:
            self.counters.update(f"input-errors-{product_id}", "", STYLE_HIDDEN)

    def _update_assignment_counters(self, state: AllocationState) -> None:
        counts = state.counts()
        for count in counts.destinations:
            self.counters.update(
                f"counter-{state.product_id}-{count.destination_id}",
                count.label,
                count.style_class,
            )
        self.counters.update(
            f"counter-{state.product_id}-unassigned",
            str(counts.unassigned),
            STYLE_UNDER,
        )

    def _render_grid(self, state: AllocationState) -> None:
        self.grid_renderer.render(
            state.product_id,
            list(state.tokens),
            list(state.destinations),
            state.quota_per_set,
        )
