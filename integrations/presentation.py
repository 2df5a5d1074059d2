"""
Presentation collaborators of the serial workflow.

The workflow never renders anything itself. It pushes toasts, counter text
and grid re-renders into these sinks, fire-and-forget.
"""

from typing import Protocol, Sequence

import structlog

from models.serial_allocation import Destination

logger = structlog.get_logger(__name__)


# Toast severity
SEVERITY_ERROR = "error"


class NotificationSink(Protocol):
    def show_toast(self, message: str, severity: str) -> None:
        ...


class CounterSink(Protocol):
    def update(self, element_key: str, text: str, style_class: str) -> None:
        ...


class GridRenderer(Protocol):
    def render(
        self,
        product_id: int,
        tokens: Sequence[str],
        destinations: Sequence[Destination],
        quota: int,
    ) -> None:
        ...


class LoggingPresenter:
    """
    Default sink set that only logs.

    Used when the workflow runs headless (API requests, scripts).
    """

    def show_toast(self, message: str, severity: str) -> None:
        logger.info("toast", message=message, severity=severity)

    def update(self, element_key: str, text: str, style_class: str) -> None:
        logger.debug("counter_updated", element=element_key, text=text, style=style_class)

    def render(
        self,
        product_id: int,
        tokens: Sequence[str],
        destinations: Sequence[Destination],
        quota: int,
    ) -> None:
        logger.debug(
            "grid_rendered",
            product_id=product_id,
            serials=len(tokens),
            destinations=len(destinations),
            quota=quota,
        )
