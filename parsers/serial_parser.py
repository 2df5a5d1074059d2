"""
Serial number text parser.

Turns a bulk-pasted (or barcode-scanned) block of text into serial tokens and
finds serials repeated inside that block. Pure functions, no I/O.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class DuplicateScan:
    """Result of scanning a token sequence for repeats."""
    unique: list[str] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)
    entered_count: int = 0

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicates)


def parse_serials(raw_text: Optional[str]) -> list[str]:
    """
    Split raw text into trimmed, non-empty serial tokens.

    Only a line feed separates serials; other control characters (GS1 group
    separators in scanned codes) stay inside the token. Blank lines are
    dropped silently. Repeats are kept; use find_duplicates() to separate
    them.

    Args:
        raw_text: Textarea content, one serial per line

    Returns:
        Serials in input order
    """
    if not raw_text:
        return []

    serials = []
    for line in raw_text.split("\n"):
        serial = line.strip()
        if serial:
            serials.append(serial)
    return serials


def find_duplicates(serials: Iterable[str]) -> DuplicateScan:
    """
    Find serials that appear more than once.

    Args:
        serials: Tokens as returned by parse_serials()

    Returns:
        DuplicateScan with repeated values (first-seen order) and the
        de-duplicated sequence (first-occurrence order)
    """
    seen: set[str] = set()
    reported: set[str] = set()
    scan = DuplicateScan()

    for serial in serials:
        scan.entered_count += 1
        if serial in seen:
            if serial not in reported:
                scan.duplicates.append(serial)
                reported.add(serial)
            continue
        seen.add(serial)
        scan.unique.append(serial)

    return scan


def scan_serials(raw_text: Optional[str]) -> DuplicateScan:
    """Parse raw text and scan it for repeats in one step."""
    scan = find_duplicates(parse_serials(raw_text))

    logger.debug(
        "serials_parsed",
        entered=scan.entered_count,
        unique=len(scan.unique),
        duplicates=len(scan.duplicates),
    )

    return scan


def join_serials(serials: Iterable[str]) -> str:
    """Newline-join serials for a form field or a validation request."""
    return "\n".join(serials)
