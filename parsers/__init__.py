"""
Text parsers module.
"""

from parsers.serial_parser import (
    DuplicateScan,
    parse_serials,
    find_duplicates,
    scan_serials,
    join_serials,
)

__all__ = [
    "DuplicateScan",
    "parse_serials",
    "find_duplicates",
    "scan_serials",
    "join_serials",
]
