"""Shared utility functions for sii_f29 package."""

from sii_f29.utils.parsing import (
    extract_all_numbers,
    first_in_range,
    format_clp,
    get_numbers_from_lines,
    parse_chilean_number,
    strip_separators,
)

__all__ = [
    "extract_all_numbers",
    "first_in_range",
    "format_clp",
    "get_numbers_from_lines",
    "parse_chilean_number",
    "strip_separators",
]
