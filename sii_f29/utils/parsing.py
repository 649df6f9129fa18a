"""Shared parsing utilities for Chilean-locale numbers in raw F29 text.

F29 uploads frequently reach the extractor as undecoded PDF streams, so these
helpers tolerate stray whitespace and separator noise around digit runs.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

# Thousands-separated amount ("1.234.567" or "1,234,567") or a short bare number.
_SEPARATED_NUMBER = re.compile(r"\b\d{1,3}(?:[.,]\d{3})*\b")
_BARE_NUMBER = re.compile(r"\b\d+\b")

# Line scanners, most specific first.
_LINE_PATTERNS = (
    re.compile(r"([0-9]{1,3}[\s.,]*[0-9]{3}[\s.,]*[0-9]{3})"),
    re.compile(r"([0-9]{6,})"),
    re.compile(r"([0-9]+)"),
)


def strip_separators(value: str) -> str:
    """Remove whitespace, periods and commas from a captured digit run."""
    return re.sub(r"[\s.,]", "", value)


def parse_chilean_number(value: str | None) -> int | None:
    """Parse a Chilean-formatted amount.

    Notes
    -----
    Thousands separators are periods (``3.410.651`` → ``3410651``); commas and
    whitespace left by broken PDF streams are dropped as well. CLP carries no
    cents, so the result is always an integer. Parentheses denote negative
    values (``(777.992)`` → ``-777992``).

    Parameters
    ----------
    value : str | None
        Raw string value to parse.

    Returns
    -------
    int | None
        Parsed integer or ``None`` when no digits are present.
    """
    if not value:
        return None

    value = str(value).strip()
    is_negative = ("(" in value and ")" in value) or value.startswith("-")
    digits = re.sub(r"[^\d]", "", value)

    if not digits:
        return None

    try:
        result = int(digits)
    except ValueError:
        logger.warning("Could not parse number: %s", value)
        return None
    return -result if is_negative else result


def extract_all_numbers(text: str) -> list[int]:
    """Return every positive numeric token in ``text``.

    Thousands-separated tokens come first in order of appearance, followed by
    bare digit runs not already collected.

    Parameters
    ----------
    text
        Decoded text window.

    Returns
    -------
    list[int]
        Positive integers found in the window.
    """
    numbers: list[int] = []

    for match in _SEPARATED_NUMBER.findall(text):
        number = int(strip_separators(match))
        if number > 0:
            numbers.append(number)

    for match in _BARE_NUMBER.findall(text):
        number = int(match)
        if number > 0 and number not in numbers:
            numbers.append(number)

    return numbers


def get_numbers_from_lines(lines: list[str]) -> list[int]:
    """Extract positive numbers from adjacent lines, deduplicated in order.

    Parameters
    ----------
    lines
        Current line plus its neighbours.

    Returns
    -------
    list[int]
        Candidate amounts, earliest pattern and line first.
    """
    numbers: list[int] = []
    for line in lines:
        for pattern in _LINE_PATTERNS:
            for match in pattern.findall(line):
                cleaned = strip_separators(match)
                if not cleaned:
                    continue
                number = int(cleaned)
                if number > 0:
                    numbers.append(number)

    return list(dict.fromkeys(numbers))


def format_clp(value: int | float | None) -> str:
    """Format an amount Chilean-style (``3410651`` → ``"$3.410.651"``)."""
    if value is None:
        return "n/a"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(round(value)):,}".replace(",", ".")


def first_in_range(numbers: list[int], bounds: tuple[int, int]) -> int | None:
    """Return the first number strictly inside ``bounds``."""
    low, high = bounds
    return next((n for n in numbers if low < n < high), None)
