"""Line-adjacency scanner for F29 tables.

On rendered forms the code label and its amount often sit on the same or the
next line. A line mentioning a code (or its label keyword) is scanned together
with the following line, and the first number inside the code's plausible
magnitude range is taken. The range filter trades recall for precision.
"""

from __future__ import annotations

import logging
import re

from sii_f29.config import get_visual_encoding
from sii_f29.extractor.decoding import decode_bytes
from sii_f29.extractor.types import ExtractionAccumulator, F29Code, get_f29_codes
from sii_f29.utils.parsing import first_in_range, get_numbers_from_lines

logger = logging.getLogger(__name__)

__all__ = ["parse_f29_from_lines", "parse_f29_with_visual_patterns"]


def _line_mentions(line: str, entry: F29Code) -> bool:
    return entry.code in line or entry.keyword in line


def parse_f29_from_lines(
    lines: list[str],
    method: str = "visual-patterns",
    log: logging.Logger | None = None,
) -> ExtractionAccumulator:
    """Scan text lines pairwise for each F29 code.

    Parameters
    ----------
    lines
        Document text split on line breaks.
    method
        Strategy name stored on the partial result.
    log
        Injected logger.

    Returns
    -------
    ExtractionAccumulator
        One ``visual`` signal per code found in range.
    """
    log = log or logger
    acc = ExtractionAccumulator(method)

    for entry in get_f29_codes():
        for i, line in enumerate(lines):
            if not _line_mentions(line, entry):
                continue
            following = lines[i + 1] if i + 1 < len(lines) else ""
            value = first_in_range(get_numbers_from_lines([line, following]), entry.visual_range)
            if acc.record(entry.field, value, f"código{entry.code}: {value} (visual)", "visual"):
                log.info("✓ %s (%s): %s on line %s", entry.description, entry.code, f"{value:,}", i + 1)
                break

    return acc


def parse_f29_with_visual_patterns(data: bytes, log: logging.Logger | None = None) -> ExtractionAccumulator:
    """Decode ``data`` with the visual encoding and run the line scanner."""
    log = log or logger
    log.info("Visual scan: line-adjacency analysis")
    text = decode_bytes(data, get_visual_encoding())
    return parse_f29_from_lines(re.split(r"\r?\n", text), log=log)
