"""Regex and proximity scanner over decoded F29 byte streams.

Each decoded variant of the upload is searched for the numbered F29 codes.
A code label followed (within a bounded run of non-digit noise) by a digit
run is a direct hit; when no regex shape matches, the digits found in a fixed
window after the first bare occurrence of the code are used instead, with a
lower confidence weight.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from sii_f29.config import get_extraction_specs
from sii_f29.extractor.decoding import DecodedText, decode_variants
from sii_f29.extractor.identity import extract_identity_fields
from sii_f29.extractor.types import ExtractionAccumulator, F29Code, get_f29_codes
from sii_f29.utils.parsing import extract_all_numbers, strip_separators

logger = logging.getLogger(__name__)

__all__ = [
    "build_code_patterns",
    "find_code_by_proximity",
    "find_code_by_regex",
    "parse_f29_from_binary",
    "parse_f29_from_decoded_text",
]


def _scanner_settings() -> dict[str, Any]:
    return get_extraction_specs().get("scanner", {})


def build_code_patterns(code: str, label_gap: int = 50) -> list[re.Pattern[str]]:
    """Return the regex shapes tried, in order, for one F29 code.

    Parameters
    ----------
    code
        Code number as printed (e.g., ``"538"``).
    label_gap
        Maximum count of non-digit characters between label and value.

    Returns
    -------
    list[re.Pattern[str]]
        Compiled case-insensitive patterns capturing the value run. The
        spaced shape stops at a line break, so a zero never joins the next
        line's code.
    """
    return [
        re.compile(rf"{code}[^\d]{{0,{label_gap}}}([\d.,]+)", re.IGNORECASE),
        re.compile(rf"\b{code}\b[^\d]{{0,{label_gap}}}([\d \t.,]+)", re.IGNORECASE),
        re.compile(rf"c[óo]digo\s*{code}[^\d]{{0,{label_gap}}}([\d.,]+)", re.IGNORECASE),
    ]


def find_code_by_regex(text: str, code: str, label_gap: int = 50) -> int | None:
    """Return the first positive value captured after ``code`` by any regex shape."""
    for pattern in build_code_patterns(code, label_gap):
        match = pattern.search(text)
        if not match:
            continue
        cleaned = strip_separators(match.group(1))
        if cleaned and int(cleaned) > 0:
            return int(cleaned)
    return None


def find_code_by_proximity(
    text: str,
    code: str,
    window: int = 100,
    min_significant: int = 100,
) -> int | None:
    """Pick a value from the text window that follows the first bare ``code``.

    Parameters
    ----------
    text
        Decoded document text.
    code
        Code number to locate.
    window
        Characters after the code to scan.
    min_significant
        Tokens above this are preferred over smaller ones.

    Returns
    -------
    int | None
        First token greater than ``min_significant``, else the first token,
        else ``None`` when the code or any number is absent.
    """
    index = text.find(code)
    if index < 0:
        return None

    start = index + len(code)
    numbers = extract_all_numbers(text[start : start + window])
    if not numbers:
        return None
    return next((n for n in numbers if n > min_significant), numbers[0])


def _scan_code(
    text: str,
    entry: F29Code,
    acc: ExtractionAccumulator,
    settings: dict[str, Any],
    log: logging.Logger,
) -> None:
    value = find_code_by_regex(text, entry.code, settings.get("label_gap", 50))
    if acc.record(entry.field, value, f"{entry.field}: {value} ({entry.description})", "regex"):
        log.info("✓ %s (%s): %s", entry.description, entry.code, f"{value:,}")
        return

    value = find_code_by_proximity(
        text,
        entry.code,
        settings.get("proximity_window", 100),
        settings.get("min_significant_value", 100),
    )
    if acc.record(entry.field, value, f"{entry.field}: {value} (nearby-{entry.description})", "proximity"):
        log.info("✓ %s (%s): %s found near code", entry.description, entry.code, f"{value:,}")


def parse_f29_from_decoded_text(
    text: str,
    encoding: str = "",
    log: logging.Logger | None = None,
) -> ExtractionAccumulator:
    """Scan one decoded text for every F29 code plus identity fields.

    Parameters
    ----------
    text : str
        Text produced by one decoder.
    encoding : str, optional
        Decoder label, used in log lines.
    log : logging.Logger | None, optional
        Logger to report hits on; defaults to this module's logger.

    Returns
    -------
    ExtractionAccumulator
        Partial result for this encoding.
    """
    log = log or logger
    log.debug("Scanning F29 codes in %s text", encoding or "decoded")

    acc = ExtractionAccumulator("binary-pdf")
    settings = _scanner_settings()

    for entry in get_f29_codes():
        _scan_code(text, entry, acc, settings, log)

    extract_identity_fields(text, acc, log=log)
    return acc


def parse_f29_from_binary(
    data: bytes,
    variants: list[DecodedText] | None = None,
    log: logging.Logger | None = None,
) -> ExtractionAccumulator:
    """Run the regex/proximity scanner over every decoding of ``data``.

    Per-encoding findings are folded highest-confidence first so a field is
    taken from the encoding that recovered the most signal; the strategy
    confidence is the best single-encoding confidence.

    Parameters
    ----------
    data : bytes
        Raw upload.
    variants : list[DecodedText] | None, optional
        Pre-decoded texts; computed from ``data`` when omitted.
    log : logging.Logger | None, optional
        Injected logger.

    Returns
    -------
    ExtractionAccumulator
        Combined ``binary-pdf`` partial result.
    """
    log = log or logger
    log.info("Binary scan: decoding %s bytes", len(data))

    per_encoding: list[tuple[str, ExtractionAccumulator]] = []
    for variant in variants if variants is not None else decode_variants(data):
        per_encoding.append((variant.encoding, parse_f29_from_decoded_text(variant.text, variant.encoding, log)))

    combined = ExtractionAccumulator("binary-pdf")
    for encoding, acc in sorted(per_encoding, key=lambda item: item[1].confidence, reverse=True):
        if acc.detected_values:
            combined.absorb(acc, label=encoding)

    log.info("Binary scan finished: %s fields, confidence %s", len(combined.values), combined.confidence)
    return combined
