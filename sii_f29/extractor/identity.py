"""Identity-field scanner: RUT, tax period, folio and company name.

These fields are best-effort; apart from the RUT length window no format is
enforced here. The coherence validator flags what is missing or malformed.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from sii_f29.config import get_extraction_specs
from sii_f29.extractor.types import ExtractionAccumulator

logger = logging.getLogger(__name__)

__all__ = [
    "extract_identity_fields",
    "find_folio",
    "find_periodo",
    "find_razon_social",
    "find_rut",
    "parse_identity_from_text",
]

# Separators seen between RUT digit groups in broken streams.
_RUT_SEP = r"[\s.,\x00-\x1F-]*"
_RUT_PATTERN = re.compile(rf"[0-9]{{1,2}}{_RUT_SEP}[0-9]{{3}}{_RUT_SEP}[0-9]{{3}}{_RUT_SEP}[0-9kK]")
_RUT_SHAPE = re.compile(r"^[0-9]{7,8}[0-9kK]$")
_PERIODO_PATTERN = re.compile(r"20\d{4}")
_COMPANY_LABEL = re.compile(
    r"RAZ[ÓO]N\s+SOCIAL\s*[:\-]?\s*([A-ZÁÉÍÓÚÑ][A-ZÁÉÍÓÚÑ&.,' -]{2,80})",
    re.IGNORECASE,
)


def _identity_settings() -> dict[str, Any]:
    return get_extraction_specs().get("identity", {})


def _suffix_pattern(suffixes: list[str]) -> str:
    return "|".join(re.escape(s) for s in suffixes)


def find_rut(text: str, min_length: int = 8, max_length: int = 12) -> str | None:
    """Return the first RUT-shaped token, separators stripped.

    Parameters
    ----------
    text
        Decoded document text.
    min_length, max_length
        Accepted length window after stripping separators.

    Returns
    -------
    str | None
        Digits plus verifier (e.g., ``"777542419"``) or ``None``.
    """
    for match in _RUT_PATTERN.finditer(text):
        candidate = re.sub(r"[\s\x00-\x1F.,-]", "", match.group(0))
        if min_length <= len(candidate) <= max_length and _RUT_SHAPE.match(candidate):
            return candidate.upper()
    return None


def find_periodo(text: str) -> str | None:
    """Return the first ``20YYMM``-looking token."""
    match = _PERIODO_PATTERN.search(text)
    return match.group(0) if match else None


def find_folio(text: str, min_digits: int = 10) -> str | None:
    """Return the first run of at least ``min_digits`` digits."""
    match = re.search(rf"[0-9]{{{min_digits},}}", text)
    return match.group(0) if match else None


def _clean_company_name(raw: str, suffixes: list[str]) -> str:
    name = re.sub(r"\s+", " ", raw).strip(" .,-'")
    cut = re.search(rf"^(.*?(?:{_suffix_pattern(suffixes)}))(?![A-Za-z])", name)
    return cut.group(1).strip() if cut else name


def find_razon_social(text: str, suffixes: list[str] | None = None) -> str | None:
    """Return the company name printed on the form.

    A ``RAZÓN SOCIAL`` label wins; otherwise the first upper-case phrase that
    ends in a Chilean company suffix (SPA, LTDA, S.A., EIRL) is used.
    """
    suffixes = suffixes or _identity_settings().get("company_suffixes", ["SPA", "LTDA", "S.A.", "EIRL"])

    labelled = _COMPANY_LABEL.search(text)
    if labelled:
        name = _clean_company_name(labelled.group(1), suffixes)
        if len(name) >= 3:
            return name.upper()

    suffixed = re.search(
        rf"\b([A-ZÁÉÍÓÚÑ][A-ZÁÉÍÓÚÑ&' ]{{2,80}}?\s(?:{_suffix_pattern(suffixes)}))(?![A-Za-z])",
        text,
    )
    return suffixed.group(1).strip() if suffixed else None


def extract_identity_fields(
    text: str,
    acc: ExtractionAccumulator,
    label: str = "",
    log: logging.Logger | None = None,
) -> None:
    """Record RUT, period, folio and company name found in ``text`` into ``acc``."""
    log = log or logger
    settings = _identity_settings()
    suffix = f" [{label}]" if label else ""

    rut = find_rut(text, settings.get("rut_min_length", 8), settings.get("rut_max_length", 12))
    if acc.record("rut", rut, f"RUT: {rut}{suffix}", "rut"):
        log.info("✓ RUT found: %s", rut)

    periodo = find_periodo(text)
    if acc.record("periodo", periodo, f"Período: {periodo}{suffix}", "periodo"):
        log.info("✓ Period found: %s", periodo)

    folio = find_folio(text, settings.get("folio_min_digits", 10))
    if acc.record("folio", folio, f"Folio: {folio}{suffix}", "folio"):
        log.info("✓ Folio found: %s", folio)

    razon_social = find_razon_social(text, settings.get("company_suffixes"))
    if acc.record("razon_social", razon_social, f"Razón Social: {razon_social}{suffix}", "razon_social"):
        log.info("✓ Company name found: %s", razon_social)


def parse_identity_from_text(text: str, log: logging.Logger | None = None) -> ExtractionAccumulator:
    """Run the identity scanner alone as a ``basic-info`` strategy."""
    acc = ExtractionAccumulator("basic-info")
    extract_identity_fields(text, acc, log=log)
    return acc
