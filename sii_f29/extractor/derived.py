"""Derived F29 totals computed from extracted codes.

Formulas
--------
* ``compras_netas = round(credito_fiscal / 0.19)``
* ``iva_pagar = debito_fiscal - credito_fiscal`` (negative means credit in favour)
* ``total_a_pagar = iva_pagar + ppm + remanente``

Fields whose inputs are missing are left as ``None``; nothing here raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sii_f29.extractor.types import ExtractionResult

logger = logging.getLogger(__name__)

__all__ = [
    "VAT_RATE",
    "DerivedFields",
    "apply_derived_fields",
    "compute_compras_netas",
    "compute_derived_fields",
]

VAT_RATE = 0.19


@dataclass
class DerivedFields:
    """Totals derived from the five F29 codes."""

    compras_netas: int | None = None
    iva_pagar: int | None = None
    total_a_pagar: int | None = None


def compute_compras_netas(basis: int | None, vat_rate: float = VAT_RATE) -> int | None:
    """Back out net purchases from a VAT amount; ``None`` when the basis is empty."""
    if not basis or basis <= 0:
        return None
    return round(basis / vat_rate)


def compute_derived_fields(
    debito_fiscal: int | None,
    credito_fiscal: int | None,
    ppm: int | None = None,
    remanente: int | None = None,
    vat_rate: float = VAT_RATE,
) -> DerivedFields:
    """Compute net purchases, VAT payable, and total payable.

    Parameters
    ----------
    debito_fiscal
        Code 538 amount.
    credito_fiscal
        Code 511 amount.
    ppm
        Code 062 amount; missing counts as 0 in the total.
    remanente
        Code 077 amount; missing counts as 0 in the total.
    vat_rate
        VAT rate used to back out net purchases.

    Returns
    -------
    DerivedFields
        Computed totals, ``None`` where inputs are missing.
    """
    derived = DerivedFields(compras_netas=compute_compras_netas(credito_fiscal, vat_rate))

    if debito_fiscal is not None and credito_fiscal is not None:
        derived.iva_pagar = debito_fiscal - credito_fiscal

    if derived.iva_pagar is not None:
        derived.total_a_pagar = derived.iva_pagar + (ppm or 0) + (remanente or 0)

    return derived


def apply_derived_fields(result: ExtractionResult, vat_rate: float = VAT_RATE) -> ExtractionResult:
    """Write derived totals onto ``result`` in place and return it."""
    derived = compute_derived_fields(
        result.debito_fiscal,
        result.credito_fiscal,
        result.ppm,
        result.remanente,
        vat_rate,
    )
    result.compras_netas = derived.compras_netas
    result.iva_pagar = derived.iva_pagar
    result.total_a_pagar = derived.total_a_pagar

    if derived.compras_netas is not None:
        logger.info(
            "Compras netas: %s (%s ÷ %s)",
            f"{derived.compras_netas:,}",
            result.credito_fiscal,
            vat_rate,
        )
    if derived.iva_pagar is not None:
        logger.info("IVA a pagar: %s (%s - %s)", f"{derived.iva_pagar:,}", result.debito_fiscal, result.credito_fiscal)
    if derived.total_a_pagar is not None:
        logger.info(
            "Total a pagar: %s (%s + %s + %s)",
            f"{derived.total_a_pagar:,}",
            derived.iva_pagar,
            result.ppm or 0,
            result.remanente or 0,
        )
    return result
