"""Coherence validation for extracted F29 data.

This module provides the rule execution that checks code presence, value
ranges, the 19% VAT relationship, identity fields and derived totals. Every
triggered rule lowers a confidence score that starts at 100. Validation never
raises; problems are returned as structured data for the caller to act on.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from sii_f29.extractor.derived import apply_derived_fields, compute_compras_netas
from sii_f29.extractor.validation.policy import ValidationPolicy
from sii_f29.extractor.validation.types import (
    Impact,
    Severity,
    ValidationError,
    ValidationResult,
    ValidationWarning,
)
from sii_f29.utils.parsing import format_clp

if TYPE_CHECKING:
    from sii_f29.extractor.types import ExtractionResult

logger = logging.getLogger(__name__)

__all__ = [
    "auto_correct_f29",
    "coherence_notes",
    "quick_validate_f29",
    "validate_f29_data",
]


@dataclass
class _RuleTally:
    """Running errors, warnings and confidence for one validation pass."""

    policy: ValidationPolicy
    confidence: int = 100
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)

    def error(
        self,
        rule: str,
        code: str,
        field_name: str,
        message: str,
        severity: Severity,
        suggested_fix: int | None = None,
    ) -> None:
        self.errors.append(ValidationError(code, field_name, message, severity, suggested_fix))
        self.confidence -= self.policy.penalty(rule)

    def warn(self, rule: str, code: str, field_name: str, message: str, impact: Impact) -> None:
        self.warnings.append(ValidationWarning(code, field_name, message, impact))
        self.confidence -= self.policy.penalty(rule)


def _check_presence(data: ExtractionResult, tally: _RuleTally) -> None:
    for rule in tally.policy.required_codes:
        value = data.get_value(rule.field)
        if value and value > 0:
            continue
        if rule.critical:
            tally.error(
                "missing_critical",
                "MISSING_CRITICAL_CODE",
                rule.field,
                f"{rule.name} (código {rule.code}) es obligatorio y debe ser mayor a 0",
                "critical",
            )
        else:
            tally.warn(
                "missing_optional",
                "MISSING_OPTIONAL_CODE",
                rule.field,
                f"{rule.name} (código {rule.code}) no detectado - puede ser 0 o estar ausente",
                "low",
            )


def _check_ranges(data: ExtractionResult, tally: _RuleTally) -> None:
    for rule in tally.policy.ranges:
        value = data.get_value(rule.field)
        if not value or value <= 0:
            continue
        if value < rule.min or value > rule.max:
            tally.error(
                "out_of_range",
                "VALUE_OUT_OF_RANGE",
                rule.field,
                f"{rule.name} fuera de rango válido: {format_clp(value)} "
                f"(rango: {format_clp(rule.min)} - {format_clp(rule.max)})",
                "high",
            )
        elif value < rule.typical_min or value > rule.typical_max:
            tally.warn(
                "atypical",
                "VALUE_ATYPICAL",
                rule.field,
                f"{rule.name} fuera del rango típico para PyMEs: {format_clp(value)}",
                "medium",
            )


def _check_vat_coherence(data: ExtractionResult, tally: _RuleTally) -> None:
    if not data.debito_fiscal or not data.ventas_netas:
        return

    expected = data.ventas_netas * tally.policy.vat_rate
    error_pct = abs(data.debito_fiscal - expected) / expected * 100

    if error_pct > tally.policy.coherence_error_pct:
        tally.error(
            "debito_incoherent",
            "DEBITO_INCOHERENT",
            "debito_fiscal",
            f"Débito fiscal no coherente con ventas: {format_clp(data.debito_fiscal)} "
            f"vs esperado {format_clp(expected)}",
            "high",
            suggested_fix=round(expected),
        )
    elif error_pct > tally.policy.coherence_warning_pct:
        tally.warn(
            "debito_inconsistent",
            "DEBITO_INCONSISTENT",
            "debito_fiscal",
            f"Pequeña inconsistencia entre débito fiscal y ventas ({error_pct:.1f}% diferencia)",
            "medium",
        )


def _check_iva_credit(data: ExtractionResult, tally: _RuleTally) -> None:
    if not data.debito_fiscal or not data.credito_fiscal:
        return

    iva = data.debito_fiscal - data.credito_fiscal
    if iva < tally.policy.negative_iva_threshold:
        tally.warn(
            "high_iva_credit",
            "HIGH_IVA_CREDIT",
            "iva_pagar",
            f"IVA a favor muy alto: {format_clp(abs(iva))} - verificar créditos",
            "medium",
        )


def _check_identity(data: ExtractionResult, tally: _RuleTally) -> None:
    if not data.rut or len(data.rut) < tally.policy.rut_min_length:
        tally.error("invalid_rut", "INVALID_RUT", "rut", "RUT no detectado o inválido", "medium")

    if not data.periodo or not re.match(tally.policy.periodo_pattern, data.periodo):
        tally.warn(
            "invalid_period",
            "INVALID_PERIOD",
            "periodo",
            "Período no detectado o formato incorrecto",
            "low",
        )


def _check_derived(data: ExtractionResult, tally: _RuleTally) -> None:
    basis = data.get_value(tally.policy.derived_basis_field)
    if not data.compras_netas or not basis:
        return

    expected = compute_compras_netas(basis, tally.policy.vat_rate)
    if expected is None:
        return
    if abs(data.compras_netas - expected) > tally.policy.derived_tolerance:
        tally.error(
            "incorrect_calculation",
            "INCORRECT_CALCULATION",
            "compras_netas",
            f"Cálculo de compras netas incorrecto: {format_clp(data.compras_netas)} "
            f"vs esperado {format_clp(expected)}",
            "medium",
            suggested_fix=expected,
        )


def _build_suggestions(errors: list[ValidationError], warnings: list[ValidationWarning]) -> list[str]:
    if not errors and not warnings:
        return [
            "✓ Formulario F29 validado correctamente",
            "✓ Todos los cálculos son coherentes",
            "✓ Listo para presentación al SII",
        ]

    suggestions = []
    if errors:
        suggestions.append(f"⚠ Corregir {len(errors)} error(es) antes de presentar")
    if warnings:
        suggestions.append(f"⚠ Revisar {len(warnings)} advertencia(s) detectada(s)")
    suggestions.append("Verificar datos originales en el formulario")
    suggestions.append("Consultar con contador si hay dudas")
    return suggestions


def _build_summary(is_valid: bool, confidence: int, error_count: int, policy: ValidationPolicy) -> str:
    if is_valid and confidence >= policy.high_confidence:
        return f"✓ F29 VÁLIDO - Alta confianza ({confidence}%). Listo para presentación."
    if is_valid and confidence >= policy.medium_confidence:
        return f"⚠ F29 VÁLIDO - Confianza media ({confidence}%). Revisar advertencias."
    if is_valid:
        return f"⚠ F29 VÁLIDO - Baja confianza ({confidence}%). Verificar datos manualmente."
    if error_count <= policy.minor_error_count:
        return f"✗ F29 INVÁLIDO - Errores menores ({error_count}). Correcciones necesarias."
    return f"✗ F29 INVÁLIDO - Múltiples errores ({error_count}). Revisión completa requerida."


def validate_f29_data(
    data: ExtractionResult,
    policy: ValidationPolicy | None = None,
) -> ValidationResult:
    """Run every coherence rule against an F29 result.

    Parameters
    ----------
    data
        Possibly partial extraction result.
    policy
        Thresholds and penalties; loaded from ``validation.json`` when omitted.

    Returns
    -------
    ValidationResult
        ``is_valid`` is ``False`` only when a critical or high error was
        recorded; warnings never invalidate. Confidence is clamped to 0-100.
    """
    policy = policy or ValidationPolicy.from_config()
    tally = _RuleTally(policy)

    _check_presence(data, tally)
    _check_ranges(data, tally)
    _check_vat_coherence(data, tally)
    _check_iva_credit(data, tally)
    _check_identity(data, tally)
    _check_derived(data, tally)

    is_valid = not any(e.is_blocking for e in tally.errors)
    confidence = max(0, min(100, tally.confidence))
    summary = _build_summary(is_valid, confidence, len(tally.errors), policy)

    if is_valid:
        logger.info("✓ Validation finished: VALID (%s%% confidence)", confidence)
    else:
        logger.warning(
            "✗ Validation finished: INVALID (%s%% confidence, %s errors)",
            confidence,
            len(tally.errors),
        )

    return ValidationResult(
        is_valid=is_valid,
        confidence=confidence,
        errors=tally.errors,
        warnings=tally.warnings,
        suggestions=_build_suggestions(tally.errors, tally.warnings),
        summary=summary,
    )


def quick_validate_f29(data: ExtractionResult) -> bool:
    """Cheap validity check for real-time form feedback.

    Requires débito and ventas above zero, a non-negative crédito, and a RUT
    that is either absent or at least 8 characters long. A crédito of zero
    passes: a period without purchases declares 511 as 0, so only a missing
    crédito fails.
    """
    return bool(
        data.debito_fiscal
        and data.debito_fiscal > 0
        and data.credito_fiscal is not None
        and data.credito_fiscal >= 0
        and data.ventas_netas
        and data.ventas_netas > 0
        and (not data.rut or len(data.rut) >= 8)
    )


def auto_correct_f29(
    data: ExtractionResult,
    policy: ValidationPolicy | None = None,
) -> ExtractionResult:
    """Return a copy with every derived total recomputed from the raw codes.

    Extracted codes and identity fields are never changed; only arithmetic is
    repaired.
    """
    policy = policy or ValidationPolicy.from_config()
    corrected = replace(data, detected_values=list(data.detected_values))
    apply_derived_fields(corrected, policy.vat_rate)

    if policy.derived_basis_field != "credito_fiscal":
        corrected.compras_netas = compute_compras_netas(
            corrected.get_value(policy.derived_basis_field),
            policy.vat_rate,
        )
    return corrected


def coherence_notes(
    data: ExtractionResult,
    policy: ValidationPolicy | None = None,
) -> list[str]:
    """Describe internal consistency of the extracted codes.

    These notes go into the provenance log; they never change confidence.

    Parameters
    ----------
    data
        Merged extraction result.
    policy
        Supplies the VAT rate and note thresholds.

    Returns
    -------
    list[str]
        Passing checks (✓/~) first, then warnings (⚠).
    """
    policy = policy or ValidationPolicy.from_config()
    notes = policy.notes
    vat = policy.vat_rate
    passed: list[str] = []
    flagged: list[str] = []

    if data.debito_fiscal and data.credito_fiscal:
        iva = data.debito_fiscal - data.credito_fiscal
        if iva < 0:
            flagged.append(f"⚠ IVA determinado negativo: {format_clp(iva)}")
        else:
            passed.append("✓ IVA determinado es positivo")

    if data.debito_fiscal and data.ventas_netas:
        expected = data.ventas_netas * vat
        error_pct = abs(data.debito_fiscal - expected) / expected * 100
        if error_pct < notes.get("excellent_pct", 5):
            passed.append("✓ Coherencia excelente entre débito fiscal y ventas netas")
        elif error_pct < notes.get("acceptable_pct", 15):
            passed.append("~ Coherencia aceptable entre débito fiscal y ventas netas")
        else:
            flagged.append(
                f"⚠ Posible error: débito fiscal {format_clp(data.debito_fiscal)} vs esperado {format_clp(expected)}"
            )

    if data.ppm and data.ventas_netas:
        max_ppm = data.ventas_netas * notes.get("max_ppm_share_of_sales", 0.05)
        if data.ppm <= max_ppm:
            passed.append("✓ PPM en rango razonable")
        else:
            flagged.append(f"⚠ PPM posiblemente alto: {format_clp(data.ppm)} vs máximo sugerido {format_clp(max_ppm)}")

    if data.credito_fiscal and data.ventas_netas:
        ratio = (data.credito_fiscal / vat) / data.ventas_netas
        if notes.get("purchase_ratio_min", 0.3) < ratio < notes.get("purchase_ratio_max", 1.5):
            passed.append("✓ Ratio compras/ventas en rango normal")
        elif ratio >= notes.get("purchase_ratio_max", 1.5):
            flagged.append(f"⚠ Compras muy altas vs ventas: {ratio * 100:.1f}%")
        else:
            flagged.append(f"⚠ Compras muy bajas vs ventas: {ratio * 100:.1f}%")

    if flagged:
        logger.info("Coherence warnings: %s", ", ".join(flagged))
    return passed + flagged
