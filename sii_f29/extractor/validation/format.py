"""Validation report formatting utilities.

This module provides functions to format validation results for display
and logging. All functions are pure formatters with no side effects
beyond logging.
"""

from __future__ import annotations

import logging

from sii_f29.extractor.validation.types import ValidationError, ValidationResult, ValidationWarning
from sii_f29.utils.parsing import format_clp

logger = logging.getLogger(__name__)

__all__ = [
    "format_error_line",
    "format_validation_report",
    "format_warning_line",
    "log_validation_report",
]


def format_error_line(error: ValidationError) -> str:
    """Format one error with its severity and optional suggested fix."""
    fix = f" [sugerido: {format_clp(error.suggested_fix)}]" if error.suggested_fix is not None else ""
    return f"  ✗ [{error.severity}] {error.field}: {error.message}{fix}"


def format_warning_line(warning: ValidationWarning) -> str:
    """Format one warning with its impact."""
    return f"  ⚠ [{warning.impact}] {warning.field}: {warning.message}"


def format_validation_report(result: ValidationResult) -> str:
    """Format a validation result for display.

    Parameters
    ----------
    result
        Outcome of :func:`~sii_f29.extractor.validation.runner.validate_f29_data`.

    Returns
    -------
    str
        Multi-line report with verdict, errors, warnings and suggestions.
    """
    separator = "═" * 60
    lines = [separator, "                 F29 VALIDATION REPORT", separator, ""]
    lines.append(f"Estado: {'VÁLIDO' if result.is_valid else 'INVÁLIDO'} ({result.confidence}% confianza)")
    lines.append(result.summary)
    lines.append("")

    if result.errors:
        lines.append(f"Errores ({len(result.errors)}):")
        lines.extend(format_error_line(e) for e in result.errors)
    else:
        lines.append("Errores: ninguno")
    lines.append("")

    if result.warnings:
        lines.append(f"Advertencias ({len(result.warnings)}):")
        lines.extend(format_warning_line(w) for w in result.warnings)
    else:
        lines.append("Advertencias: ninguna")
    lines.append("")

    if result.suggestions:
        lines.append("Sugerencias:")
        lines.extend(f"  • {s}" for s in result.suggestions)

    lines.extend(["", separator])
    return "\n".join(lines)


def log_validation_report(result: ValidationResult) -> None:
    """Log validation results with appropriate log levels.

    Blocking errors go to ERROR, other errors and warnings to WARNING, and
    the summary to INFO.
    """
    for error in result.errors:
        level = logging.ERROR if error.is_blocking else logging.WARNING
        logger.log(level, "✗ %s (%s): %s", error.code, error.field, error.message)

    for warning in result.warnings:
        logger.warning("⚠ %s (%s): %s", warning.code, warning.field, warning.message)

    logger.info(result.summary)
