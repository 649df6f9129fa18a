"""F29 extraction pipeline: run every strategy, merge, derive, validate.

This module orchestrates the complete parse of one uploaded form:
1. Run each extraction strategy independently (a failing strategy is logged
   and contributes nothing)
2. Merge partial results by confidence, first non-empty value per field wins
3. Compute derived totals and append coherence notes
4. Add the débito-vs-ventas coherence bonus
5. Validate; when invalid, auto-correct derived totals and re-validate once

Batch processing, JSON persistence and report printing live here as well.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sii_f29.config import (
    get_config,
    get_extraction_specs,
    get_file_pattern,
    get_period_paths,
    setup_logging,
)
from sii_f29.extractor.binary_text import parse_f29_from_binary
from sii_f29.extractor.derived import apply_derived_fields
from sii_f29.extractor.fingerprint import FingerprintCache, parse_f29_with_fingerprints
from sii_f29.extractor.pdf_parser import parse_f29_from_pdf_text
from sii_f29.extractor.types import (
    CODE_FIELDS,
    IDENTITY_FIELDS,
    MAX_CONFIDENCE,
    ExtractionAccumulator,
    ExtractionResult,
    F29ExtractionError,
)
from sii_f29.extractor.validation import (
    ValidationPolicy,
    auto_correct_f29,
    coherence_notes,
    format_validation_report,
    log_validation_report,
    validate_f29_data,
)
from sii_f29.extractor.visual import parse_f29_with_visual_patterns
from sii_f29.utils.parsing import format_clp

logger = setup_logging(__name__)

__all__ = [
    "BatchItem",
    "BatchResult",
    "Strategy",
    "coherence_bonus",
    "default_strategies",
    "merge_partial_results",
    "parse_f29",
    "parse_f29_batch",
    "parse_f29_file",
    "print_extraction_report",
    "save_extraction_result",
]

Strategy = Callable[[bytes, logging.Logger], ExtractionAccumulator]


def default_strategies(fingerprints: FingerprintCache | None = None) -> list[tuple[str, Strategy]]:
    """Return the strategies run on every upload, in execution order.

    Parameters
    ----------
    fingerprints : FingerprintCache | None, optional
        Cache for the byte-sequence strategy; loaded from config on use when
        omitted.

    Returns
    -------
    list[tuple[str, Strategy]]
        ``(name, callable)`` pairs taking ``(data, logger)``.
    """
    return [
        ("binary-pdf", lambda data, log: parse_f29_from_binary(data, log=log)),
        ("visual-patterns", lambda data, log: parse_f29_with_visual_patterns(data, log=log)),
        ("brute-force", lambda data, log: parse_f29_with_fingerprints(data, fingerprints, log=log)),
        ("pdf-text", lambda data, log: parse_f29_from_pdf_text(data, log=log)),
    ]


def _run_strategies(
    data: bytes,
    strategies: list[tuple[str, Strategy]],
    log: logging.Logger,
) -> tuple[list[ExtractionResult], list[str]]:
    """Run each strategy in isolation and keep those with any signal."""
    results: list[ExtractionResult] = []
    failures: list[str] = []

    for name, strategy in strategies:
        try:
            partial = strategy(data, log).to_result()
        except Exception as err:  # noqa: BLE001
            log.warning("✗ Strategy %s failed: %s", name, err)
            failures.append(f"{name}: {err}")
            continue

        if partial.confidence > 0:
            log.info("✓ Strategy %s: %s%% confidence", name, partial.confidence)
            results.append(partial)
        else:
            log.info("⚠ Strategy %s: no signal", name)

    return results, failures


def merge_partial_results(results: list[ExtractionResult]) -> ExtractionResult:
    """Combine partial results, higher confidence first.

    A field already set by a higher-confidence result is never overwritten by
    a lower-confidence one. Provenance logs are concatenated without
    deduplication and the merged confidence is the best partial confidence.

    Parameters
    ----------
    results
        Partial results with confidence above zero.

    Returns
    -------
    ExtractionResult
        Merged ``super-parser`` result (derived fields not yet computed).
    """
    ordered = sorted(results, key=lambda r: r.confidence, reverse=True)
    merged = ExtractionResult(method="super-parser")

    for field_name in (*CODE_FIELDS, *IDENTITY_FIELDS):
        source = next((r for r in ordered if r.has_value(field_name)), None)
        if source is not None:
            setattr(merged, field_name, source.get_value(field_name))

    for partial in ordered:
        merged.detected_values.extend(partial.detected_values)
        merged.confidence = max(merged.confidence, partial.confidence)

    return merged


def coherence_bonus(result: ExtractionResult, settings: dict[str, Any] | None = None) -> tuple[int, str | None]:
    """Score how well débito fiscal matches 19% of net sales.

    Parameters
    ----------
    result
        Merged result.
    settings
        ``coherence_bonus`` block of ``extraction.json``.

    Returns
    -------
    tuple[int, str | None]
        Confidence bonus and the provenance note to log (``None`` when no
        bonus applies).
    """
    settings = settings if settings is not None else get_extraction_specs().get("coherence_bonus", {})
    if not result.debito_fiscal or not result.ventas_netas:
        return 0, None

    expected = result.ventas_netas * settings.get("vat_rate", 0.19)
    error = abs(result.debito_fiscal - expected) / expected

    if error < settings.get("excellent_below", 0.10):
        return settings.get("excellent_bonus", 15), "Coherencia F29: Débito vs Ventas ✓"
    if error < settings.get("acceptable_below", 0.30):
        return settings.get("acceptable_bonus", 5), "Coherencia F29: Débito vs Ventas ~"
    return 0, None


def parse_f29(
    data: bytes,
    *,
    log: logging.Logger | None = None,
    fingerprints: FingerprintCache | None = None,
    policy: ValidationPolicy | None = None,
    strategies: list[tuple[str, Strategy]] | None = None,
) -> ExtractionResult:
    """Parse one F29 upload into a validated result.

    Parameters
    ----------
    data : bytes
        Raw file contents.
    log : logging.Logger | None, optional
        Logger passed to every strategy; defaults to this module's logger.
    fingerprints : FingerprintCache | None, optional
        Known-document cache for the byte-sequence strategy.
    policy : ValidationPolicy | None, optional
        Coherence policy; loaded from ``validation.json`` when omitted.
    strategies : list[tuple[str, Strategy]] | None, optional
        Override the strategy list (defaults to :func:`default_strategies`).

    Returns
    -------
    ExtractionResult
        Merged result with derived totals, final confidence, ``is_valid`` and
        the last :class:`ValidationResult` attached.

    Raises
    ------
    F29ExtractionError
        If no strategy recovered any signal.
    """
    log = log or logger
    policy = policy or ValidationPolicy.from_config()
    log.info("Parsing F29 upload (%s bytes)", len(data))

    results, failures = _run_strategies(data, strategies or default_strategies(fingerprints), log)
    if not results:
        detail = f" ({'; '.join(failures)})" if failures else ""
        msg = f"F29 extraction failed: no strategy succeeded{detail}"
        raise F29ExtractionError(msg)

    final = merge_partial_results(results)
    apply_derived_fields(final, policy.vat_rate)
    final.detected_values.extend(coherence_notes(final, policy))

    bonus, note = coherence_bonus(final)
    if note:
        final.confidence = min(MAX_CONFIDENCE, final.confidence + bonus)
        final.detected_values.append(note)
        log.info("%s (+%s)", note, bonus)

    validation = validate_f29_data(final, policy)
    if not validation.is_valid:
        log.warning("⚠ Validation errors detected, applying auto-correction")
        corrected = auto_correct_f29(final, policy)
        for field_name in ("compras_netas", "iva_pagar", "total_a_pagar"):
            setattr(final, field_name, corrected.get_value(field_name))

        revalidation = validate_f29_data(final, policy)
        final.confidence = min(final.confidence, revalidation.confidence)
        final.validation = revalidation
        final.is_valid = revalidation.is_valid
        log.info("Confidence after correction: %s%%", final.confidence)
    else:
        final.validation = validation
        final.is_valid = True

    final.detected_values.append(f"Validación: {'VÁLIDO' if validation.is_valid else 'CORREGIDO'}")
    final.detected_values.append(final.validation.summary)

    log.info(
        "F29 parse complete: %s%% confidence, %s provenance entries, %s",
        final.confidence,
        len(final.detected_values),
        "VALID" if final.is_valid else "INVALID",
    )
    return final


def parse_f29_file(path: Path, **kwargs: Any) -> ExtractionResult:
    """Read ``path`` and parse it with :func:`parse_f29`.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    F29ExtractionError
        If no strategy recovered any signal.
    """
    if not path.exists():
        msg = f"F29 file not found: {path}"
        raise FileNotFoundError(msg)

    logger.info("Reading F29 file: %s", path)
    return parse_f29(path.read_bytes(), **kwargs)


# =============================================================================
# Batch Processing
# =============================================================================


@dataclass
class BatchItem:
    """Outcome for one file in a batch."""

    file_name: str
    success: bool
    result: ExtractionResult | None = None
    error: str | None = None

    @property
    def confidence(self) -> int:
        return self.result.confidence if self.result else 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "file_name": self.file_name,
            "success": self.success,
            "confidence_score": self.confidence,
            "period": self.result.periodo if self.result else None,
            "method": self.result.method if self.result else None,
            "data": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


@dataclass
class BatchResult:
    """Aggregated outcome of :func:`parse_f29_batch`."""

    items: list[BatchItem] = field(default_factory=list)

    @property
    def successes(self) -> list[BatchItem]:
        return [i for i in self.items if i.success]

    @property
    def failures(self) -> list[BatchItem]:
        return [i for i in self.items if not i.success]

    def summary(self) -> dict[str, Any]:
        """Counts, success rate and average confidence (percentages to 2 decimals)."""
        total = len(self.items)
        ok = self.successes
        return {
            "total_files": total,
            "processed_successfully": len(ok),
            "failed": total - len(ok),
            "success_rate": round(len(ok) / total * 100, 2) if total else 0.0,
            "average_confidence": round(sum(i.confidence for i in ok) / len(ok), 2) if ok else 0.0,
        }


def parse_f29_batch(paths: Iterable[Path], **kwargs: Any) -> BatchResult:
    """Parse several F29 files independently.

    A file that is missing, has an unsupported suffix, or yields no signal is
    recorded as a failed item; the remaining files are still processed.

    Parameters
    ----------
    paths : Iterable[Path]
        Files to parse, processed in order.
    **kwargs
        Forwarded to :func:`parse_f29`.

    Returns
    -------
    BatchResult
        Per-file items plus summary statistics.
    """
    allowed = [s.lower() for s in get_config().get("batch", {}).get("allowed_suffixes", [".pdf"])]
    batch = BatchResult()

    for path in paths:
        if allowed and path.suffix.lower() not in allowed:
            logger.warning("✗ %s: unsupported file type", path.name)
            batch.items.append(
                BatchItem(path.name, success=False, error=f"Archivo {path.name}: solo se soportan archivos PDF")
            )
            continue

        try:
            result = parse_f29_file(path, **kwargs)
        except (FileNotFoundError, F29ExtractionError) as err:
            logger.warning("✗ %s: %s", path.name, err)
            batch.items.append(BatchItem(path.name, success=False, error=str(err)))
            continue

        logger.info("✓ %s: %s%% confidence (%s)", path.name, result.confidence, result.method)
        batch.items.append(BatchItem(path.name, success=True, result=result))

    summary = batch.summary()
    logger.info(
        "Batch complete: %s ok, %s failed",
        summary["processed_successfully"],
        summary["failed"],
    )
    return batch


# =============================================================================
# Output
# =============================================================================


def _output_filename(result: ExtractionResult) -> str:
    placeholder = get_config().get("file_patterns", {}).get("f29_result", {}).get("unknown_placeholder", "sin_dato")
    return get_file_pattern("f29_result").format(
        periodo=result.periodo or placeholder,
        rut=result.rut or placeholder,
    )


def save_extraction_result(result: ExtractionResult, output_dir: Path | None = None) -> Path:
    """Serialize an extraction result to JSON.

    Parameters
    ----------
    result : ExtractionResult
        Parsed F29 result.
    output_dir : Path | None, optional
        Target directory; defaults to ``DATA_DIR/processed``.

    Returns
    -------
    Path
        Location of the written JSON file.
    """
    if output_dir is None:
        output_dir = get_period_paths()["processed"]

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / _output_filename(result)

    with Path(output_path).open("w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False, default=str)

    logger.info("Saved extraction result to %s", output_path)
    return output_path


def print_extraction_report(result: ExtractionResult, detailed: bool = False) -> None:
    """Log a human-readable extraction report.

    Parameters
    ----------
    result : ExtractionResult
        Parsed F29 result.
    detailed : bool, optional
        When ``True``, also log the full provenance trail.
    """
    logger.info("F29 %s (RUT %s, folio %s)", result.periodo or "?", result.rut or "?", result.folio or "?")
    if result.razon_social:
        logger.info("Razón social: %s", result.razon_social)

    for field_name in (*CODE_FIELDS, "compras_netas", "iva_pagar", "total_a_pagar"):
        logger.info("  %-15s %s", field_name, format_clp(result.get_value(field_name)))

    logger.info("Confidence: %s%% (%s)", result.confidence, "valid" if result.is_valid else "invalid")

    if result.validation is not None:
        log_validation_report(result.validation)
        logger.debug("\n%s", format_validation_report(result.validation))

    if detailed:
        for entry in result.detected_values:
            logger.debug("  • %s", entry)
