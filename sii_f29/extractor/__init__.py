"""Extractor module for recovering F29 codes from raw uploads.

Key exports:
    parse_f29: Run every strategy, merge, derive totals and validate
    parse_f29_file / parse_f29_batch: File and multi-file entry points
    ExtractionResult: Structured F29 result
    FingerprintCache: Known-document byte-sequence cache
    validate_f29_data: Coherence validation entry point
"""

from sii_f29.extractor.binary_text import (
    find_code_by_proximity,
    find_code_by_regex,
    parse_f29_from_binary,
)
from sii_f29.extractor.decoding import DecodedText, decode_variants
from sii_f29.extractor.derived import DerivedFields, compute_derived_fields
from sii_f29.extractor.extraction_pipeline import (
    BatchItem,
    BatchResult,
    parse_f29,
    parse_f29_batch,
    parse_f29_file,
    print_extraction_report,
    save_extraction_result,
)
from sii_f29.extractor.fingerprint import Fingerprint, FingerprintCache, parse_f29_with_fingerprints
from sii_f29.extractor.identity import parse_identity_from_text
from sii_f29.extractor.pdf_parser import extract_text_from_pdf, parse_f29_from_pdf_text
from sii_f29.extractor.types import ExtractionResult, F29Code, F29ExtractionError, get_f29_codes
from sii_f29.extractor.validation import (
    ValidationError,
    ValidationPolicy,
    ValidationResult,
    ValidationWarning,
    auto_correct_f29,
    format_validation_report,
    quick_validate_f29,
    validate_f29_data,
)
from sii_f29.extractor.visual import parse_f29_with_visual_patterns

__all__ = [
    # Dataclasses
    "BatchItem",
    "BatchResult",
    "DecodedText",
    "DerivedFields",
    "ExtractionResult",
    "F29Code",
    "F29ExtractionError",
    "Fingerprint",
    "FingerprintCache",
    "ValidationError",
    "ValidationPolicy",
    "ValidationResult",
    "ValidationWarning",
    # Strategies
    "decode_variants",
    "extract_text_from_pdf",
    "find_code_by_proximity",
    "find_code_by_regex",
    "get_f29_codes",
    "parse_f29_from_binary",
    "parse_f29_from_pdf_text",
    "parse_f29_with_fingerprints",
    "parse_f29_with_visual_patterns",
    "parse_identity_from_text",
    # Orchestration
    "compute_derived_fields",
    "parse_f29",
    "parse_f29_batch",
    "parse_f29_file",
    # Validation
    "auto_correct_f29",
    "format_validation_report",
    "quick_validate_f29",
    "validate_f29_data",
    # Output
    "print_extraction_report",
    "save_extraction_result",
]
