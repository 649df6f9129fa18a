"""Validation package for the sii_f29 extraction pipeline.

This package provides validation types, the configurable coherence policy,
report formatting, and the rule runner for F29 results.
"""

from sii_f29.extractor.validation.format import (
    format_validation_report,
    log_validation_report,
)
from sii_f29.extractor.validation.policy import (
    CodeRange,
    RequiredCode,
    ValidationPolicy,
)
from sii_f29.extractor.validation.runner import (
    auto_correct_f29,
    coherence_notes,
    quick_validate_f29,
    validate_f29_data,
)
from sii_f29.extractor.validation.types import (
    ValidationError,
    ValidationResult,
    ValidationWarning,
)

__all__ = [
    # Types
    "CodeRange",
    "RequiredCode",
    "ValidationError",
    "ValidationPolicy",
    "ValidationResult",
    "ValidationWarning",
    # Formatting
    "format_validation_report",
    "log_validation_report",
    # Runners
    "auto_correct_f29",
    "coherence_notes",
    "quick_validate_f29",
    "validate_f29_data",
]
