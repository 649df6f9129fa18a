"""Validation dataclasses and type definitions.

This module contains pure data structures with no business logic dependencies,
ensuring they can be imported without circular dependencies.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

__all__ = [
    "Impact",
    "Severity",
    "ValidationError",
    "ValidationResult",
    "ValidationWarning",
]

Severity = Literal["critical", "high", "medium", "low"]
Impact = Literal["high", "medium", "low"]

BLOCKING_SEVERITIES = frozenset({"critical", "high"})


@dataclass
class ValidationError:
    """A rule violation found in an F29 result.

    Attributes
    ----------
        code: Machine-readable rule id (e.g., "MISSING_CRITICAL_CODE")
        field: Result attribute the rule looked at
        message: Human-readable description
        severity: "critical" and "high" make the result invalid
        suggested_fix: Corrected amount when the rule can compute one
    """

    code: str
    field: str
    message: str
    severity: Severity
    suggested_fix: int | None = None

    @property
    def is_blocking(self) -> bool:
        """Whether this error invalidates the result."""
        return self.severity in BLOCKING_SEVERITIES


@dataclass
class ValidationWarning:
    """A non-blocking observation about an F29 result."""

    code: str
    field: str
    message: str
    impact: Impact


@dataclass
class ValidationResult:
    """Outcome of one coherence validation pass."""

    is_valid: bool
    confidence: int
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    summary: str = ""

    def has_failures(self, severity: Severity | None = None) -> bool:
        """Check for errors, optionally filtered by severity.

        Parameters
        ----------
        severity
            Optional filter: ``None`` (any error) or a single severity.

        Returns
        -------
        bool
            ``True`` when any matching error was recorded.
        """
        if severity is None:
            return bool(self.errors)
        return any(e.severity == severity for e in self.errors)

    def get_suggested_fixes(self) -> dict[str, int]:
        """Map field name to the first suggested corrected amount."""
        fixes: dict[str, int] = {}
        for error in self.errors:
            if error.suggested_fix is not None and error.field not in fixes:
                fixes[error.field] = error.suggested_fix
        return fixes

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return asdict(self)
